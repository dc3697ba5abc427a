"""
Unit tests for configuration loading.

Tests defaults, YAML files, environment overrides and value coercion.
"""

import logging

import pytest

from plotfactory.config import PlotFactoryConfig, load_config
from plotfactory.exceptions import ConfigError


class TestConfigDefaults:
    """Tests for default settings."""

    def test_defaults(self):
        """Test the default output settings."""
        config = PlotFactoryConfig()
        assert config.output_dir == "plots"
        assert config.image_format == "png"
        assert config.figsize == (7.0, 5.0)
        assert config.fail_fast is False

    def test_to_dict(self):
        """Test conversion to a plain dictionary."""
        data = PlotFactoryConfig(dpi=72).to_dict()
        assert data["dpi"] == 72
        assert "categorical_threshold" in data


class TestConfigFromEnv:
    """Tests for PLOTFACTORY_* environment variables."""

    def test_env_values_are_coerced(self):
        """Test that env strings become the field's type."""
        config = PlotFactoryConfig.from_env(
            environ={
                "PLOTFACTORY_DPI": "300",
                "PLOTFACTORY_WIDTH": "8.5",
                "PLOTFACTORY_FAIL_FAST": "yes",
                "PLOTFACTORY_FONT_FAMILY": "Fira Sans",
            }
        )
        assert config.dpi == 300
        assert config.width == 8.5
        assert config.fail_fast is True
        assert config.font_family == "Fira Sans"

    def test_invalid_boolean(self):
        """Test that unparseable booleans are rejected."""
        with pytest.raises(ConfigError, match="fail_fast"):
            PlotFactoryConfig.from_env(environ={"PLOTFACTORY_FAIL_FAST": "maybe"})

    def test_invalid_number(self):
        """Test that unparseable numbers are rejected."""
        with pytest.raises(ConfigError, match="dpi"):
            PlotFactoryConfig.from_env(environ={"PLOTFACTORY_DPI": "high"})

    def test_base_not_modified(self):
        """Test that overrides return a new config and leave the base alone."""
        base = PlotFactoryConfig()
        config = PlotFactoryConfig.from_env(base=base, environ={"PLOTFACTORY_DPI": "10"})
        assert config.dpi == 10
        assert base.dpi == 150
        assert config is not base


class TestConfigFromYaml:
    """Tests for YAML config files."""

    def test_yaml_values(self, tmp_path):
        """Test loading values from a YAML mapping."""
        path = tmp_path / "plotfactory.yaml"
        path.write_text("output_dir: charts\nimage_format: svg\ndpi: 96\nfail_fast: true\n")

        config = PlotFactoryConfig.from_yaml(path)
        assert config.output_dir == "charts"
        assert config.image_format == "svg"
        assert config.dpi == 96
        assert config.fail_fast is True

    def test_unknown_keys_warn(self, tmp_path, caplog):
        """Test that unknown keys are ignored with a warning."""
        path = tmp_path / "plotfactory.yaml"
        path.write_text("colour: red\ndpi: 80\n")

        with caplog.at_level(logging.WARNING, logger="plotfactory.config"):
            config = PlotFactoryConfig.from_yaml(path)

        assert config.dpi == 80
        assert "colour" in caplog.text

    def test_malformed_yaml(self, tmp_path):
        """Test that malformed YAML raises ConfigError."""
        path = tmp_path / "broken.yaml"
        path.write_text("output_dir: [unclosed\n")
        with pytest.raises(ConfigError):
            PlotFactoryConfig.from_yaml(path)

    def test_non_mapping_yaml(self, tmp_path):
        """Test that a YAML list is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            PlotFactoryConfig.from_yaml(path)

    def test_empty_yaml(self, tmp_path):
        """Test that an empty file gives the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert PlotFactoryConfig.from_yaml(path) == PlotFactoryConfig()

    def test_base_not_modified(self, tmp_path):
        """Test that a YAML file does not change the config it starts from."""
        path = tmp_path / "plotfactory.yaml"
        path.write_text("output_dir: charts\n")
        base = PlotFactoryConfig()

        config = PlotFactoryConfig.from_yaml(path, base=base)
        assert config.output_dir == "charts"
        assert base.output_dir == "plots"

    @pytest.mark.parametrize(
        "content,key",
        [
            ("fail_fast: 1\n", "fail_fast"),
            ("fail_fast: maybe\n", "fail_fast"),
            ("dpi: 72.5\n", "dpi"),
            ("dpi: true\n", "dpi"),
            ("width: [7, 5]\n", "width"),
            ("output_dir: 42\n", "output_dir"),
            ("font_family: 12\n", "font_family"),
        ],
    )
    def test_wrong_types_rejected(self, tmp_path, content, key):
        """Test that typed YAML values are checked when the file is loaded."""
        path = tmp_path / "plotfactory.yaml"
        path.write_text(content)
        with pytest.raises(ConfigError, match=key):
            PlotFactoryConfig.from_yaml(path)

    def test_numbers_widened(self, tmp_path):
        """Test that an integer is accepted for a float setting."""
        path = tmp_path / "plotfactory.yaml"
        path.write_text("width: 8\nfont_family: null\n")
        config = PlotFactoryConfig.from_yaml(path)
        assert config.width == 8.0
        assert isinstance(config.width, float)
        assert config.font_family is None


class TestLoadConfig:
    """Tests for layered config resolution."""

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        """Test that environment variables win over the YAML file."""
        path = tmp_path / "plotfactory.yaml"
        path.write_text("dpi: 96\noutput_dir: charts\n")
        monkeypatch.setenv("PLOTFACTORY_DPI", "200")

        config = load_config(path)
        assert config.dpi == 200
        assert config.output_dir == "charts"

    def test_config_path_from_env(self, tmp_path, monkeypatch):
        """Test that PLOTFACTORY_CONFIG points at the YAML file."""
        path = tmp_path / "plotfactory.yaml"
        path.write_text("image_format: pdf\n")
        monkeypatch.setenv("PLOTFACTORY_CONFIG", str(path))

        assert load_config().image_format == "pdf"

    def test_no_sources(self):
        """Test that defaults apply without file or environment."""
        assert load_config() == PlotFactoryConfig()
