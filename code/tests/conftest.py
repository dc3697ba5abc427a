import os
from typing import Any, Dict, List

os.environ.setdefault("MPLBACKEND", "Agg")

import matplotlib  # noqa: E402

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from plotfactory.config import ENV_PREFIX, PlotFactoryConfig  # noqa: E402
from plotfactory.data_sources import Dataset  # noqa: E402
from plotfactory.visualization import ChartRenderer  # noqa: E402


# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def clean_plotfactory_env(monkeypatch):
    """Keep PLOTFACTORY_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def close_figures():
    """Close every figure a test leaves open."""
    yield
    plt.close("all")


# =============================================================================
# Dataset Fixtures
# =============================================================================


@pytest.fixture
def sample_car_data() -> List[Dict[str, Any]]:
    """Sample fuel economy records for testing."""
    return [
        {"manufacturer": "audi", "model": "a4", "displ": 1.8, "year": 1999, "drv": "f", "hwy": 29, "cty": 18, "class": "compact"},
        {"manufacturer": "audi", "model": "a4", "displ": 2.0, "year": 2008, "drv": "f", "hwy": 31, "cty": 20, "class": "compact"},
        {"manufacturer": "toyota", "model": "corolla", "displ": 1.8, "year": 2008, "drv": "f", "hwy": 37, "cty": 28, "class": "compact"},
        {"manufacturer": "volkswagen", "model": "jetta", "displ": 2.5, "year": 2008, "drv": "f", "hwy": 29, "cty": 21, "class": "compact"},
        {"manufacturer": "dodge", "model": "durango 4wd", "displ": 5.7, "year": 2008, "drv": "4", "hwy": 18, "cty": 13, "class": "suv"},
        {"manufacturer": "ford", "model": "explorer 4wd", "displ": 4.6, "year": 2008, "drv": "4", "hwy": 19, "cty": 13, "class": "suv"},
        {"manufacturer": "toyota", "model": "4runner 4wd", "displ": 4.0, "year": 2008, "drv": "4", "hwy": 20, "cty": 16, "class": "suv"},
        {"manufacturer": "chevrolet", "model": "c1500 suburban 2wd", "displ": 5.3, "year": 2008, "drv": "r", "hwy": 20, "cty": 14, "class": "suv"},
        {"manufacturer": "dodge", "model": "ram 1500 pickup 4wd", "displ": 4.7, "year": 2008, "drv": "4", "hwy": 16, "cty": 12, "class": "pickup"},
        {"manufacturer": "ford", "model": "f150 pickup 4wd", "displ": 5.4, "year": 2008, "drv": "4", "hwy": 17, "cty": 13, "class": "pickup"},
        {"manufacturer": "toyota", "model": "toyota tacoma 4wd", "displ": 4.0, "year": 2008, "drv": "4", "hwy": 20, "cty": 16, "class": "pickup"},
        {"manufacturer": "dodge", "model": "dakota pickup 4wd", "displ": 3.7, "year": 1999, "drv": "4", "hwy": 19, "cty": 15, "class": "pickup"},
    ]


@pytest.fixture
def sample_car_df(sample_car_data) -> pd.DataFrame:
    """Sample fuel economy DataFrame for testing."""
    return pd.DataFrame(sample_car_data)


@pytest.fixture
def cars(sample_car_df) -> Dataset:
    """Sample fuel economy Dataset for testing."""
    return Dataset.from_dataframe(sample_car_df, name="cars")


@pytest.fixture
def sample_csv(tmp_path, sample_car_df) -> str:
    """The sample records written to a CSV file."""
    path = tmp_path / "cars.csv"
    sample_car_df.to_csv(path, index=False)
    return str(path)


# =============================================================================
# Rendering Fixtures
# =============================================================================


@pytest.fixture
def output_dir(tmp_path):
    """Directory charts are saved into."""
    return tmp_path / "plots"


@pytest.fixture
def plot_config(output_dir) -> PlotFactoryConfig:
    """Small, fast output settings for testing."""
    return PlotFactoryConfig(
        output_dir=str(output_dir),
        image_format="png",
        width=4.0,
        height=3.0,
        dpi=50,
    )


@pytest.fixture
def renderer(plot_config) -> ChartRenderer:
    """Chart renderer using the test config."""
    return ChartRenderer(plot_config)
