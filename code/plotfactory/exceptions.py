"""
Exceptions raised by plotfactory.

All chart failures derive from ChartGenerationError so that batch helpers
can isolate one failing chart without hiding unrelated programming errors.
"""


class ChartGenerationError(Exception):
    """Exception raised when chart generation fails."""

    pass


class ChartValidationError(ChartGenerationError):
    """A precondition on the chart arguments does not hold."""

    pass


class UnknownColumnError(ChartValidationError):
    """A referenced column does not exist in the dataset."""

    pass


class UnknownCategoryError(ChartValidationError):
    """A category label is not among the distinct values of its column."""

    pass


class ColumnTypeError(ChartValidationError):
    """A column exists but has the wrong kind (e.g. text where numbers are needed)."""

    pass


class FlagTypeError(ChartValidationError):
    """A flag argument is not a boolean."""

    pass


class DatasetError(ChartGenerationError):
    """A dataset could not be loaded."""

    pass


class ConfigError(Exception):
    """Configuration could not be parsed."""

    pass
