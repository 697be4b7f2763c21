"""Custom exceptions for sojpy."""

from sojpy.core import config

logger = config.get_logger()


class LoggedException(Exception):
    """Base class that automatically logs messages."""

    def __init__(self, message: str) -> None:
        """Initialize a new instance of the LoggedException class.

        Args:
            message: The message to display.
        """
        logger.exception(message)
        super().__init__(message)


class InvalidFileTypeError(LoggedException):
    """sojpy did not expect this file extension."""

    pass


class EmptyDirectoryError(LoggedException):
    """No readable recordings were found in the directory."""

    pass


class SchemaMismatchError(LoggedException):
    """A table is missing columns that a consumer requires."""

    pass


class FeatureComputationError(LoggedException):
    """Features could not be computed for one or more sojourns."""

    pass


class LabelEncodingError(LoggedException):
    """A classifier returned a label outside of the expected label set."""

    pass


class InvalidExportFormatError(LoggedException):
    """The requested export format is not supported."""

    pass


class ModelLoadingError(LoggedException):
    """A trained classifier could not be loaded."""

    pass
