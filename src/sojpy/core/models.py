"""Internal data model."""

from typing import Optional

import polars as pl
import pydantic
from pydantic import BaseModel, field_validator

from sojpy.core import config, exceptions

logger = config.get_logger()

TIME_COLUMN = "Timestamp"
AXIS_COLUMNS = ("AxisX", "AxisY", "AxisZ")
VECTOR_MAGNITUDE_COLUMN = "VM"
REQUIRED_COLUMNS = (TIME_COLUMN, *AXIS_COLUMNS, VECTOR_MAGNITUDE_COLUMN)

EXPORT_FORMATS = ("session", "sojourn", "seconds", "raw")


class Recording(BaseModel):
    """A single accelerometer recording, read off the device or a table.

    The samples table holds one row per raw observation with the columns
    Timestamp, AxisX, AxisY, AxisZ and VM. It must not be mutated during
    processing; every stage derives new tables from it.
    """

    model_config = pydantic.ConfigDict(arbitrary_types_allowed=True)

    samples: pl.DataFrame
    sampling_frequency: int
    source: Optional[str] = None

    @field_validator("samples")
    def validate_samples(cls, v: pl.DataFrame) -> pl.DataFrame:
        """Validate the samples table.

        Check that all required columns are present, the table is not empty and
        the timestamps are datetimes in ascending order.

        Args:
            cls: The class.
            v: The samples table to validate.

        Returns:
            v: The samples table if it is valid.

        Raises:
            SchemaMismatchError: If a required column is missing.
            ValueError: If the table is empty or the timestamps are not sorted
                datetimes.
        """
        missing = [column for column in REQUIRED_COLUMNS if column not in v.columns]
        if missing:
            raise exceptions.SchemaMismatchError(
                f"Recording is missing required columns: {missing}."
            )
        if v.is_empty():
            raise ValueError("Recording must contain at least one sample.")
        if not isinstance(v[TIME_COLUMN].dtype, pl.datatypes.Datetime):
            raise ValueError("Timestamp must be a datetime column.")
        if not v[TIME_COLUMN].is_sorted():
            raise ValueError("Timestamp must be sorted.")
        return v

    @field_validator("sampling_frequency")
    def validate_sampling_frequency(cls, v: int) -> int:
        """Validate that the sampling frequency is a positive number of samples."""
        if v <= 0:
            raise ValueError("sampling_frequency must be greater than 0.")
        return v

    @property
    def n_seconds(self) -> int:
        """Number of complete seconds in the recording."""
        return len(self.samples) // self.sampling_frequency


class SojgParameters(BaseModel):
    """Tuning parameters of the Soj-g algorithm.

    Attributes:
        step1_sd_threshold: Seconds with a vector magnitude standard deviation at or
            below this value are labelled as likely inactive.
        step2_nest_length: Window length, in seconds, that Stage 1 runs are cut into
            before the Stage 2 classification. Also used as the trigger length.
        step3_nest_length: Window length, in seconds, used to partition Stage 2
            sojourns that are longer than step3_orig_soj_length_min.
        step3_orig_soj_length_min: Longest Stage 2 sojourn, in seconds, that is
            kept whole.
        nest_step: Fractional increment between the ids of nested sojourns.
        export_format: One of 'session', 'sojourn', 'seconds' or 'raw'.
    """

    step1_sd_threshold: float = 0.00375
    step2_nest_length: int = 5
    step3_nest_length: int = 60
    step3_orig_soj_length_min: int = 180
    nest_step: float = 0.00001
    export_format: str = "session"

    @field_validator("step1_sd_threshold")
    def validate_threshold(cls, v: float) -> float:
        """The standard deviation threshold cannot be negative."""
        if v < 0:
            raise ValueError("step1_sd_threshold must be >= 0.")
        return v

    @field_validator("step2_nest_length", "step3_nest_length")
    def validate_nest_length(cls, v: int) -> int:
        """Nest lengths are a positive number of seconds."""
        if v < 1:
            raise ValueError("Nest lengths must be at least 1 second.")
        return v

    @field_validator("step3_orig_soj_length_min")
    def validate_trigger_length(cls, v: int) -> int:
        """The trigger length cannot be negative."""
        if v < 0:
            raise ValueError("step3_orig_soj_length_min must be >= 0.")
        return v

    @field_validator("nest_step")
    def validate_nest_step(cls, v: float) -> float:
        """The nest step must leave room for nested ids below the next run id."""
        if not 0 < v < 1:
            raise ValueError("nest_step must be between 0 and 1.")
        return v

    @field_validator("export_format")
    def validate_export_format(cls, v: str) -> str:
        """Validate the export format.

        Raises:
            InvalidExportFormatError: If the format is not one of EXPORT_FORMATS.
        """
        if v not in EXPORT_FORMATS:
            raise exceptions.InvalidExportFormatError(
                f"Invalid export_format: {v}. Valid options are: {EXPORT_FORMATS}."
            )
        return v
