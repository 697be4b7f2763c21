"""Functions to read accelerometer recordings from files."""

import pathlib
from typing import Literal, Optional, Union

import actfast
import numpy as np
import polars as pl

from sojpy.core import config, exceptions, models

logger = config.get_logger()

TABLE_FILE_TYPES = (".csv", ".parquet")
DEVICE_FILE_TYPES = (".gt3x", ".bin")
VALID_FILE_TYPES = TABLE_FILE_TYPES + DEVICE_FILE_TYPES

# Column names used by ActiGraph raw and count exports.
AXIS_ALIASES = {
    "Accelerometer X": "AxisX",
    "Accelerometer Y": "AxisY",
    "Accelerometer Z": "AxisZ",
    "Axis1": "AxisX",
    "Axis2": "AxisY",
    "Axis3": "AxisZ",
}


def read_recording(
    file_name: Union[pathlib.Path, str],
    sampling_frequency: Optional[int] = None,
) -> models.Recording:
    """Read a recording from a file.

    Tables (.csv, .parquet) must hold a Timestamp column and the three axes,
    either as AxisX/AxisY/AxisZ or with the ActiGraph export names. The vector
    magnitude is computed if the table has no VM column. Device files (.gt3x,
    .bin) are read with actfast.

    Args:
        file_name: The file to read.
        sampling_frequency: Number of samples per second. Inferred from the
            timestamps when not given.

    Returns:
        The Recording.

    Raises:
        InvalidFileTypeError: If the file extension is not supported.
        IOError: If a device file cannot be read by actfast.
    """
    path = pathlib.Path(file_name)
    file_type = path.suffix
    if file_type not in VALID_FILE_TYPES:
        raise exceptions.InvalidFileTypeError(
            f"File type {file_type} is not supported. "
            f"Supported types are: {VALID_FILE_TYPES}."
        )

    if file_type in DEVICE_FILE_TYPES:
        data = _read_device_file(path)
    elif file_type == ".csv":
        data = pl.read_csv(path, try_parse_dates=True)
    else:
        data = pl.read_parquet(path)

    samples = to_sample_table(data)
    if sampling_frequency is None:
        sampling_frequency = infer_sampling_frequency(samples[models.TIME_COLUMN])
        logger.debug("Inferred sampling frequency: %s Hz", sampling_frequency)

    return models.Recording(
        samples=samples,
        sampling_frequency=sampling_frequency,
        source=str(path),
    )


def to_sample_table(data: pl.DataFrame) -> pl.DataFrame:
    """Convert a table of raw samples to the sojpy input schema.

    Args:
        data: A table with a Timestamp column and three axis columns.

    Returns:
        A table with the columns Timestamp, AxisX, AxisY, AxisZ and VM.

    Raises:
        SchemaMismatchError: If the Timestamp or an axis column is missing.
    """
    data = data.rename(
        {old: new for old, new in AXIS_ALIASES.items() if old in data.columns}
    )
    missing = [
        column
        for column in (models.TIME_COLUMN, *models.AXIS_COLUMNS)
        if column not in data.columns
    ]
    if missing:
        raise exceptions.SchemaMismatchError(
            f"Input table is missing required columns: {missing}."
        )

    if data[models.TIME_COLUMN].dtype == pl.String:
        data = data.with_columns(pl.col(models.TIME_COLUMN).str.to_datetime())

    if models.VECTOR_MAGNITUDE_COLUMN not in data.columns:
        x, y, z = (pl.col(axis) for axis in models.AXIS_COLUMNS)
        vector_magnitude = (x.pow(2) + y.pow(2) + z.pow(2)).sqrt()
        data = data.with_columns(
            vector_magnitude.alias(models.VECTOR_MAGNITUDE_COLUMN)
        )

    return data.select(
        pl.col(models.TIME_COLUMN),
        *(pl.col(axis).cast(pl.Float64) for axis in models.AXIS_COLUMNS),
        pl.col(models.VECTOR_MAGNITUDE_COLUMN).cast(pl.Float64),
    )


def infer_sampling_frequency(time: pl.Series) -> int:
    """Infer the number of samples per second from the timestamps.

    Args:
        time: The sample timestamps.

    Returns:
        The sampling frequency, rounded to the nearest integer.

    Raises:
        ValueError: If the frequency cannot be inferred or is below 1 Hz.
    """
    if len(time) < 2:
        raise ValueError("At least two samples are needed to infer the frequency.")

    median_delta = time.diff().drop_nulls().dt.total_nanoseconds().median()
    if median_delta is None or median_delta <= 0:
        raise ValueError("Timestamps must be strictly increasing.")

    frequency = round(1e9 / median_delta)
    if frequency < 1:
        raise ValueError(
            "Samples are spaced more than one second apart. "
            "Provide the sampling frequency explicitly."
        )
    return frequency


def _read_device_file(path: pathlib.Path) -> pl.DataFrame:
    """Read the acceleration of an ActiGraph or GENEActiv file with actfast.

    Raises:
        IOError: If actfast cannot read the file.
        SchemaMismatchError: If the file holds no acceleration data.
    """
    try:
        data = actfast.read(path)
    except Exception as e:
        raise IOError(f"Error reading file: {e}. File type is unsupported.") from e

    for timeseries in data["timeseries"].values():
        if "acceleration" not in timeseries:
            continue
        acceleration = np.asarray(timeseries["acceleration"])
        return pl.DataFrame(
            {
                models.TIME_COLUMN: unix_epoch_time_to_polars_datetime(
                    timeseries["datetime"]
                ),
                "AxisX": acceleration[:, 0],
                "AxisY": acceleration[:, 1],
                "AxisZ": acceleration[:, 2],
            }
        )

    raise exceptions.SchemaMismatchError(f"No acceleration data found in {path}.")


def unix_epoch_time_to_polars_datetime(
    time: np.ndarray, units: Literal["ns", "us", "ms", "s", "d"] = "ns"
) -> pl.Series:
    """Convert unix epoch time to polars Series of datetime.

    Args:
        time: The unix epoch timestamps to convert.
        units: The units to convert the time to ('s', 'ms', 'us', or 'ns'). Default
            value is 'ns'.
    """
    time_series = pl.Series(time)
    return pl.from_epoch(time_series, time_unit=units).alias(models.TIME_COLUMN)
