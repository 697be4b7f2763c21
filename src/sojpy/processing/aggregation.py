"""Reduce raw samples to one row per second and expand seconds back to samples."""

from typing import Sequence

import polars as pl

from sojpy.core import config, models
from sojpy.processing import labels, sojourns

logger = config.get_logger()

SECOND_INDEX = "index"


def trim_partial_second(
    samples: pl.DataFrame, sampling_frequency: int
) -> pl.DataFrame:
    """Drop the trailing samples that do not fill a complete second.

    Args:
        samples: The raw samples.
        sampling_frequency: Number of samples per second.

    Returns:
        The samples, truncated to a multiple of sampling_frequency rows.
    """
    remainder = len(samples) % sampling_frequency
    if remainder == 0:
        return samples

    logger.debug(
        "Dropping %s samples of the trailing partial second.",
        remainder,
    )
    return samples.head(len(samples) - remainder)


def with_second_index(samples: pl.DataFrame, sampling_frequency: int) -> pl.DataFrame:
    """Label every sample with the 1-based index of the second it belongs to."""
    row = pl.int_range(0, pl.len(), dtype=pl.Int64)
    return samples.with_columns((row // sampling_frequency + 1).alias(SECOND_INDEX))


def aggregate_seconds(
    samples: pl.DataFrame,
    sampling_frequency: int,
    sd_threshold: float,
) -> pl.DataFrame:
    """Summarize samples per second and apply the Stage 1 threshold rule.

    The standard deviation of the vector magnitude is computed per second,
    ignoring missing values. Seconds whose standard deviation is at or below
    sd_threshold are labelled Inactive, all others Unclassified. Seconds without
    any valid vector magnitude get a missing label.

    Args:
        samples: The raw samples; the number of rows must be a multiple of
            sampling_frequency.
        sampling_frequency: Number of samples per second.
        sd_threshold: The standard deviation threshold for inactivity.

    Returns:
        A DataFrame with one row per second and the columns 'Timestamp' (first
        timestamp of the second), 'index', 'sd_vm' and 'step1_estimate'.
    """
    sd_vm = pl.col("sd_vm")
    return (
        with_second_index(samples, sampling_frequency)
        .group_by(SECOND_INDEX, maintain_order=True)
        .agg(
            pl.col(models.TIME_COLUMN).first(),
            pl.col(models.VECTOR_MAGNITUDE_COLUMN)
            .cast(pl.Float64)
            .fill_nan(None)
            .std()
            .alias("sd_vm"),
        )
        .select(
            models.TIME_COLUMN,
            SECOND_INDEX,
            "sd_vm",
            pl.when(sd_vm <= sd_threshold)
            .then(pl.lit(labels.Stage1Label.inactive.value))
            .when(sd_vm > sd_threshold)
            .then(pl.lit(labels.Stage1Label.unclassified.value))
            .cast(labels.polars_dtype(labels.Stage1Label))
            .alias("step1_estimate"),
        )
    )


def expand_to_samples(
    samples: pl.DataFrame,
    seconds: pl.DataFrame,
    sampling_frequency: int,
    columns: Sequence[str],
) -> pl.DataFrame:
    """Copy per-second columns onto every sample of that second.

    Args:
        samples: The raw samples, truncated to complete seconds.
        seconds: One row per second with the 'index' column.
        sampling_frequency: Number of samples per second.
        columns: The per-second columns to copy.

    Returns:
        The samples with the 'index' column and the requested columns added.
    """
    return sojourns.broadcast(
        with_second_index(samples, sampling_frequency),
        seconds,
        key=SECOND_INDEX,
        columns=columns,
    )
