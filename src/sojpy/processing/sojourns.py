"""Run-length segmentation and nesting of sojourns.

A sojourn is a stretch of consecutive seconds that share a label. Sojourns are
identified by a run id that increases by one at every label change. Long
sojourns can be partitioned into nested sojourns by adding a small, strictly
increasing fraction to the run id of every block of `nest_length` seconds, so
that the original run id is always recoverable with floor().
"""

from typing import Sequence, Union

import numpy as np
import polars as pl

from sojpy.core import config

logger = config.get_logger()

DEFAULT_NEST_STEP = 0.00001


def segment_runs(labels: pl.Series) -> pl.DataFrame:
    """Find runs of identical consecutive labels.

    The first label always starts run 1 and the run id increases by exactly one
    at every position whose label differs from its predecessor. Missing values
    are treated as a label of their own.

    Args:
        labels: Per-second labels of any type supporting equality.

    Returns:
        A DataFrame with one row per label and the columns 'run_id', the 1-based
        id of the run, and 'duration', the length of the run the label belongs to.
    """
    if isinstance(labels.dtype, (pl.Categorical, pl.Enum)):
        labels = labels.to_physical()

    return (
        pl.DataFrame({"run_id": labels.rle_id().cast(pl.Int64) + 1})
        .with_columns(duration=pl.len().over("run_id").cast(pl.Int64))
        .select("run_id", "duration")
    )


def run_lengths(sojourn_ids: pl.Series) -> pl.Series:
    """Lengths of consecutive blocks of identical sojourn ids, in order."""
    return (
        pl.DataFrame({"block": sojourn_ids.rle_id()})
        .group_by("block", maintain_order=True)
        .agg(pl.len().cast(pl.Int64).alias("duration"))
        .get_column("duration")
    )


def nest_sojourn(
    sojourn: Union[np.ndarray, Sequence[float]],
    trigger_length: int = 180,
    nest_length: int = 60,
    step: float = DEFAULT_NEST_STEP,
) -> np.ndarray:
    """Partition a single sojourn into nested sojourns.

    A sojourn that is not longer than trigger_length is returned unchanged.
    Longer sojourns are cut into blocks of nest_length seconds; the k-th block
    (counting from 0) gets k * step added to its id. A trailing block that is
    shorter than nest_length is merged into the block before it. A sojourn
    shorter than nest_length has no complete block and is not partitioned.

    Args:
        sojourn: The per-second ids of one sojourn, all equal.
        trigger_length: Longest sojourn, in seconds, that is kept whole.
        nest_length: Length of the nested sojourns in seconds.
        step: Increment between the ids of consecutive nested sojourns.

    Returns:
        The nested per-second ids as floats.

    Raises:
        ValueError: If nest_length is not positive, or if the nested ids would
            reach the id of the next sojourn.
    """
    if nest_length < 1:
        raise ValueError("nest_length must be at least 1.")

    sojourn = np.asarray(sojourn, dtype=float)
    length = len(sojourn)
    if length <= trigger_length or length <= 1:
        return sojourn

    full_blocks = length // nest_length
    last_block = max(full_blocks - 1, 0)
    if last_block * step >= 1:
        raise ValueError(
            f"A sojourn of {length} seconds cannot be nested into blocks of "
            f"{nest_length} seconds with a step of {step}; nested ids would collide "
            "with the next sojourn."
        )

    blocks = np.minimum(np.arange(length) // nest_length, last_block)
    return sojourn + blocks * step


def nest_sojourns(
    sojourn_ids: pl.Series,
    trigger_length: int,
    nest_length: int,
    step: float = DEFAULT_NEST_STEP,
) -> pl.Series:
    """Apply nest_sojourn to every sojourn of a per-second id column.

    Args:
        sojourn_ids: Per-second sojourn ids, constant within a sojourn.
        trigger_length: Longest sojourn, in seconds, that is kept whole.
        nest_length: Length of the nested sojourns in seconds.
        step: Increment between the ids of consecutive nested sojourns.

    Returns:
        The nested per-second ids as a Float64 Series with the input's name.
    """
    ids = sojourn_ids.to_numpy()
    if ids.size == 0:
        return pl.Series(sojourn_ids.name, [], dtype=pl.Float64)

    boundaries = np.flatnonzero(np.diff(ids)) + 1
    nested = np.concatenate(
        [
            nest_sojourn(
                sojourn,
                trigger_length=trigger_length,
                nest_length=nest_length,
                step=step,
            )
            for sojourn in np.split(ids, boundaries)
        ]
    )
    logger.debug(
        "Nested %s sojourns into %s sojourns.",
        len(boundaries) + 1,
        len(np.unique(nested)),
    )
    return pl.Series(sojourn_ids.name, nested, dtype=pl.Float64)


def original_run_id(sojourn_ids: pl.Series) -> pl.Series:
    """Recovers the run id a nested sojourn id was derived from."""
    return sojourn_ids.floor().cast(pl.Int64)


def broadcast(
    target: pl.DataFrame,
    sojourns: pl.DataFrame,
    key: str,
    columns: Sequence[str],
) -> pl.DataFrame:
    """Expand sojourn level columns onto a finer resolution table.

    Args:
        target: The finer table, e.g. one row per second, holding the key column.
        sojourns: One row per sojourn, holding the key column and the columns.
        key: Name of the sojourn id column shared by both tables.
        columns: The sojourn level columns to copy onto the target rows.

    Returns:
        The target table with the columns added, in its original row order.
    """
    return target.join(
        sojourns.select(key, *columns),
        on=key,
        how="left",
        maintain_order="left",
    )


def reduce_first(
    table: pl.DataFrame, key: str, columns: Sequence[str]
) -> pl.DataFrame:
    """Reduce a finer resolution table to one row per sojourn.

    Each sojourn takes the value of its first row for every requested column.
    Sojourns are returned in order of first appearance.
    """
    return table.group_by(key, maintain_order=True).agg(
        [pl.col(column).first() for column in columns]
    )
