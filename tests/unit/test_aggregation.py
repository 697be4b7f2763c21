"""Test the per-second aggregation."""

import datetime
from typing import Callable

import numpy as np
import polars as pl
import pytest

from sojpy.core import models
from sojpy.processing import aggregation, sojourns

SD_THRESHOLD = 0.00375


def test_trim_partial_second(sample_factory: Callable[..., pl.DataFrame]) -> None:
    """Test that trailing samples of an incomplete second are dropped."""
    samples = sample_factory([False, True], sampling_frequency=10, extra_samples=7)

    trimmed = aggregation.trim_partial_second(samples, 10)

    assert len(samples) == 27
    assert len(trimmed) == 20
    assert trimmed.equals(samples.head(20))


def test_trim_partial_second_complete(
    sample_factory: Callable[..., pl.DataFrame],
) -> None:
    """Test that complete seconds are left untouched."""
    samples = sample_factory([False, True], sampling_frequency=10)

    assert aggregation.trim_partial_second(samples, 10) is samples


def test_aggregate_seconds_two_runs(
    inactive_then_active: models.Recording,
) -> None:
    """Test that 200 inactive and 200 active seconds give two Stage 1 runs."""
    seconds = aggregation.aggregate_seconds(
        inactive_then_active.samples,
        inactive_then_active.sampling_frequency,
        SD_THRESHOLD,
    )
    runs = sojourns.segment_runs(seconds["step1_estimate"])

    assert len(seconds) == 400
    assert seconds["index"].to_list() == list(range(1, 401))
    assert runs["run_id"].n_unique() == 2
    assert sojourns.run_lengths(runs["run_id"]).to_list() == [200, 200]
    assert seconds["step1_estimate"][0] == "Inactive"
    assert seconds["step1_estimate"][399] == "Unclassified"


def _samples_with_magnitude(vm: list) -> pl.DataFrame:
    """Samples one second apart with the given vector magnitudes."""
    start = datetime.datetime(2024, 5, 2)
    return pl.DataFrame(
        {
            models.TIME_COLUMN: [
                start + datetime.timedelta(seconds=i) for i in range(len(vm))
            ],
            "AxisX": [0.0] * len(vm),
            "AxisY": [0.0] * len(vm),
            "AxisZ": [1.0] * len(vm),
            "VM": vm,
        }
    )


def test_aggregate_seconds_threshold_is_inclusive() -> None:
    """Test that a standard deviation equal to the threshold is inactive."""
    samples = _samples_with_magnitude([1.0, 2.0, 3.0, 1.0, 1.0, 1.0])

    seconds = aggregation.aggregate_seconds(samples, 3, 1.0)

    assert seconds["sd_vm"].to_list() == [1.0, 0.0]
    assert seconds["step1_estimate"].to_list() == ["Inactive", "Inactive"]


def test_aggregate_seconds_ignores_missing_values() -> None:
    """Test that null and NaN magnitudes are ignored and empty seconds get no label."""
    samples = _samples_with_magnitude(
        [1.0, None, 3.0, float("nan"), 2.0, 2.0, None, None, None]
    )

    seconds = aggregation.aggregate_seconds(samples, 3, SD_THRESHOLD)

    assert seconds["sd_vm"][0] == pytest.approx(np.std([1.0, 3.0], ddof=1))
    assert seconds["sd_vm"][1] == pytest.approx(0.0)
    assert seconds["sd_vm"][2] is None
    assert seconds["step1_estimate"].to_list() == ["Unclassified", "Inactive", None]


def test_expand_to_samples(sample_factory: Callable[..., pl.DataFrame]) -> None:
    """Test that second level columns are copied onto each sample."""
    samples = sample_factory([False, True, False], sampling_frequency=4)
    seconds = pl.DataFrame({"index": [1, 2, 3], "label": ["a", "b", "c"]})

    expanded = aggregation.expand_to_samples(samples, seconds, 4, columns=["label"])

    assert len(expanded) == 12
    assert expanded["index"].to_list() == [1] * 4 + [2] * 4 + [3] * 4
    assert expanded["label"].to_list() == ["a"] * 4 + ["b"] * 4 + ["c"] * 4
    assert expanded[models.TIME_COLUMN].equals(samples[models.TIME_COLUMN])
