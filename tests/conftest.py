"""Fixtures used by pytest."""

import pathlib
from datetime import datetime, timedelta
from typing import Any, Callable, Sequence

import numpy as np
import polars as pl
import pytest

from sojpy.core import models
from sojpy.processing import classifiers

SAMPLING_FREQUENCY = 80


class RuleClassifier(classifiers.AbstractClassifier):
    """Labels a sojourn by comparing one feature to a cutoff."""

    def __init__(self, column: str, cutoff: float, below: Any, above: Any) -> None:
        """Store the rule."""
        self.column = column
        self.cutoff = cutoff
        self.below = below
        self.above = above

    def predict(self, features: pl.DataFrame) -> Sequence[Any]:
        """Predict one label per row."""
        return [
            self.above if value > self.cutoff else self.below
            for value in features[self.column]
        ]


def make_samples(
    active_seconds: Sequence[bool],
    sampling_frequency: int = SAMPLING_FREQUENCY,
    extra_samples: int = 0,
) -> pl.DataFrame:
    """Synthetic samples, one block of sampling_frequency rows per second.

    Inactive seconds have a constant vector magnitude of 1 g, active seconds
    alternate between 0.5 g and 1.5 g.
    """
    alternating = 1 + 0.5 * (-1) ** np.arange(sampling_frequency)
    vm = np.concatenate(
        [
            alternating if active else np.ones(sampling_frequency)
            for active in active_seconds
        ]
        + [np.ones(extra_samples)]
    )
    start = datetime(2024, 5, 2)
    step = timedelta(seconds=1 / sampling_frequency)
    return pl.DataFrame(
        {
            models.TIME_COLUMN: [start + i * step for i in range(len(vm))],
            "AxisX": np.full(len(vm), 0.1),
            "AxisY": np.full(len(vm), 0.1),
            "AxisZ": vm,
            "VM": vm,
        }
    )


@pytest.fixture
def sample_factory() -> Callable[..., pl.DataFrame]:
    """Factory for synthetic samples."""
    return make_samples


@pytest.fixture
def recording_factory() -> Callable[..., models.Recording]:
    """Factory for synthetic recordings."""

    def _make(
        active_seconds: Sequence[bool],
        sampling_frequency: int = SAMPLING_FREQUENCY,
        extra_samples: int = 0,
    ) -> models.Recording:
        return models.Recording(
            samples=make_samples(active_seconds, sampling_frequency, extra_samples),
            sampling_frequency=sampling_frequency,
        )

    return _make


@pytest.fixture
def inactive_then_active() -> models.Recording:
    """A 400 second recording, inactive for 200 seconds and then active."""
    return models.Recording(
        samples=make_samples([False] * 200 + [True] * 200),
        sampling_frequency=SAMPLING_FREQUENCY,
    )


@pytest.fixture
def model_set() -> classifiers.ModelSet:
    """Rule based classifiers splitting sojourns on the vector magnitude sd."""
    return classifiers.ModelSet(
        stage2_binary=RuleClassifier("sd_vm", 0.1, "Stationary", "Active"),
        stage3_intensity=RuleClassifier("sd_vm", 0.1, "Sedentary", "Vigorous"),
        stage3_type=RuleClassifier("sd_vm", 0.1, "Sitting_Lying", "Running"),
        stage3_locomotion=RuleClassifier(
            "sd_vm", 0.1, "Non-locomotion", "Locomotion"
        ),
    )


@pytest.fixture
def sample_csv(tmp_path: pathlib.Path) -> pathlib.Path:
    """A 300 second recording saved as a csv file."""
    path = tmp_path / "recording.csv"
    make_samples([False] * 100 + [True] * 100 + [False] * 100).write_csv(path)
    return path
