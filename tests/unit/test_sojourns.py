"""Test the sojourns module."""

import numpy as np
import polars as pl
import pytest

from sojpy.processing import sojourns


def test_segment_runs() -> None:
    """Test run ids and durations of a simple label sequence."""
    labels = pl.Series(["a", "a", "b", "b", "b", "a"])

    runs = sojourns.segment_runs(labels)

    assert runs["run_id"].to_list() == [1, 1, 2, 2, 2, 3]
    assert runs["duration"].to_list() == [2, 2, 3, 3, 3, 1]


def test_segment_runs_first_position_is_run_one() -> None:
    """Test that a single label forms run 1."""
    runs = sojourns.segment_runs(pl.Series([7]))

    assert runs["run_id"].to_list() == [1]
    assert runs["duration"].to_list() == [1]


def test_segment_runs_missing_values_are_a_label() -> None:
    """Test that nulls start and end runs like any other label."""
    labels = pl.Series([1, None, None, 1, 1])

    runs = sojourns.segment_runs(labels)

    assert runs["run_id"].to_list() == [1, 2, 2, 3, 3]
    assert runs["duration"].to_list() == [1, 2, 2, 2, 2]


def test_segment_runs_enum_labels() -> None:
    """Test segmentation of Enum labels compares labels, not codes."""
    labels = pl.Series(
        ["Active", "Active", "Stationary", None],
        dtype=pl.Enum(["Stationary", "Active"]),
    )

    runs = sojourns.segment_runs(labels)

    assert runs["run_id"].to_list() == [1, 1, 2, 3]


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_segment_runs_properties(seed: int) -> None:
    """Test that run ids are non-decreasing and count the maximal runs."""
    rng = np.random.default_rng(seed)
    values = rng.integers(0, 3, size=500)
    expected_runs = 1 + int(np.count_nonzero(np.diff(values)))

    runs = sojourns.segment_runs(pl.Series(values))

    assert runs["run_id"][0] == 1
    assert (runs["run_id"].diff().drop_nulls() >= 0).all()
    assert runs["run_id"].n_unique() == expected_runs
    assert runs["run_id"].max() == expected_runs


def test_run_lengths() -> None:
    """Test lengths of consecutive blocks of ids."""
    ids = pl.Series([1.0, 1.0, 1.00001, 2.0, 2.0, 2.0])

    assert sojourns.run_lengths(ids).to_list() == [2, 1, 3]


@pytest.mark.parametrize("length", [0, 1, 5, 180])
def test_nest_sojourn_at_or_below_trigger(length: int) -> None:
    """Test that sojourns not longer than the trigger are returned unchanged."""
    sojourn = np.full(length, 4)

    nested = sojourns.nest_sojourn(sojourn, trigger_length=180, nest_length=60)

    assert np.array_equal(nested, sojourn)


def test_nest_sojourn_exact_multiple() -> None:
    """Test that k * L seconds are cut into k blocks of L seconds."""
    nested = sojourns.nest_sojourn(
        np.full(240, 3), trigger_length=180, nest_length=60
    )
    ids, counts = np.unique(nested, return_counts=True)

    assert len(ids) == 4
    assert np.all(counts == 60)
    assert np.all(np.diff(ids) > 0)
    assert np.array_equal(np.floor(ids), np.full(4, 3.0))


def test_nest_sojourn_short_tail_merges_backwards() -> None:
    """Test that a trailing partial block takes the id of the last full block."""
    nested = sojourns.nest_sojourn(
        np.full(200, 2), trigger_length=180, nest_length=60
    )

    assert np.all(nested[:60] == 2.0)
    assert np.allclose(nested[60:120], 2.00001)
    assert np.allclose(nested[120:], 2.00002)
    assert len(np.unique(nested)) == 3


def test_nest_sojourn_shorter_than_nest_length() -> None:
    """Test that a sojourn without a full block is not partitioned."""
    nested = sojourns.nest_sojourn(np.full(7, 1), trigger_length=5, nest_length=10)

    assert np.all(nested == 1.0)


def test_nest_sojourn_step_two_ids_per_block() -> None:
    """Test nesting when trigger and nest length are equal."""
    nested = sojourns.nest_sojourn(np.full(12, 5), trigger_length=5, nest_length=5)

    assert np.allclose(nested[:5], 5.0)
    assert np.allclose(nested[5:], 5.00001)


def test_nest_sojourn_colliding_ids() -> None:
    """Test an error is raised when nested ids would reach the next sojourn."""
    with pytest.raises(ValueError, match="would collide"):
        sojourns.nest_sojourn(
            np.full(30, 1), trigger_length=5, nest_length=5, step=0.5
        )


def test_nest_sojourn_invalid_nest_length() -> None:
    """Test an error is raised for a nest length of zero."""
    with pytest.raises(ValueError, match="nest_length must be at least 1."):
        sojourns.nest_sojourn(np.full(30, 1), trigger_length=5, nest_length=0)


def test_nest_sojourns_is_deterministic() -> None:
    """Test that nesting a whole id column gives identical results twice."""
    ids = pl.Series("ids", [1] * 13 + [2] * 3 + [3] * 10)

    first = sojourns.nest_sojourns(ids, trigger_length=5, nest_length=5)
    second = sojourns.nest_sojourns(ids, trigger_length=5, nest_length=5)

    assert first.equals(second)
    assert first.name == "ids"
    assert sojourns.run_lengths(first).to_list() == [5, 8, 3, 5, 5]
    assert sojourns.original_run_id(first).to_list() == ids.to_list()


def test_nest_sojourns_empty() -> None:
    """Test nesting an empty id column."""
    nested = sojourns.nest_sojourns(pl.Series("ids", []), 5, 5)

    assert nested.is_empty()
    assert nested.dtype == pl.Float64


def test_nest_sojourns_long_run_ids_stay_unique() -> None:
    """Test that a day long run nested into 5 second blocks stays below the next id."""
    ids = pl.Series([1] * 86400 + [2] * 10)

    nested = sojourns.nest_sojourns(ids, trigger_length=5, nest_length=5)

    assert nested.n_unique() == 86400 // 5 + 2
    assert nested[86399] < 2.0
    assert (nested.diff().drop_nulls() >= 0).all()


def test_broadcast_then_segment_is_lossless() -> None:
    """Test that broadcast sojourn labels reproduce the sojourn boundaries."""
    seconds = pl.DataFrame({"index": range(1, 11), "sojourn": [1.0] * 4 + [2.0] * 6})
    labels = pl.DataFrame({"sojourn": [1.0, 2.0], "label": ["Active", "Stationary"]})

    broadcast = sojourns.broadcast(seconds, labels, key="sojourn", columns=["label"])
    runs = sojourns.segment_runs(broadcast["label"])

    assert broadcast["index"].to_list() == list(range(1, 11))
    assert runs["run_id"].to_list() == [1] * 4 + [2] * 6
    assert sojourns.run_lengths(broadcast["sojourn"]).to_list() == [4, 6]


def test_reduce_first() -> None:
    """Test that each sojourn takes the value of its first row."""
    seconds = pl.DataFrame(
        {"sojourn": [1.0, 1.0, 1.00001, 2.0], "label": ["a", "b", "c", "d"]}
    )

    reduced = sojourns.reduce_first(seconds, key="sojourn", columns=["label"])

    assert reduced["sojourn"].to_list() == [1.0, 1.00001, 2.0]
    assert reduced["label"].to_list() == ["a", "c", "d"]
