"""Closed label sets of the Soj-g classification stages."""

import numbers
from enum import Enum
from typing import Iterable, Type

import polars as pl

from sojpy.core import exceptions


class Stage1Label(str, Enum):
    """Result of the standard deviation threshold rule."""

    inactive = "Inactive"
    unclassified = "Unclassified"


class Stage2Label(str, Enum):
    """Activity state assigned by the Stage 2 model."""

    stationary = "Stationary"
    active = "Active"


class IntensityLabel(str, Enum):
    """Activity intensity assigned by the Stage 3 intensity model."""

    sedentary = "Sedentary"
    light = "Light"
    moderate = "Moderate"
    vigorous = "Vigorous"


class TypeLabel(str, Enum):
    """Activity type assigned by the Stage 3 type model."""

    sitting_lying = "Sitting_Lying"
    stationary_plus = "Stationary+"
    walking = "Walking"
    running = "Running"


class LocomotionLabel(str, Enum):
    """Locomotion status assigned by the Stage 3 locomotion model."""

    locomotion = "Locomotion"
    non_locomotion = "Non-locomotion"


def polars_dtype(label_type: Type[Enum]) -> pl.Enum:
    """The polars Enum dtype with the categories of a label set, in order."""
    return pl.Enum([member.value for member in label_type])


def canonicalize(values: Iterable, label_type: Type[Enum]) -> pl.Series:
    """Map raw classifier output onto the canonical labels of a stage.

    Classifiers may return label members, label strings, or numeric factor codes.
    Numeric codes are read as 1-based positions in the declaration order of the
    label set, i.e. for Stage2Label a code of 1 is Stationary and 2 is Active.
    Missing values are kept as nulls.

    Args:
        values: The raw predictions, one per sojourn.
        label_type: The label set of the stage that produced the predictions.

    Returns:
        A polars Series with the label set's Enum dtype.

    Raises:
        LabelEncodingError: If a prediction cannot be mapped onto the label set.
    """
    members = list(label_type)
    by_value = {member.value: member.value for member in members}
    canonical = []
    for value in values:
        if value is None:
            canonical.append(None)
        elif isinstance(value, label_type):
            canonical.append(value.value)
        elif isinstance(value, str) and value in by_value:
            canonical.append(by_value[value])
        else:
            canonical.append(members[_code_to_position(value, label_type)].value)

    return pl.Series(canonical, dtype=polars_dtype(label_type))


def _code_to_position(value: object, label_type: Type[Enum]) -> int:
    """Converts a 1-based numeric label code to a 0-based member position."""
    code: object = value
    if isinstance(value, str):
        try:
            code = float(value)
        except ValueError:
            code = None
    if (
        isinstance(code, numbers.Real)
        and not isinstance(code, bool)
        and float(code).is_integer()
        and 1 <= int(code) <= len(label_type)
    ):
        return int(code) - 1

    raise exceptions.LabelEncodingError(
        f"Cannot map prediction {value!r} onto {label_type.__name__} "
        f"labels {[member.value for member in label_type]}."
    )
