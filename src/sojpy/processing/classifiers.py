"""Trained classifiers of the Soj-g stages.

The classifiers are not part of sojpy. They are injected through a ModelSet,
either built from any objects implementing AbstractClassifier or loaded from a
directory of joblib files, one per model id:

    stage2_binary.joblib
    stage3_intensity.joblib
    stage3_type.joblib
    stage3_locomotion.joblib

Each file holds either a fitted scikit-learn style estimator that exposes
`feature_names_in_`, or a dictionary with the keys 'model', 'feature_columns'
and, optionally, 'categories'.
"""

import abc
import pathlib
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Union

import joblib
import polars as pl
import pydantic

from sojpy.core import config, exceptions
from sojpy.processing import labels

logger = config.get_logger()


class ModelId(str, Enum):
    """Names of the four classifiers used by the pipeline."""

    stage2_binary = "stage2_binary"
    stage3_intensity = "stage3_intensity"
    stage3_type = "stage3_type"
    stage3_locomotion = "stage3_locomotion"


LABEL_TYPES = {
    ModelId.stage2_binary: labels.Stage2Label,
    ModelId.stage3_intensity: labels.IntensityLabel,
    ModelId.stage3_type: labels.TypeLabel,
    ModelId.stage3_locomotion: labels.LocomotionLabel,
}

DEFAULT_CATEGORIES = {
    "step2_estimate": [label.value for label in labels.Stage2Label],
}


class AbstractClassifier(abc.ABC):
    """Abstract class defining the interface for sojourn classifiers."""

    @abc.abstractmethod
    def predict(self, features: pl.DataFrame) -> Sequence[Any]:
        """Classifiers must contain a predict function.

        The function receives one row of features per sojourn and must return
        exactly one label, or label code, per row.
        """
        pass


class EstimatorClassifier(AbstractClassifier):
    """Adapter for fitted scikit-learn style estimators.

    Attributes:
        estimator: The fitted estimator, anything with a predict method that
            accepts a 2D numpy array.
        feature_columns: The feature table columns, in the order the estimator
            was trained on.
        categories: Ordered categories of label valued feature columns. These
            columns are passed to the estimator as 1-based category codes.
    """

    def __init__(
        self,
        estimator: Any,
        feature_columns: Optional[Sequence[str]] = None,
        categories: Optional[Dict[str, Sequence[str]]] = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            estimator: The fitted estimator.
            feature_columns: The feature columns the estimator expects. Taken
                from the estimator's feature_names_in_ when not given.
            categories: Ordered categories of label valued feature columns.
                Defaults to the Stage 2 labels for the 'step2_estimate' column.

        Raises:
            SchemaMismatchError: If the feature columns are neither given nor
                stored on the estimator.
        """
        if feature_columns is None:
            feature_columns = getattr(estimator, "feature_names_in_", None)
        if feature_columns is None:
            raise exceptions.SchemaMismatchError(
                "The estimator does not define its feature columns. "
                "Provide feature_columns explicitly."
            )
        self.estimator = estimator
        self.feature_columns = [str(column) for column in feature_columns]
        self.categories = {**DEFAULT_CATEGORIES, **(categories or {})}

    def predict(self, features: pl.DataFrame) -> Sequence[Any]:
        """Predict one label per row of the feature table.

        Args:
            features: The feature table.

        Returns:
            The estimator's predictions.

        Raises:
            SchemaMismatchError: If the feature table lacks an expected column or
                a label valued column holds an unknown category.
        """
        missing = [
            column for column in self.feature_columns if column not in features
        ]
        if missing:
            raise exceptions.SchemaMismatchError(
                f"Feature table is missing columns expected by the model: {missing}."
            )

        model_input = features.select(
            [self._encode(column) for column in self.feature_columns]
        )
        for column, categories in self.categories.items():
            if column in model_input.columns and model_input[column].null_count() > 0:
                raise exceptions.SchemaMismatchError(
                    f"Column '{column}' holds values outside of {list(categories)}."
                )

        return list(self.estimator.predict(model_input.to_numpy()))

    def _encode(self, column: str) -> pl.Expr:
        """Expression selecting a model input column, encoding label columns."""
        if column not in self.categories:
            return pl.col(column)
        codes = {
            category: code
            for code, category in enumerate(self.categories[column], start=1)
        }
        return (
            pl.col(column)
            .cast(pl.String)
            .replace_strict(codes, default=None, return_dtype=pl.Float64)
        )


class ModelSet(pydantic.BaseModel):
    """The four classifiers used by the pipeline, addressed by ModelId."""

    model_config = pydantic.ConfigDict(arbitrary_types_allowed=True)

    stage2_binary: AbstractClassifier
    stage3_intensity: AbstractClassifier
    stage3_type: AbstractClassifier
    stage3_locomotion: AbstractClassifier

    def classify(
        self, features: pl.DataFrame, model_id: Union[ModelId, str]
    ) -> pl.Series:
        """Apply one of the classifiers and map its output to canonical labels.

        Args:
            features: One row of features per sojourn.
            model_id: The classifier to apply.

        Returns:
            A Series with one label per row, using the label set of the model.

        Raises:
            LabelEncodingError: If the classifier does not return one valid,
                non-missing label per row.
        """
        model_id = ModelId(model_id)
        logger.debug("Classifying %s sojourns with %s.", len(features), model_id.value)
        predictions = getattr(self, model_id.value).predict(features)

        if len(predictions) != len(features):
            raise exceptions.LabelEncodingError(
                f"Model {model_id.value} returned {len(predictions)} labels for "
                f"{len(features)} sojourns."
            )
        predicted = labels.canonicalize(predictions, LABEL_TYPES[model_id])
        if predicted.null_count() > 0:
            raise exceptions.LabelEncodingError(
                f"Model {model_id.value} returned {predicted.null_count()} missing "
                "labels."
            )
        return predicted

    @classmethod
    def from_directory(cls, directory: Union[pathlib.Path, str]) -> "ModelSet":
        """Load all classifiers from a directory of joblib files.

        Args:
            directory: Directory holding one '<model_id>.joblib' file per model.

        Returns:
            The loaded ModelSet.

        Raises:
            ModelLoadingError: If a model file is missing or cannot be loaded.
        """
        directory = pathlib.Path(directory)
        return cls(
            **{
                model_id.value: load_classifier(directory / f"{model_id.value}.joblib")
                for model_id in ModelId
            }
        )


def load_classifier(path: pathlib.Path) -> EstimatorClassifier:
    """Load a single classifier saved with joblib.

    Args:
        path: The joblib file.

    Returns:
        The estimator wrapped in an EstimatorClassifier.

    Raises:
        ModelLoadingError: If the file does not exist or cannot be read.
    """
    if not path.is_file():
        raise exceptions.ModelLoadingError(f"Model file {path} does not exist.")
    try:
        payload = joblib.load(path)
    except Exception as e:
        raise exceptions.ModelLoadingError(f"Could not load model {path}: {e}") from e

    logger.debug("Loaded model from %s.", path)
    if isinstance(payload, dict):
        return EstimatorClassifier(
            payload["model"],
            feature_columns=payload.get("feature_columns"),
            categories=payload.get("categories"),
        )
    return EstimatorClassifier(payload)
