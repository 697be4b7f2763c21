"""Signal features computed over the raw samples of each sojourn."""

import abc
from typing import List

import polars as pl

from sojpy.core import config, exceptions, models

logger = config.get_logger()

VECTOR_MAGNITUDE_PERCENTILES = (10, 25, 50, 75, 90)


class AbstractFeatureSummarizer(abc.ABC):
    """Abstract class defining the interface for sojourn feature summarizers."""

    @abc.abstractmethod
    def summarize(
        self,
        samples: pl.DataFrame,
        sojourn_column: str,
        sampling_frequency: int,
    ) -> pl.DataFrame:
        """Feature summarizers must contain a summarize function.

        The function receives the raw samples with a column of sojourn ids and
        must return one row per sojourn, in order of appearance, holding the
        sojourn id column, a 'duration' column in seconds, and the features.
        """
        pass


class SignalFeatureSummarizer(AbstractFeatureSummarizer):
    """Time domain features of the vector magnitude and the three axes.

    For each sojourn the following features are computed:
        - mean_vm, sd_vm, cv_vm: mean, standard deviation and coefficient of
          variation (in percent, 0 when the mean is 0) of the vector magnitude.
        - acf_vm: lag-one autocorrelation of the vector magnitude, 0 for
          constant sojourns.
        - p10_vm, p25_vm, p50_vm, p75_vm, p90_vm: vector magnitude percentiles.
        - mean_x, mean_y, mean_z, sd_x, sd_y, sd_z: per axis mean and standard
          deviation.
        - mean_enmo: mean Euclidean norm minus one, negative values set to zero.
        - mean_anglez: mean angle of the acceleration vector relative to the
          horizontal plane, in degrees.

    Null and NaN samples are ignored. Standard deviations of single sample
    sojourns are 0.
    """

    def summarize(
        self,
        samples: pl.DataFrame,
        sojourn_column: str,
        sampling_frequency: int,
    ) -> pl.DataFrame:
        """Compute the features of every sojourn.

        Args:
            samples: The raw samples with the Timestamp, axis and VM columns.
            sojourn_column: Name of the column holding the sojourn id of each
                sample.
            sampling_frequency: Number of samples per second.

        Returns:
            One row per sojourn with the sojourn id, 'duration' and the features.

        Raises:
            FeatureComputationError: If there are no samples, the sojourn column
                is missing, or any feature could not be computed.
        """
        if samples.is_empty():
            raise exceptions.FeatureComputationError(
                "Cannot compute features without samples."
            )
        if sojourn_column not in samples.columns:
            raise exceptions.FeatureComputationError(
                f"Samples do not contain the sojourn column '{sojourn_column}'."
            )
        logger.debug("Computing features over '%s'.", sojourn_column)

        features = samples.group_by(sojourn_column, maintain_order=True).agg(
            (pl.len() / sampling_frequency).alias("duration"),
            *self._feature_expressions(),
        )
        _check_features(features, sojourn_column)
        return features

    @staticmethod
    def _feature_expressions() -> List[pl.Expr]:
        """Polars aggregations producing one value per sojourn."""
        x, y, z = (
            pl.col(axis).cast(pl.Float64).fill_nan(None) for axis in models.AXIS_COLUMNS
        )
        vm = pl.col(models.VECTOR_MAGNITUDE_COLUMN).cast(pl.Float64).fill_nan(None)

        expressions = [
            vm.mean().alias("mean_vm"),
            vm.std().fill_null(0.0).alias("sd_vm"),
            pl.when(vm.mean() != 0)
            .then(vm.std().fill_null(0.0) / vm.mean() * 100)
            .otherwise(0.0)
            .alias("cv_vm"),
        ]
        centered = vm - vm.mean()
        variance = centered.pow(2).sum()
        expressions.append(
            pl.when(variance > 0)
            .then((centered * centered.shift(-1)).sum() / variance)
            .otherwise(0.0)
            .alias("acf_vm")
        )
        expressions += [
            vm.quantile(percentile / 100, interpolation="linear").alias(
                f"p{percentile}_vm"
            )
            for percentile in VECTOR_MAGNITUDE_PERCENTILES
        ]
        for name, axis in zip(("x", "y", "z"), (x, y, z)):
            expressions += [
                axis.mean().alias(f"mean_{name}"),
                axis.std().fill_null(0.0).alias(f"sd_{name}"),
            ]
        expressions += [
            (vm - 1).clip(lower_bound=0).mean().alias("mean_enmo"),
            pl.arctan2(z, (x.pow(2) + y.pow(2)).sqrt())
            .degrees()
            .mean()
            .alias("mean_anglez"),
        ]
        return expressions


def _check_features(features: pl.DataFrame, sojourn_column: str) -> None:
    """Raise if any sojourn has a missing or non-finite feature.

    Raises:
        FeatureComputationError: If any feature value is null or NaN.
    """
    feature_columns = [
        column for column in features.columns if column != sojourn_column
    ]
    invalid = features.filter(
        pl.any_horizontal(
            [
                pl.col(column).is_null() | pl.col(column).is_nan()
                for column in feature_columns
            ]
        )
    )
    if not invalid.is_empty():
        raise exceptions.FeatureComputationError(
            f"Features could not be computed for {len(invalid)} sojourn(s), "
            f"first affected sojourn: {invalid[sojourn_column][0]}."
        )
