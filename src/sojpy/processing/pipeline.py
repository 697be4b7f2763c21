"""The Soj-g sojourn segmentation and classification pipeline.

Soj-g labels wrist accelerometer data in three stages:
    1. Seconds whose vector magnitude standard deviation is at or below a
       threshold are labelled Inactive, all others Unclassified.
    2. Runs of equal Stage 1 labels are cut into short nested sojourns which are
       classified as Stationary or Active.
    3. Runs of equal Stage 2 labels form the final sojourns. Sojourns that are
       too long are partitioned, and every sojourn is classified for intensity,
       activity type, and locomotion.

The algorithm follows Marcotte et al. (2021).
"""

from typing import Optional

import polars as pl
import pydantic

from sojpy.core import config, exceptions, models
from sojpy.processing import aggregation, classifiers, features, labels, sojourns

logger = config.get_logger()

STEP2_SOJOURN = "step2_sojourn_index"
STEP2_DURATION = "step2_sojourn_duration"
STEP3_SOJOURN = "step3_sojourn_index"
STEP3_DURATION = "step3_sojourn_duration"

STEP3_ESTIMATES = {
    classifiers.ModelId.stage3_intensity: "step3_estimate_intensity",
    classifiers.ModelId.stage3_type: "step3_estimate_type",
    classifiers.ModelId.stage3_locomotion: "step3_estimate_locomotion",
}


class SojgOutput(pydantic.BaseModel):
    """The tables produced by a Soj-g run, at sample, second and sojourn level.

    Attributes:
        samples: The raw samples, truncated to complete seconds, with the
            1-based second index.
        seconds: One row per second with the Stage 1 and Stage 2 labels and the
            sojourn ids of both stages.
        sojourns: One row per final sojourn with its features, its duration, the
            Stage 2 label of its first second, and the Stage 3 labels.
        sampling_frequency: Number of samples per second.
    """

    model_config = pydantic.ConfigDict(arbitrary_types_allowed=True)

    samples: pl.DataFrame
    seconds: pl.DataFrame
    sojourns: pl.DataFrame
    sampling_frequency: int

    def session(self) -> pl.DataFrame:
        """Total minutes per intensity, type, and locomotion category.

        Total_minutes is the sum of the four intensity categories and
        MVPA_minutes the sum of moderate and vigorous minutes.

        Returns:
            A single row DataFrame.
        """
        intensity = pl.col("step3_estimate_intensity")
        activity_type = pl.col("step3_estimate_type")
        locomotion = pl.col("step3_estimate_locomotion")

        def minutes(condition: pl.Expr) -> pl.Expr:
            return pl.col("step3_durations").filter(condition).sum() / 60

        summary = self.sojourns.select(
            minutes(intensity == labels.IntensityLabel.sedentary.value).alias(
                "Sedentary_minutes"
            ),
            minutes(intensity == labels.IntensityLabel.light.value).alias(
                "Light_minutes"
            ),
            minutes(intensity == labels.IntensityLabel.moderate.value).alias(
                "Moderate_minutes"
            ),
            minutes(intensity == labels.IntensityLabel.vigorous.value).alias(
                "Vigorous_minutes"
            ),
            minutes(activity_type == labels.TypeLabel.sitting_lying.value).alias(
                "Sitting_Lying_minutes"
            ),
            minutes(activity_type == labels.TypeLabel.stationary_plus.value).alias(
                "Stationary_minutes"
            ),
            minutes(activity_type == labels.TypeLabel.walking.value).alias(
                "Walking_minutes"
            ),
            minutes(activity_type == labels.TypeLabel.running.value).alias(
                "Running_minutes"
            ),
            minutes(locomotion == labels.LocomotionLabel.locomotion.value).alias(
                "Locomotion_minutes"
            ),
        )
        return summary.select(
            "Sedentary_minutes",
            "Light_minutes",
            "Moderate_minutes",
            "Vigorous_minutes",
            (pl.col("Moderate_minutes") + pl.col("Vigorous_minutes")).alias(
                "MVPA_minutes"
            ),
            "Sitting_Lying_minutes",
            "Stationary_minutes",
            "Walking_minutes",
            "Running_minutes",
            "Locomotion_minutes",
            (
                pl.col("Sedentary_minutes")
                + pl.col("Light_minutes")
                + pl.col("Moderate_minutes")
                + pl.col("Vigorous_minutes")
            ).alias("Total_minutes"),
        )

    def sojourn(self) -> pl.DataFrame:
        """One row per final sojourn with its features and all labels."""
        return self.sojourns

    def seconds_table(self) -> pl.DataFrame:
        """One row per second with all labels broadcast down from the sojourns."""
        return sojourns.broadcast(
            self.seconds,
            self.sojourns,
            key=STEP3_SOJOURN,
            columns=list(STEP3_ESTIMATES.values()),
        )

    def raw(self) -> pl.DataFrame:
        """One row per sample with all labels broadcast down from the seconds."""
        seconds = self.seconds_table()
        return aggregation.expand_to_samples(
            self.samples.drop(aggregation.SECOND_INDEX),
            seconds,
            self.sampling_frequency,
            columns=[
                column
                for column in seconds.columns
                if column not in (models.TIME_COLUMN, aggregation.SECOND_INDEX)
            ],
        )

    def export(self, export_format: str) -> pl.DataFrame:
        """Return the output table of the requested format.

        Args:
            export_format: One of 'session', 'sojourn', 'seconds' or 'raw'.

        Returns:
            The output table.

        Raises:
            InvalidExportFormatError: If the format is not supported.
        """
        if export_format == "session":
            return self.session()
        elif export_format == "sojourn":
            return self.sojourn()
        elif export_format == "seconds":
            return self.seconds_table()
        elif export_format == "raw":
            return self.raw()

        raise exceptions.InvalidExportFormatError(
            f"Invalid export_format: {export_format}. "
            f"Valid options are: {models.EXPORT_FORMATS}."
        )


class SojgPipeline:
    """Runs the three Soj-g stages on a recording.

    Attributes:
        model_set: The trained Stage 2 and Stage 3 classifiers.
        feature_summarizer: Computes the features of each sojourn.
        parameters: The Soj-g tuning parameters.
    """

    def __init__(
        self,
        model_set: classifiers.ModelSet,
        feature_summarizer: Optional[features.AbstractFeatureSummarizer] = None,
        parameters: Optional[models.SojgParameters] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            model_set: The trained classifiers.
            feature_summarizer: The feature summarizer. Defaults to the
                SignalFeatureSummarizer.
            parameters: The tuning parameters. Defaults to SojgParameters().
        """
        self.model_set = model_set
        self.feature_summarizer = (
            feature_summarizer or features.SignalFeatureSummarizer()
        )
        self.parameters = parameters or models.SojgParameters()

    def run(self, recording: models.Recording) -> SojgOutput:
        """Label a recording.

        Args:
            recording: The raw recording.

        Returns:
            The sample, second and sojourn level results.

        Raises:
            FeatureComputationError: If the recording holds less than one second
                of data or features cannot be computed.
            SchemaMismatchError: If a classifier expects a feature that is not
                computed.
            LabelEncodingError: If a classifier returns unknown labels.
        """
        frequency = recording.sampling_frequency
        samples = aggregation.trim_partial_second(recording.samples, frequency)
        if samples.is_empty():
            raise exceptions.FeatureComputationError(
                "Recording holds less than one second of data."
            )

        seconds = self._stage1(samples, frequency)
        seconds, stage2_sojourns = self._stage2(samples, seconds, frequency)
        seconds, stage3_sojourns = self._stage3(samples, seconds, frequency)

        logger.debug(
            "Soj-g complete: %s seconds, %s stage 2 sojourns, %s stage 3 sojourns.",
            len(seconds),
            len(stage2_sojourns),
            len(stage3_sojourns),
        )
        return SojgOutput(
            samples=aggregation.with_second_index(samples, frequency),
            seconds=seconds,
            sojourns=stage3_sojourns,
            sampling_frequency=frequency,
        )

    def _stage1(self, samples: pl.DataFrame, frequency: int) -> pl.DataFrame:
        """Label likely inactive seconds with the standard deviation threshold."""
        threshold = self.parameters.step1_sd_threshold
        logger.info(
            "...Identifying likely inactive periods using sd_vm threshold = %s",
            threshold,
        )
        return aggregation.aggregate_seconds(samples, frequency, threshold)

    def _stage2(
        self, samples: pl.DataFrame, seconds: pl.DataFrame, frequency: int
    ) -> tuple[pl.DataFrame, pl.DataFrame]:
        """Classify short nested windows of the Stage 1 runs."""
        logger.info("...Segmenting remaining unlabeled periods into smaller windows")
        seconds = self._segment(
            seconds,
            label_column="step1_estimate",
            sojourn_column=STEP2_SOJOURN,
            duration_column=STEP2_DURATION,
            trigger_length=self.parameters.step2_nest_length,
            nest_length=self.parameters.step2_nest_length,
        )

        logger.info("...Computing signal features in nested sojourn windows")
        stage2_sojourns = self._summarize(samples, seconds, STEP2_SOJOURN, frequency)
        stage2_sojourns = stage2_sojourns.with_columns(
            sojourns.run_lengths(seconds[STEP2_SOJOURN]).alias("step2_durations")
        )
        stage2_sojourns = stage2_sojourns.with_columns(
            self.model_set.classify(
                stage2_sojourns, classifiers.ModelId.stage2_binary
            ).alias("step2_estimate")
        )

        seconds = sojourns.broadcast(
            seconds, stage2_sojourns, key=STEP2_SOJOURN, columns=["step2_estimate"]
        )
        return seconds, stage2_sojourns

    def _stage3(
        self, samples: pl.DataFrame, seconds: pl.DataFrame, frequency: int
    ) -> tuple[pl.DataFrame, pl.DataFrame]:
        """Merge the Stage 2 labels into sojourns and classify them."""
        logger.info("...Computing signal features in final sojourns")
        seconds = self._segment(
            seconds,
            label_column="step2_estimate",
            sojourn_column=STEP3_SOJOURN,
            duration_column=STEP3_DURATION,
            trigger_length=self.parameters.step3_orig_soj_length_min,
            nest_length=self.parameters.step3_nest_length,
        )

        stage3_sojourns = self._summarize(samples, seconds, STEP3_SOJOURN, frequency)
        stage3_sojourns = stage3_sojourns.with_columns(
            sojourns.run_lengths(seconds[STEP3_SOJOURN]).alias("step3_durations")
        ).join(
            sojourns.reduce_first(seconds, STEP3_SOJOURN, ["step2_estimate"]),
            on=STEP3_SOJOURN,
            how="left",
            maintain_order="left",
        )

        logger.info("...Classifying activity intensity, type, and locomotion")
        stage3_sojourns = stage3_sojourns.with_columns(
            [
                self.model_set.classify(stage3_sojourns, model_id).alias(column)
                for model_id, column in STEP3_ESTIMATES.items()
            ]
        )
        return seconds, stage3_sojourns

    def _segment(
        self,
        seconds: pl.DataFrame,
        label_column: str,
        sojourn_column: str,
        duration_column: str,
        trigger_length: int,
        nest_length: int,
    ) -> pl.DataFrame:
        """Add nested sojourn ids and run durations derived from a label column."""
        runs = sojourns.segment_runs(seconds[label_column])
        nested = sojourns.nest_sojourns(
            runs["run_id"],
            trigger_length=trigger_length,
            nest_length=nest_length,
            step=self.parameters.nest_step,
        )
        return seconds.with_columns(
            nested.alias(sojourn_column), runs["duration"].alias(duration_column)
        )

    def _summarize(
        self,
        samples: pl.DataFrame,
        seconds: pl.DataFrame,
        sojourn_column: str,
        frequency: int,
    ) -> pl.DataFrame:
        """Compute one row of features per sojourn of a sojourn id column.

        Raises:
            FeatureComputationError: If the summarizer does not return exactly one
                row per sojourn.
        """
        sample_table = aggregation.expand_to_samples(
            samples, seconds, frequency, columns=[sojourn_column]
        )
        sojourn_features = self.feature_summarizer.summarize(
            sample_table, sojourn_column, frequency
        )

        expected = seconds[sojourn_column].unique(maintain_order=True)
        if len(sojourn_features) != len(expected) or not sojourn_features[
            sojourn_column
        ].equals(expected):
            raise exceptions.FeatureComputationError(
                f"Expected features for {len(expected)} sojourns in "
                f"'{sojourn_column}', got {len(sojourn_features)} rows."
            )
        return sojourn_features
