"""CLI for sojpy."""

import logging
import pathlib
from enum import Enum

import typer

from sojpy.core import config, exceptions

logger = config.get_logger()
app = typer.Typer(
    help="Run the Soj-g activity classification pipeline.",
)


class OutputFileType(str, Enum):
    """Valid output file types for saving data."""

    csv = ".csv"
    parquet = ".parquet"


class ExportFormat(str, Enum):
    """Setting an export format class for typer.

    This class is used to define the literal types that are allowed for
    the output table, and parsing the strings for the orchestrator.
    """

    session = "session"
    sojourn = "sojourn"
    seconds = "seconds"
    raw = "raw"


def version_check(version: bool) -> None:
    """Print the current version of sojpy and exit."""
    if version:
        typer.echo(f"sojpy version: {config.get_version()}")
        raise typer.Exit()


@app.command()
def main(
    input: pathlib.Path = typer.Argument(
        ..., help="Path to the input data.", exists=True
    ),
    models_dir: pathlib.Path = typer.Option(
        ...,
        "-m",
        "--models",
        help="Directory holding the trained classifiers as joblib files: "
        "stage2_binary, stage3_intensity, stage3_type, and stage3_locomotion.",
        exists=True,
        file_okay=False,
    ),
    output: pathlib.Path = typer.Option(
        None,
        "-o",
        "--output",
        help="Path where data will be saved. Supports .csv and .parquet formats.",
    ),
    output_filetype: OutputFileType = typer.Option(
        ".csv",
        "-O",
        "--output-filetype",
        help="Format for save files when processing directories. ",
    ),
    export_format: ExportFormat = typer.Option(
        ExportFormat.session,
        "-f",
        "--export-format",
        help="Output table: 'session' totals in minutes, one row per 'sojourn', "
        "one row per second ('seconds'), or one row per 'raw' sample.",
        case_sensitive=False,
    ),
    sampling_frequency: int = typer.Option(
        None,
        "-s",
        "--sampling-frequency",
        help="Samples per second of the input data. "
        "Inferred from the timestamps if not given.",
        min=1,
    ),
    step1_sd_threshold: float = typer.Option(
        0.00375,
        "--sd-threshold",
        help="Vector magnitude standard deviation at or below which a second is "
        "labelled as likely inactive.",
        min=0,
    ),
    step2_nest_length: int = typer.Option(
        5,
        "--step2-nest-length",
        help="Window length in seconds for the stationary/active classification.",
        min=1,
    ),
    step3_nest_length: int = typer.Option(
        60,
        "--step3-nest-length",
        help="Window length in seconds used to partition long sojourns.",
        min=1,
    ),
    step3_orig_soj_length_min: int = typer.Option(
        180,
        "--step3-orig-soj-length-min",
        help="Sojourns longer than this many seconds are partitioned.",
        min=0,
    ),
    verbosity: bool = typer.Option(
        False,
        "-v",
        "--verbosity",
        help="Determines the level of verbosity. Use -v for DEBUG. "
        "Defaults to INFO if not included.",
    ),
    version: bool = typer.Option(
        False,
        "-V",
        "--version",
        help="Print the current version of sojpy and exit.",
        is_eager=True,
        callback=version_check,
    ),
) -> None:
    """Run the sojpy orchestrator with command line arguments."""
    from sojpy.core import orchestrator

    log_level = logging.INFO
    if verbosity:
        log_level = logging.DEBUG
    logger.setLevel(log_level)

    logger.debug("Running sojpy. arguments given: %s", locals())
    try:
        orchestrator.run(
            input=input,
            model_set=models_dir,
            output=output,
            export_format=export_format.value,  # type: ignore[arg-type] # Covered by ExportFormat Enum class
            sampling_frequency=sampling_frequency,
            step1_sd_threshold=step1_sd_threshold,
            step2_nest_length=step2_nest_length,
            step3_nest_length=step3_nest_length,
            step3_orig_soj_length_min=step3_orig_soj_length_min,
            verbosity=log_level,
            output_filetype=output_filetype.value,  # type: ignore[arg-type] # Covered by OutputFileType Enum class
        )
    except (exceptions.EmptyDirectoryError, exceptions.ModelLoadingError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
