"""Python based runner."""

import itertools
import logging
import pathlib
from typing import Dict, Literal, Optional, Union

from rich import progress

from sojpy.core import config, exceptions, models
from sojpy.io.readers import readers
from sojpy.io.writers import writers
from sojpy.processing import classifiers, pipeline

logger = config.get_logger()

VALID_FILE_TYPES = (".csv", ".parquet")

DEFAULT_STEP1_SD_THRESHOLD = 0.00375
DEFAULT_STEP2_NEST_LENGTH = 5
DEFAULT_STEP3_NEST_LENGTH = 60
DEFAULT_STEP3_ORIG_SOJ_LENGTH_MIN = 180

ExportFormat = Literal["session", "sojourn", "seconds", "raw"]


def run(
    input: Union[pathlib.Path, str],
    model_set: Union[classifiers.ModelSet, pathlib.Path, str],
    output: Optional[Union[pathlib.Path, str]] = None,
    export_format: ExportFormat = "session",
    sampling_frequency: Optional[int] = None,
    step1_sd_threshold: float = DEFAULT_STEP1_SD_THRESHOLD,
    step2_nest_length: int = DEFAULT_STEP2_NEST_LENGTH,
    step3_nest_length: int = DEFAULT_STEP3_NEST_LENGTH,
    step3_orig_soj_length_min: int = DEFAULT_STEP3_ORIG_SOJ_LENGTH_MIN,
    verbosity: int = logging.WARNING,
    output_filetype: Literal[".csv", ".parquet"] = ".csv",
) -> Union[writers.OrchestratorResults, Dict[str, writers.OrchestratorResults]]:
    """Runs Soj-g on single files, or directories.

    The run() function will execute the _run_file() function on individual files, or
    _run_directory() on entire directories. When the input path points to a file, the
    name of the save file will be taken from the given output path (if any). When the
    input path points to a directory the output path must be a valid directory as well.
    Output file names will be derived from original file names in the case of directory
    processing.

    Args:
        input: Path to the input file or directory of files to be read. Supports
            .csv, .parquet, .gt3x, and .bin files.
        model_set: The trained classifiers, or a directory holding them as joblib
            files.
        output: Path to directory data will be saved to. If processing a single file the
            path should end in the save file name in either .csv or .parquet formats.
        export_format: The output table: 'session' totals, one row per 'sojourn', per
            'seconds', or per 'raw' sample.
        sampling_frequency: Samples per second of the input. Inferred from the
            timestamps when not given.
        step1_sd_threshold: Seconds with a vector magnitude standard deviation at or
            below this value are labelled as likely inactive.
        step2_nest_length: Window length, in seconds, used for the Stage 2
            classification.
        step3_nest_length: Window length, in seconds, used to partition long Stage 3
            sojourns.
        step3_orig_soj_length_min: Longest Stage 3 sojourn, in seconds, that is not
            partitioned.
        verbosity: The logging level for the logger.
        output_filetype: Specifies the data format for the save files. Only used when
            processing directories.

    Returns:
        The output table in a save ready format as an OrchestratorResults object or
        as a dictionary of OrchestratorResults objects.

    Raises:
        InvalidExportFormatError: If the export format is not supported.
        ValueError: If any of the Soj-g parameters is invalid.
    """
    logger.setLevel(verbosity)

    input = pathlib.Path(input)
    output = pathlib.Path(output) if output is not None else None

    parameters = models.SojgParameters(
        step1_sd_threshold=step1_sd_threshold,
        step2_nest_length=step2_nest_length,
        step3_nest_length=step3_nest_length,
        step3_orig_soj_length_min=step3_orig_soj_length_min,
        export_format=export_format,
    )
    if sampling_frequency is not None and sampling_frequency <= 0:
        message = "Sampling frequency must be greater than 0."
        logger.error(message)
        raise ValueError(message)

    if not isinstance(model_set, classifiers.ModelSet):
        model_set = classifiers.ModelSet.from_directory(model_set)
    sojg = pipeline.SojgPipeline(model_set=model_set, parameters=parameters)

    if input.is_file():
        return _run_file(
            input=input,
            sojg=sojg,
            output=output,
            sampling_frequency=sampling_frequency,
            verbosity=verbosity,
        )

    return _run_directory(
        input=input,
        sojg=sojg,
        output=output,
        sampling_frequency=sampling_frequency,
        verbosity=verbosity,
        output_filetype=output_filetype,
    )


def _run_directory(
    input: pathlib.Path,
    sojg: pipeline.SojgPipeline,
    output: Optional[pathlib.Path] = None,
    sampling_frequency: Optional[int] = None,
    verbosity: int = logging.WARNING,
    output_filetype: Literal[".csv", ".parquet"] = ".csv",
) -> Dict[str, writers.OrchestratorResults]:
    """Runs Soj-g on every recording in a directory.

    The input and output (if any) paths must be directories. Output file names will be
    derived from input file names. A file that fails to process is logged and
    skipped.

    Args:
        input: Path to the input directory of files to be read.
        sojg: The configured Soj-g pipeline.
        output: Path to directory data will be saved to.
        sampling_frequency: Samples per second of the input files. Inferred per file
            when not given.
        verbosity: The logging level for the logger.
        output_filetype: Specifies the data format for the save files.

    Returns:
        All output tables in a save ready format as a dictionary of
        OrchestratorResults objects, keyed by input file.

    Raises:
        ValueError: If the output given is not a directory.
        ValueError: If the output_filetype is not a valid type.
        EmptyDirectoryError: If the input directory contained no files of a valid
            type.
    """
    if output is not None:
        if output.is_file():
            raise ValueError(
                "Output is a file, but must be a directory when input is a directory."
            )
        if output_filetype not in VALID_FILE_TYPES:
            raise ValueError(
                "Invalid output_filetype: "
                f"{output_filetype}. Valid options are: {VALID_FILE_TYPES}."
            )

    file_names = sorted(
        itertools.chain.from_iterable(
            input.glob(f"*{file_type}") for file_type in readers.VALID_FILE_TYPES
        )
    )

    if not file_names:
        raise exceptions.EmptyDirectoryError(
            f"Directory {input} contains no {', '.join(readers.VALID_FILE_TYPES)} "
            "files."
        )
    results_dict = {}
    with progress.Progress(
        progress.SpinnerColumn(),
        progress.TextColumn("[progress.description]{task.description}"),
        progress.BarColumn(),
        progress.TaskProgressColumn(),
        console=None,
    ) as progress_bar:
        task = progress_bar.add_task(
            f"[cyan]Processing files in {input.name}...", total=len(file_names)
        )

        for file in file_names:
            output_file_path = (
                output / pathlib.Path(file.stem).with_suffix(output_filetype)
                if output
                else None
            )
            logger.debug(
                "Processing directory: %s, current file: %s, save path: %s",
                input,
                file,
                output_file_path,
            )
            try:
                results_dict[str(file)] = _run_file(
                    input=file,
                    sojg=sojg,
                    output=output_file_path,
                    sampling_frequency=sampling_frequency,
                    verbosity=verbosity,
                )
            except Exception as e:
                logger.error("Did not run file: %s, Error: %s", file, e)
            progress_bar.update(task, advance=1)
    logger.info("Processing for directory %s completed successfully.", input)
    return results_dict


def _run_file(
    input: pathlib.Path,
    sojg: pipeline.SojgPipeline,
    output: Optional[pathlib.Path] = None,
    sampling_frequency: Optional[int] = None,
    verbosity: int = logging.WARNING,
) -> writers.OrchestratorResults:
    """Runs Soj-g on a single recording and returns the requested output table.

    Args:
        input: Path to the input file to be read.
        sojg: The configured Soj-g pipeline.
        output: Path to save data to. The path should end in the save file name in
            either .csv or .parquet formats.
        sampling_frequency: Samples per second of the input. Inferred from the
            timestamps when not given.
        verbosity: The logging level for the logger.

    Returns:
        The output table in a save ready format as an OrchestratorResults object.
    """
    logger.setLevel(verbosity)
    if output is not None:
        writers.OrchestratorResults.validate_output(output=output)

    recording = readers.read_recording(input, sampling_frequency=sampling_frequency)
    export_format = sojg.parameters.export_format
    table = sojg.run(recording).export(export_format)

    parameters_dictionary = {
        **sojg.parameters.model_dump(exclude={"export_format"}),
        "sampling_frequency": recording.sampling_frequency,
        "input_file": str(input),
    }

    results = writers.OrchestratorResults(
        export_format=export_format,
        table=table,
        processing_params=parameters_dictionary,
    )
    if output is not None:
        try:
            results.save_results(output=output)
        except (
            exceptions.InvalidFileTypeError,
            PermissionError,
            FileExistsError,
        ) as exc_info:
            # Allowed to pass to recover in Jupyter Notebook scenarios.
            logger.error(
                "Could not save output due to: %s. Call save_results "
                "on the output object with a correct filename to save these "
                "results.",
                exc_info,
            )
    logger.info("Processing for %s completed successfully.", input.stem)
    return results
