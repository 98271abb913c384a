"""Per-file extraction driver: open, load, dump, publish, clean up."""

import os
import time
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence, Tuple

from .aggregator import ResultAggregator
from .dispatch import DispatchEntry, get_entry
from .error_handling import collaborator_call
from .exceptions import (
    DecodeError,
    DumpError,
    OpenError,
    PublishError,
    ReleaseError,
    UsageError,
    X3FExtractError,
)
from .models import (
    ExtractionKind,
    FileJob,
    FileResult,
    JobState,
    LoadSelector,
    OutputResult,
    ProcessingConfig,
    RunSummary,
)
from .observability import LogContext, StructuredLogger
from .path_utils import make_paths
from .protocols import ContainerBackend, LoggerProtocol

_SENSOR_SELECTORS = (LoadSelector.SENSOR_UNDECODED, LoadSelector.SENSOR_DECODED)


def publish(temp_path: str, output_path: str) -> None:
    """
    Atomically rename a finished temporary file to its final name.

    On failure the temporary file is left where it is so it can be
    recovered by hand.
    """
    try:
        os.replace(temp_path, output_path)
    except OSError as e:
        raise PublishError(f"Couldn't ren {temp_path} to {output_path}: {e}") from e


class ExtractionDriver:
    """Runs the extraction pipeline over a batch of input files, one at a time."""

    def __init__(
        self,
        backend: ContainerBackend,
        logger: Optional[LoggerProtocol] = None,
    ):
        self._backend = backend
        self._logger = logger or StructuredLogger()

    def run(self, files: Sequence[str], config: ProcessingConfig) -> RunSummary:
        """
        Process every input file and return the run summary.

        A failing file never stops the batch; only an empty file list is
        rejected up front.
        """
        if not files:
            raise UsageError("No input files given")

        self._log_configuration(config, len(files))
        self._backend.set_gpu_acceleration(config.use_gpu)

        with ResultAggregator(self._logger) as aggregator:
            for input_path in files:
                aggregator.record(self.process_file(input_path, config))

        return aggregator.summary

    def process_file(self, input_path: str, config: ProcessingConfig) -> FileResult:
        """Run every requested output for one input file."""
        start_time = time.time()
        job = FileJob(input_path=input_path)
        result = FileResult(input_path=input_path)
        file_context = LogContext(component="extraction_driver").with_metadata(
            file=input_path
        )

        try:
            with self._open_container(job, file_context):
                for kind in config.requested_outputs:
                    job.outputs.append(self._extract_output(job, kind, config, file_context))
        except (OpenError, DecodeError) as e:
            job.state = JobState.ERROR
            result.stage = "open" if isinstance(e, OpenError) else "parse_header"
            result.error = self._describe(e)
            verb = "open" if isinstance(e, OpenError) else "read"
            self._logger.error(
                f"Could not {verb} infile {input_path}: {result.error}",
                file_context.with_operation(result.stage),
            )
        finally:
            job.state = JobState.CLEANUP

        result.outputs = list(job.outputs)
        result.release_error = job.release_error
        result.processing_time = time.time() - start_time
        return result

    @contextmanager
    def _open_container(self, job: FileJob, file_context: LogContext) -> Iterator[FileJob]:
        """Scoped ownership of the container handle; released on every exit path."""
        with collaborator_call(OpenError, "open"):
            job.handle = self._backend.open(job.input_path)
        job.state = JobState.OPENED

        try:
            self._logger.info(f"READ THE X3F FILE {job.input_path}")
            with collaborator_call(DecodeError, "parse_header"):
                self._backend.parse_header(job.handle)
            yield job
        finally:
            self._release(job, file_context)

    def _release(self, job: FileJob, file_context: LogContext) -> None:
        """Release the handle; a failure is recorded on the job, never raised."""
        try:
            with collaborator_call(ReleaseError, "release"):
                self._backend.release(job.handle)
        except ReleaseError as e:
            job.release_error = str(e)
            self._logger.error(
                f"Could not release infile {job.input_path}: {job.release_error}",
                file_context.with_operation("release"),
            )
        finally:
            job.handle = None

    def _extract_output(
        self,
        job: FileJob,
        kind: ExtractionKind,
        config: ProcessingConfig,
        file_context: LogContext,
    ) -> OutputResult:
        entry = get_entry(kind)
        output = OutputResult(kind=kind)
        context = file_context.with_metadata(kind=kind.value)
        stage = "load"

        try:
            self._load(job, entry)

            stage = "paths"
            output.output_path, output.temp_path = self._paths(job, entry, config)

            stage = "dump"
            self._logger.info(f"Dump {entry.label} to {output.output_path}")
            with collaborator_call(DumpError, "dump"):
                entry.invoke(
                    self._backend, job.handle, output.temp_path, entry.build_request(config)
                )
            job.state = JobState.DUMPED

            stage = "publish"
            publish(output.temp_path, output.output_path)
            job.state = JobState.PUBLISHED
            output.success = True

        except X3FExtractError as e:
            job.state = JobState.ERROR
            output.stage = stage
            output.error = self._describe(e)
            self._logger.error(
                self._failure_message(stage, entry, output),
                context.with_operation(stage),
            )

        return output

    def _load(self, job: FileJob, entry: DispatchEntry) -> None:
        """Load what the entry needs, at most once per file."""
        for selector in entry.loads:
            if selector in job.loaded:
                continue
            if selector in job.failed_loads:
                raise DecodeError(job.failed_loads[selector])

            if selector in _SENSOR_SELECTORS:
                self._logger.info(f"Load RAW block from {job.input_path}")
            try:
                with collaborator_call(DecodeError, f"load {selector.value}"):
                    self._backend.load(job.handle, selector)
            except DecodeError as e:
                job.failed_loads[selector] = str(e)
                raise

            job.loaded.add(selector)
            job.state = (
                JobState.DATA_LOADED if selector in _SENSOR_SELECTORS else JobState.META_LOADED
            )

    @staticmethod
    def _paths(
        job: FileJob, entry: DispatchEntry, config: ProcessingConfig
    ) -> Tuple[str, str]:
        return make_paths(job.input_path, config.output_dir, entry.extension)

    def _describe(self, error: X3FExtractError) -> str:
        if isinstance(error, (OpenError, DecodeError, DumpError)):
            return self._backend.error_message(error)
        return str(error)

    @staticmethod
    def _failure_message(stage: str, entry: DispatchEntry, output: OutputResult) -> str:
        if stage == "load":
            return f"Could not load data for {entry.label}: {output.error}"
        if stage == "paths":
            return f"Too large file path: {output.error}"
        if stage == "dump":
            return f"Could not dump {entry.label} to {output.temp_path}: {output.error}"
        return output.error

    def _log_configuration(self, config: ProcessingConfig, file_count: int) -> None:
        outputs = ", ".join(kind.value for kind in config.requested_outputs) or "none"
        self._logger.debug(
            f"Extracting [{outputs}] from {file_count} file(s)",
            LogContext(operation="configure", component="extraction_driver").with_metadata(
                color=config.color_encoding.value,
                crop=config.crop,
                denoise=config.denoise,
                wb=config.white_balance,
                output_dir=config.output_dir,
            ),
        )
