"""Run-level accumulation of per-file outcomes."""

from typing import Optional

from .models import FileResult, RunSummary
from .observability import StructuredLogger
from .protocols import LoggerProtocol


class ResultAggregator:
    """
    Context manager that collects per-file results into a RunSummary.

    Every recorded file counts once towards ``files_attempted``; its
    error count is added to ``errors``. On exit the classic summary line
    is logged.
    """

    def __init__(self, logger: Optional[LoggerProtocol] = None):
        self.summary = RunSummary()
        self._logger = logger or StructuredLogger()

    def __enter__(self) -> "ResultAggregator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self._logger.info(
                f"Files processed: {self.summary.files_attempted}\terrors: {self.summary.errors}"
            )
        else:
            self._logger.error(
                f"Run aborted after {self.summary.files_attempted} file(s): {exc_val}"
            )
        return False

    def record(self, result: FileResult) -> None:
        """Add one file's outcome to the run."""
        self.summary.files_attempted += 1
        self.summary.errors += result.error_count
        self.summary.results.append(result)

    @property
    def files_attempted(self) -> int:
        return self.summary.files_attempted

    @property
    def errors(self) -> int:
        return self.summary.errors

    @property
    def exit_code(self) -> int:
        return self.summary.exit_code
