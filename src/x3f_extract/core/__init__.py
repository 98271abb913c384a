"""Core utilities and shared components for the extraction pipeline."""

from .logging_config import (
    configure_line_buffering,
    get_logger,
    setup_logger,
)
from .exceptions import (
    X3FExtractError,
    UsageError,
    ConfigurationError,
    PathTooLongError,
    OpenError,
    DecodeError,
    DumpError,
    PublishError,
    ReleaseError,
)
from .models import (
    ColorEncoding,
    ExtractionKind,
    FileJob,
    FileResult,
    JobState,
    LoadSelector,
    OutputResult,
    ProcessingConfig,
    RunSummary,
)
from .path_utils import make_paths
from .config import parse_args
from .dispatch import DISPATCH_TABLE, get_entry
from .aggregator import ResultAggregator
from .services import ExtractionDriver

__all__ = [
    "ProcessingConfig",
    "ExtractionKind",
    "ColorEncoding",
    "LoadSelector",
    "JobState",
    "FileJob",
    "FileResult",
    "OutputResult",
    "RunSummary",
    "make_paths",
    "parse_args",
    "DISPATCH_TABLE",
    "get_entry",
    "ResultAggregator",
    "ExtractionDriver",
    "setup_logger",
    "get_logger",
    "configure_line_buffering",
    "X3FExtractError",
    "UsageError",
    "ConfigurationError",
    "PathTooLongError",
    "OpenError",
    "DecodeError",
    "DumpError",
    "PublishError",
    "ReleaseError",
]
