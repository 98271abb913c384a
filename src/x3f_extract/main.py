"""Main module for the x3f-extract CLI."""

import sys
from typing import List, Optional, Sequence

from .core import ProcessingConfig, RunSummary, configure_line_buffering, get_logger
from .core.config import build_parser, parse_args
from .core.error_handling import with_error_handling
from .core.exceptions import ConfigurationError, UsageError
from .core.factories import ExtractionPipelineFactory
from .core.protocols import ContainerBackend, LoggerProtocol

PROG = "x3f-extract"


def print_usage(message: str) -> None:
    """Write the error and the full switch listing to stderr."""
    print(message, file=sys.stderr)
    print(build_parser(PROG).format_help(), file=sys.stderr)


@with_error_handling
def extract(
    files: List[str],
    config: ProcessingConfig,
    backend: Optional[ContainerBackend] = None,
    logger: Optional[LoggerProtocol] = None,
) -> RunSummary:
    """Wire up the pipeline and run it over ``files``."""
    driver = ExtractionPipelineFactory.create_pipeline(backend=backend, logger=logger)
    return driver.run(files, config)


def main(
    argv: Optional[Sequence[str]] = None,
    backend: Optional[ContainerBackend] = None,
    logger: Optional[LoggerProtocol] = None,
) -> int:
    """
    Entry point for the command-line interface.

    Parses the classic switches, runs every input file through the
    extraction pipeline and returns the process exit code: 0 when every
    requested output of every file was published, 1 otherwise. Usage
    errors print the switch listing and return 1 before any file is
    touched.
    """
    configure_line_buffering()

    try:
        config, files = parse_args(argv, prog=PROG)
    except UsageError as e:
        print_usage(str(e))
        return 1

    try:
        summary = extract(files, config, backend=backend, logger=logger)
    except UsageError as e:
        print_usage(str(e))
        return 1
    except ConfigurationError as e:
        get_logger().error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        get_logger().warning("Extraction interrupted by user.")
        return 1

    return summary.exit_code


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
