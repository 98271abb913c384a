"""Protocol definitions for dependency injection and testability."""

from typing import Any, Optional, Protocol

from .models import ColorEncoding, LoadSelector


class ContainerBackend(Protocol):
    """
    Decode/encode library the extraction driver calls into.

    Implementations report failures by raising OpenError, DecodeError or
    DumpError. Every dump writes to the path it is given and nothing else.
    """

    def open(self, path: str) -> Any:
        """Open a container and return an opaque handle."""
        ...

    def parse_header(self, handle: Any) -> None:
        """Parse the container header and directory."""
        ...

    def load(self, handle: Any, selector: LoadSelector) -> None:
        """Load one block of the container into the handle."""
        ...

    def dump_raw(self, handle: Any, path: str) -> None:
        """Write the undecoded sensor block."""
        ...

    def dump_tiff(
        self,
        handle: Any,
        path: str,
        *,
        color_encoding: ColorEncoding,
        crop: bool,
        denoise: bool,
        white_balance: Optional[str],
        legacy_offset: Optional[int],
    ) -> None:
        """Write sensor data as a tagged-image file."""
        ...

    def dump_dng(
        self,
        handle: Any,
        path: str,
        *,
        denoise: bool,
        white_balance: Optional[str],
        legacy_offset: Optional[int],
    ) -> None:
        """Write sensor data as a linear-raw container."""
        ...

    def dump_ppm(
        self,
        handle: Any,
        path: str,
        *,
        color_encoding: ColorEncoding,
        crop: bool,
        denoise: bool,
        white_balance: Optional[str],
        binary: bool,
        legacy_offset: Optional[int],
    ) -> None:
        """Write sensor data as a portable pixel map."""
        ...

    def dump_histogram(
        self,
        handle: Any,
        path: str,
        *,
        color_encoding: ColorEncoding,
        crop: bool,
        denoise: bool,
        white_balance: Optional[str],
        log_scale: bool,
        legacy_offset: Optional[int],
    ) -> None:
        """Write a CSV histogram of the sensor data."""
        ...

    def dump_jpeg(self, handle: Any, path: str) -> None:
        """Write the embedded preview image."""
        ...

    def dump_metadata(self, handle: Any, path: str, *, max_matrix_elements: int) -> None:
        """Write a text listing of property and calibration metadata."""
        ...

    def error_message(self, error: BaseException) -> str:
        """Human-readable message for an error raised by this backend."""
        ...

    def release(self, handle: Any) -> None:
        """Release every resource held by the handle."""
        ...

    def set_gpu_acceleration(self, enabled: bool) -> None:
        """Process-wide hint, set once before any file is processed."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...
