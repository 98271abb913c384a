"""Factory classes for creating configured service instances."""

import importlib
import os
from typing import Any, Optional

from .exceptions import ConfigurationError
from .observability import StructuredLogger
from .protocols import ContainerBackend, LoggerProtocol
from .services import ExtractionDriver

BACKEND_ENV_VAR = "X3F_EXTRACT_BACKEND"
DEFAULT_BACKEND = "x3f_extract.backends.pillow:PillowBackend"


class BackendFactory:
    """Factory for creating the decode/encode backend."""

    @staticmethod
    def create_backend(spec: Optional[str] = None, **kwargs: Any) -> ContainerBackend:
        """
        Instantiate a backend from a ``module:Class`` spec.

        The spec defaults to the X3F_EXTRACT_BACKEND environment variable,
        then to the bundled Pillow backend.
        """
        spec = spec or os.getenv(BACKEND_ENV_VAR) or DEFAULT_BACKEND
        module_name, _, class_name = spec.partition(":")
        if not module_name or not class_name:
            raise ConfigurationError(
                f"Backend spec must look like 'module:Class', got {spec!r}"
            )

        try:
            module = importlib.import_module(module_name)
            backend_cls = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"Could not load backend {spec!r}: {e}") from e

        return backend_cls(**kwargs)


class ExtractionPipelineFactory:
    """Factory for creating the complete extraction pipeline."""

    @staticmethod
    def create_pipeline(
        backend: Optional[ContainerBackend] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> ExtractionDriver:
        """Create a fully configured extraction driver."""

        # Create default dependencies if not provided
        if logger is None:
            logger = StructuredLogger("x3f-extract")

        if backend is None:
            backend = BackendFactory.create_backend()

        return ExtractionDriver(backend=backend, logger=logger)
