"""Testing utilities and fakes for the extraction pipeline."""

from .fakes import (
    FakeBackend,
    FakeContainer,
    FakeLogger,
    create_test_image,
    write_test_container,
)

__all__ = [
    "FakeBackend",
    "FakeContainer",
    "FakeLogger",
    "create_test_image",
    "write_test_container",
]
