"""Decode/encode backends the extraction driver can run against."""

from .pillow import PillowBackend, PillowContainer

__all__ = ["PillowBackend", "PillowContainer"]
