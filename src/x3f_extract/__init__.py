"""Batch extraction of image artifacts from camera container files."""

__version__ = "0.1.0"
