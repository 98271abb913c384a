"""Shared data models for the extraction pipeline."""

from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExtractionKind(str, Enum):
    """What gets written for one requested output."""

    RAW = "raw"
    TIFF = "tiff"
    DNG = "dng"
    PPM_ASCII = "ppm-ascii"
    PPM_BINARY = "ppm"
    HISTOGRAM = "histogram"
    JPEG_PREVIEW = "jpg"
    METADATA = "meta"

    @property
    def is_raw_kind(self) -> bool:
        return self not in (ExtractionKind.JPEG_PREVIEW, ExtractionKind.METADATA)


class ColorEncoding(str, Enum):
    """Color encoding requested for processed raw output."""

    NONE = "none"
    SRGB = "sRGB"
    ADOBE_RGB = "AdobeRGB"
    PROPHOTO_RGB = "ProPhotoRGB"
    UNPROCESSED = "unprocessed"
    QTOP = "qtop"


class LoadSelector(str, Enum):
    """Blocks of a container that can be loaded on demand."""

    PREVIEW = "preview"
    PROPERTY_METADATA = "property-metadata"
    CALIBRATION_METADATA = "calibration-metadata"
    SENSOR_UNDECODED = "sensor-undecoded"
    SENSOR_DECODED = "sensor-decoded"


class JobState(str, Enum):
    """Pipeline state of a single file job."""

    PENDING = "pending"
    OPENED = "opened"
    META_LOADED = "meta-loaded"
    DATA_LOADED = "data-loaded"
    DUMPED = "dumped"
    PUBLISHED = "published"
    ERROR = "error"
    CLEANUP = "cleanup"


DEFAULT_MAX_MATRIX_ELEMENTS = 100


class ProcessingConfig(BaseModel):
    """Run configuration, built once from the command line and never mutated."""

    model_config = ConfigDict(frozen=True)

    extract_preview: bool = False
    extract_metadata: bool = False
    raw_kind: Optional[ExtractionKind] = ExtractionKind.DNG
    color_encoding: ColorEncoding = ColorEncoding.NONE
    crop: bool = False
    denoise: bool = False
    log_histogram: bool = False
    white_balance: Optional[str] = None
    use_gpu: bool = False
    legacy_offset: Optional[int] = None
    max_matrix_elements: int = DEFAULT_MAX_MATRIX_ELEMENTS
    output_dir: Optional[str] = None

    @field_validator("raw_kind")
    @classmethod
    def check_raw_kind(cls, value: Optional[ExtractionKind]) -> Optional[ExtractionKind]:
        if value is not None and not value.is_raw_kind:
            raise ValueError(f"{value.value} is not a raw extraction kind")
        return value

    @property
    def auto_legacy_offset(self) -> bool:
        return self.legacy_offset is None

    @property
    def requested_outputs(self) -> List[ExtractionKind]:
        """Requested outputs in processing order: preview, metadata, raw."""
        outputs = []
        if self.extract_preview:
            outputs.append(ExtractionKind.JPEG_PREVIEW)
        if self.extract_metadata:
            outputs.append(ExtractionKind.METADATA)
        if self.raw_kind is not None:
            outputs.append(self.raw_kind)
        return outputs


class OutputResult(BaseModel):
    """Outcome of one requested output for one input file."""

    kind: ExtractionKind
    output_path: str = ""
    temp_path: str = ""
    stage: str = ""
    success: bool = False
    error: str = ""


class FileJob(BaseModel):
    """Per-file pipeline state; lives for one iteration of the batch."""

    input_path: str
    state: JobState = JobState.PENDING
    handle: Any = None
    loaded: Set[LoadSelector] = Field(default_factory=set)
    failed_loads: Dict[LoadSelector, str] = Field(default_factory=dict)
    release_error: str = ""
    outputs: List[OutputResult] = Field(default_factory=list)


class FileResult(BaseModel):
    """Result of processing a single input file."""

    input_path: str
    outputs: List[OutputResult] = Field(default_factory=list)
    error: str = ""
    stage: str = ""
    release_error: str = ""
    processing_time: float = 0.0

    @property
    def error_count(self) -> int:
        # A file-level failure abandons every output and counts once.
        if self.error:
            count = 1
        else:
            count = sum(1 for output in self.outputs if not output.success)
        return count + (1 if self.release_error else 0)

    @property
    def success(self) -> bool:
        return self.error_count == 0


class RunSummary(BaseModel):
    """Accumulated outcome of a whole run."""

    files_attempted: int = 0
    errors: int = 0
    results: List[FileResult] = Field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 0 if self.errors == 0 else 1
