"""Capability table mapping each extraction kind to its loads and dump call."""

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .models import ColorEncoding, ExtractionKind, LoadSelector, ProcessingConfig
from .protocols import ContainerBackend


# One request variant per kind, each carrying only what its dump uses.

@dataclass(frozen=True)
class RawRequest:
    pass


@dataclass(frozen=True)
class TiffRequest:
    color_encoding: ColorEncoding
    crop: bool
    denoise: bool
    white_balance: Optional[str]
    legacy_offset: Optional[int]


@dataclass(frozen=True)
class DngRequest:
    denoise: bool
    white_balance: Optional[str]
    legacy_offset: Optional[int]


@dataclass(frozen=True)
class PpmRequest:
    color_encoding: ColorEncoding
    crop: bool
    denoise: bool
    white_balance: Optional[str]
    binary: bool
    legacy_offset: Optional[int]


@dataclass(frozen=True)
class HistogramRequest:
    color_encoding: ColorEncoding
    crop: bool
    denoise: bool
    white_balance: Optional[str]
    log_scale: bool
    legacy_offset: Optional[int]


@dataclass(frozen=True)
class JpegRequest:
    pass


@dataclass(frozen=True)
class MetadataRequest:
    max_matrix_elements: int


DumpRequest = Union[
    RawRequest,
    TiffRequest,
    DngRequest,
    PpmRequest,
    HistogramRequest,
    JpegRequest,
    MetadataRequest,
]


_METADATA_LOADS = (LoadSelector.PROPERTY_METADATA, LoadSelector.CALIBRATION_METADATA)
_DECODED_LOADS = _METADATA_LOADS + (LoadSelector.SENSOR_DECODED,)


def _tiff_request(config: ProcessingConfig) -> TiffRequest:
    return TiffRequest(
        color_encoding=config.color_encoding,
        crop=config.crop,
        denoise=config.denoise,
        white_balance=config.white_balance,
        legacy_offset=config.legacy_offset,
    )


def _dng_request(config: ProcessingConfig) -> DngRequest:
    return DngRequest(
        denoise=config.denoise,
        white_balance=config.white_balance,
        legacy_offset=config.legacy_offset,
    )


def _ppm_request(binary: bool) -> Callable[[ProcessingConfig], PpmRequest]:
    def build(config: ProcessingConfig) -> PpmRequest:
        return PpmRequest(
            color_encoding=config.color_encoding,
            crop=config.crop,
            denoise=config.denoise,
            white_balance=config.white_balance,
            binary=binary,
            legacy_offset=config.legacy_offset,
        )

    return build


def _histogram_request(config: ProcessingConfig) -> HistogramRequest:
    return HistogramRequest(
        color_encoding=config.color_encoding,
        crop=config.crop,
        denoise=config.denoise,
        white_balance=config.white_balance,
        log_scale=config.log_histogram,
        legacy_offset=config.legacy_offset,
    )


@dataclass(frozen=True)
class DispatchEntry:
    """How one extraction kind is produced."""

    kind: ExtractionKind
    extension: str
    label: str
    loads: Tuple[LoadSelector, ...]
    dump_method: str
    build_request: Callable[[ProcessingConfig], DumpRequest]

    def invoke(
        self, backend: ContainerBackend, handle: Any, temp_path: str, request: DumpRequest
    ) -> None:
        dump = getattr(backend, self.dump_method)
        dump(handle, temp_path, **asdict(request))


DISPATCH_TABLE: Dict[ExtractionKind, DispatchEntry] = {
    entry.kind: entry
    for entry in (
        DispatchEntry(
            ExtractionKind.JPEG_PREVIEW, ".jpg", "JPEG",
            (LoadSelector.PREVIEW,), "dump_jpeg", lambda config: JpegRequest(),
        ),
        DispatchEntry(
            ExtractionKind.METADATA, ".meta", "META DATA",
            _METADATA_LOADS, "dump_metadata",
            lambda config: MetadataRequest(max_matrix_elements=config.max_matrix_elements),
        ),
        DispatchEntry(
            ExtractionKind.RAW, ".raw", "RAW block",
            _METADATA_LOADS + (LoadSelector.SENSOR_UNDECODED,), "dump_raw",
            lambda config: RawRequest(),
        ),
        DispatchEntry(
            ExtractionKind.TIFF, ".tif", "RAW as TIFF",
            _DECODED_LOADS, "dump_tiff", _tiff_request,
        ),
        DispatchEntry(
            ExtractionKind.DNG, ".dng", "RAW as DNG",
            _DECODED_LOADS, "dump_dng", _dng_request,
        ),
        DispatchEntry(
            ExtractionKind.PPM_ASCII, ".ppm", "RAW as PPM",
            _DECODED_LOADS, "dump_ppm", _ppm_request(binary=False),
        ),
        DispatchEntry(
            ExtractionKind.PPM_BINARY, ".ppm", "RAW as PPM",
            _DECODED_LOADS, "dump_ppm", _ppm_request(binary=True),
        ),
        DispatchEntry(
            ExtractionKind.HISTOGRAM, ".csv", "RAW as CSV histogram",
            _DECODED_LOADS, "dump_histogram", _histogram_request,
        ),
    )
}


def get_entry(kind: ExtractionKind) -> DispatchEntry:
    """Look up the dispatch entry for an extraction kind."""
    return DISPATCH_TABLE[kind]
