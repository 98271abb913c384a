"""Reference backend for raster containers that Pillow can identify."""

import csv
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Optional

import numpy as np
from PIL import Image, TiffImagePlugin, TiffTags
from PIL.ExifTags import TAGS

from ..core.exceptions import DecodeError, DumpError, OpenError
from ..core.logging_config import get_logger
from ..core.models import ColorEncoding, LoadSelector

PREVIEW_SIZE = 640
JPEG_QUALITY = 95
HISTOGRAM_BINS = 256
MAX_16BIT = 65535

DNG_VERSION_TAG = 50706
UNIQUE_CAMERA_MODEL_TAG = 50708
DNG_VERSION = b"\x01\x04\x00\x00"

_DECODE_FAILURES = (OSError, SyntaxError, ValueError, Image.DecompressionBombError)


@dataclass
class PillowContainer:
    """Handle for one opened container and the blocks loaded from it."""

    path: str
    stream: BinaryIO
    image: Optional[Image.Image] = None
    preview: Optional[Image.Image] = None
    properties: Optional[Dict[str, Any]] = None
    calibration: Optional[Dict[str, Any]] = None
    raw_block: Optional[bytes] = None
    sensor: Optional[np.ndarray] = None
    released: bool = field(default=False, repr=False)


def exif_properties(img: Image.Image) -> Dict[str, Any]:
    """
    Collect image info and EXIF tags, skipping GPS data for privacy.

    Sequences are kept as-is so the metadata dump can truncate them;
    undecodable bytes are shown as their repr.
    """
    properties: Dict[str, Any] = {
        "width": img.width,
        "height": img.height,
        "format": img.format or "unknown",
        "mode": img.mode,
    }

    for tag_id, value in img.getexif().items():
        tag = TAGS.get(tag_id, tag_id)
        if "gps" in str(tag).lower():
            continue
        if isinstance(value, bytes):
            try:
                value = value.decode("utf-8").rstrip("\x00")
            except UnicodeDecodeError:
                value = str(value)
        properties[str(tag)] = value

    return properties


def _calibration(img: Image.Image) -> Dict[str, Any]:
    calibration: Dict[str, Any] = {}
    for key, value in img.info.items():
        if isinstance(value, bytes):
            calibration[key] = f"<{len(value)} bytes>"
        else:
            calibration[key] = value
    return calibration


def _format_value(value: Any, max_elements: int) -> str:
    if isinstance(value, (list, tuple)):
        shown = ", ".join(str(v) for v in value[:max_elements])
        if len(value) > max_elements:
            shown += f", ... ({len(value)} elements)"
        return f"[{shown}]"
    return str(value)


def _median3(data: np.ndarray) -> np.ndarray:
    """3x3 median filter per channel, edges replicated."""
    height, width = data.shape[:2]
    padded = np.pad(data, ((1, 1), (1, 1), (0, 0)), mode="edge")
    windows = np.stack(
        [padded[dy:dy + height, dx:dx + width] for dy in range(3) for dx in range(3)]
    )
    return np.median(windows, axis=0).astype(np.uint16)


def _active_area(data: np.ndarray) -> np.ndarray:
    """Trim to the bounding box of non-zero pixels."""
    mask = data.any(axis=2)
    rows = np.flatnonzero(mask.any(axis=1))
    cols = np.flatnonzero(mask.any(axis=0))
    if rows.size == 0:
        return data
    return data[rows[0]:rows[-1] + 1, cols[0]:cols[-1] + 1]


class PillowBackend:
    """
    Container backend built on Pillow and numpy.

    Any format Pillow can open is treated as a container: the decoded
    image becomes a 3x16-bit sensor array, EXIF becomes property metadata
    and the image info block becomes calibration metadata. Color encoding
    and white balance presets are accepted but not applied. TIFF and DNG
    output is written at 8 bits per channel (the top byte of each 16-bit
    sample); PPM output keeps the full 16 bits.
    """

    def __init__(self):
        self._logger = get_logger("x3f-extract.pillow")
        self.use_gpu = False

    def open(self, path: str) -> PillowContainer:
        try:
            stream = open(path, "rb")
        except OSError as e:
            raise OpenError(f"Could not open {path}: {e.strerror or e}") from e
        return PillowContainer(path=path, stream=stream)

    def parse_header(self, handle: PillowContainer) -> None:
        try:
            handle.image = Image.open(handle.stream)
        except _DECODE_FAILURES as e:
            raise DecodeError(f"Could not read {handle.path}: {e}") from e

    def load(self, handle: PillowContainer, selector: LoadSelector) -> None:
        image = self._image(handle)
        try:
            if selector == LoadSelector.PREVIEW:
                preview = image.convert("RGB")
                preview.thumbnail((PREVIEW_SIZE, PREVIEW_SIZE))
                handle.preview = preview
            elif selector == LoadSelector.PROPERTY_METADATA:
                handle.properties = exif_properties(image)
            elif selector == LoadSelector.CALIBRATION_METADATA:
                handle.calibration = _calibration(image)
            elif selector == LoadSelector.SENSOR_UNDECODED:
                handle.stream.seek(0)
                handle.raw_block = handle.stream.read()
            elif selector == LoadSelector.SENSOR_DECODED:
                rgb = image.convert("RGB")
                handle.sensor = np.asarray(rgb, dtype=np.uint16) * 257
            else:
                raise DecodeError(f"Unknown load selector: {selector}")
        except _DECODE_FAILURES as e:
            raise DecodeError(f"Could not load {selector.value} from {handle.path}: {e}") from e

    def dump_raw(self, handle: PillowContainer, path: str) -> None:
        if handle.raw_block is None:
            raise DumpError("Undecoded sensor block not loaded")
        self._write(path, handle.raw_block)

    def dump_tiff(
        self,
        handle: PillowContainer,
        path: str,
        *,
        color_encoding: ColorEncoding,
        crop: bool,
        denoise: bool,
        white_balance: Optional[str],
        legacy_offset: Optional[int],
    ) -> None:
        data = self._develop(handle, color_encoding, crop, denoise, white_balance, legacy_offset)
        self._save(Image.fromarray((data >> 8).astype(np.uint8)), path, "TIFF")

    def dump_dng(
        self,
        handle: PillowContainer,
        path: str,
        *,
        denoise: bool,
        white_balance: Optional[str],
        legacy_offset: Optional[int],
    ) -> None:
        data = self._develop(
            handle, ColorEncoding.NONE, False, denoise, white_balance, legacy_offset
        )
        ifd = TiffImagePlugin.ImageFileDirectory_v2()
        ifd.tagtype[DNG_VERSION_TAG] = TiffTags.BYTE
        ifd[DNG_VERSION_TAG] = DNG_VERSION
        ifd.tagtype[UNIQUE_CAMERA_MODEL_TAG] = TiffTags.ASCII
        ifd[UNIQUE_CAMERA_MODEL_TAG] = self._camera_model(handle)
        self._save(
            Image.fromarray((data >> 8).astype(np.uint8)), path, "TIFF", tiffinfo=ifd
        )

    def dump_ppm(
        self,
        handle: PillowContainer,
        path: str,
        *,
        color_encoding: ColorEncoding,
        crop: bool,
        denoise: bool,
        white_balance: Optional[str],
        binary: bool,
        legacy_offset: Optional[int],
    ) -> None:
        data = self._develop(handle, color_encoding, crop, denoise, white_balance, legacy_offset)
        height, width = data.shape[:2]
        header = f"P{6 if binary else 3}\n{width} {height}\n{MAX_16BIT}\n".encode("ascii")

        if binary:
            body = data.astype(">u2").tobytes()
        else:
            rows = data.reshape(height, width * 3)
            body = "".join(" ".join(map(str, row.tolist())) + "\n" for row in rows).encode("ascii")
        self._write(path, header + body)

    def dump_histogram(
        self,
        handle: PillowContainer,
        path: str,
        *,
        color_encoding: ColorEncoding,
        crop: bool,
        denoise: bool,
        white_balance: Optional[str],
        log_scale: bool,
        legacy_offset: Optional[int],
    ) -> None:
        data = self._develop(handle, color_encoding, crop, denoise, white_balance, legacy_offset)
        pixels = data.reshape(-1, 3)

        if log_scale:
            # One bin per exposure stop: 0, [1, 2), [2, 4), ... [32768, 65536]
            edges = np.concatenate(([0], 2 ** np.arange(17)))
        else:
            edges = np.linspace(0, MAX_16BIT + 1, HISTOGRAM_BINS + 1)
        counts = [np.histogram(pixels[:, channel], bins=edges)[0] for channel in range(3)]

        try:
            with open(path, "w", newline="") as fh:
                writer = csv.writer(fh)
                writer.writerow(["bin", "red", "green", "blue"])
                for i in range(len(edges) - 1):
                    writer.writerow([int(edges[i])] + [int(c[i]) for c in counts])
        except OSError as e:
            raise DumpError(f"Could not write {path}: {e}") from e

    def dump_jpeg(self, handle: PillowContainer, path: str) -> None:
        if handle.preview is None:
            raise DumpError("Preview not loaded")
        self._save(handle.preview, path, "JPEG", quality=JPEG_QUALITY)

    def dump_metadata(
        self, handle: PillowContainer, path: str, *, max_matrix_elements: int
    ) -> None:
        if handle.properties is None and handle.calibration is None:
            raise DumpError("Metadata not loaded")

        lines = []
        for section, block in (("PROPERTIES", handle.properties), ("CAMF", handle.calibration)):
            lines.append(f"BEGIN: {section}")
            for key, value in (block or {}).items():
                lines.append(f"  {key}: {_format_value(value, max_matrix_elements)}")
            lines.append(f"END: {section}")
        self._write(path, ("\n".join(lines) + "\n").encode("utf-8"))

    def error_message(self, error: BaseException) -> str:
        return str(error)

    def release(self, handle: Optional[PillowContainer]) -> None:
        if handle is None or handle.released:
            return
        if handle.image is not None:
            handle.image.close()
        handle.stream.close()
        handle.preview = None
        handle.sensor = None
        handle.raw_block = None
        handle.released = True

    def set_gpu_acceleration(self, enabled: bool) -> None:
        self.use_gpu = enabled
        if enabled:
            self._logger.warning("GPU acceleration is not available in the Pillow backend; ignored")

    @staticmethod
    def _image(handle: PillowContainer) -> Image.Image:
        if handle.image is None:
            raise DecodeError(f"Header of {handle.path} has not been parsed")
        return handle.image

    @staticmethod
    def _camera_model(handle: PillowContainer) -> str:
        properties = handle.properties or {}
        model = " ".join(
            str(properties[key]) for key in ("Make", "Model") if properties.get(key)
        )
        return model or "Unknown"

    def _develop(
        self,
        handle: PillowContainer,
        color_encoding: ColorEncoding,
        crop: bool,
        denoise: bool,
        white_balance: Optional[str],
        legacy_offset: Optional[int],
    ) -> np.ndarray:
        if handle.sensor is None:
            raise DumpError("Decoded sensor data not loaded")

        self._logger.debug(
            f"Developing {handle.path}: color={color_encoding.value} wb={white_balance}"
        )
        data = handle.sensor
        if legacy_offset:
            data = np.clip(data.astype(np.int32) - legacy_offset, 0, MAX_16BIT).astype(np.uint16)
        if denoise:
            data = _median3(data)
        if crop:
            data = _active_area(data)
        return data

    @staticmethod
    def _save(image: Image.Image, path: str, image_format: str, **params: Any) -> None:
        try:
            image.save(path, format=image_format, **params)
        except (OSError, ValueError) as e:
            raise DumpError(f"Could not write {path}: {e}") from e

    @staticmethod
    def _write(path: str, payload: bytes) -> None:
        try:
            with open(path, "wb") as fh:
                fh.write(payload)
        except OSError as e:
            raise DumpError(f"Could not write {path}: {e}") from e
