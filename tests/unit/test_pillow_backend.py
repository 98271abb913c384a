"""Tests for the Pillow container backend."""

import csv

import numpy as np
import pytest
from PIL import Image

from x3f_extract.backends.pillow import (
    DNG_VERSION,
    DNG_VERSION_TAG,
    PillowBackend,
    _active_area,
    _format_value,
    _median3,
)
from x3f_extract.core.exceptions import DecodeError, DumpError, OpenError
from x3f_extract.core.models import ColorEncoding, LoadSelector
from x3f_extract.testing.fakes import write_test_container

DEVELOP_DEFAULTS = dict(
    color_encoding=ColorEncoding.NONE,
    crop=False,
    denoise=False,
    white_balance=None,
    legacy_offset=None,
)


@pytest.fixture
def backend():
    return PillowBackend()


@pytest.fixture
def jpeg_container(tmp_path):
    return write_test_container(str(tmp_path / "photo.x3f"), 64, 48)


@pytest.fixture
def solid_container(tmp_path):
    """A lossless container with one flat color so pixel values are exact."""
    path = str(tmp_path / "flat.x3f")
    Image.new("RGB", (8, 4), color=(10, 20, 30)).save(path, format="PNG")
    return path


def opened(backend, path, *selectors):
    handle = backend.open(path)
    backend.parse_header(handle)
    for selector in selectors:
        backend.load(handle, selector)
    return handle


class TestOpenAndParse:
    """Tests for opening containers and reading headers."""

    def test_open_missing_file(self, backend, tmp_path):
        with pytest.raises(OpenError, match="Could not open"):
            backend.open(str(tmp_path / "missing.x3f"))

    def test_parse_garbage_is_decode_error(self, backend, tmp_path):
        path = tmp_path / "junk.x3f"
        path.write_bytes(b"FOVb not really an image")
        handle = backend.open(str(path))

        with pytest.raises(DecodeError, match="Could not read"):
            backend.parse_header(handle)
        backend.release(handle)

    def test_load_before_parse(self, backend, jpeg_container):
        handle = backend.open(jpeg_container)

        with pytest.raises(DecodeError, match="has not been parsed"):
            backend.load(handle, LoadSelector.PREVIEW)
        backend.release(handle)

    def test_release_is_idempotent(self, backend, jpeg_container):
        handle = opened(backend, jpeg_container, LoadSelector.SENSOR_DECODED)

        backend.release(handle)
        backend.release(handle)
        backend.release(None)

        assert handle.released
        assert handle.stream.closed
        assert handle.sensor is None


class TestLoad:
    """Tests for loading container blocks."""

    def test_decoded_sensor_is_16_bit(self, backend, solid_container):
        handle = opened(backend, solid_container, LoadSelector.SENSOR_DECODED)

        assert handle.sensor.dtype == np.uint16
        assert handle.sensor.shape == (4, 8, 3)
        assert handle.sensor[0, 0].tolist() == [10 * 257, 20 * 257, 30 * 257]
        backend.release(handle)

    def test_undecoded_block_is_file_bytes(self, backend, jpeg_container):
        handle = opened(backend, jpeg_container, LoadSelector.SENSOR_UNDECODED)

        with open(jpeg_container, "rb") as fh:
            assert handle.raw_block == fh.read()
        backend.release(handle)

    def test_property_metadata(self, backend, jpeg_container):
        handle = opened(backend, jpeg_container, LoadSelector.PROPERTY_METADATA)

        assert handle.properties["width"] == 64
        assert handle.properties["height"] == 48
        assert handle.properties["format"] == "JPEG"
        backend.release(handle)


class TestDumps:
    """Tests for every dump format."""

    def test_dump_raw(self, backend, jpeg_container, tmp_path):
        handle = opened(backend, jpeg_container, LoadSelector.SENSOR_UNDECODED)
        out = tmp_path / "photo.x3f.raw.tmp"

        backend.dump_raw(handle, str(out))

        with open(jpeg_container, "rb") as fh:
            assert out.read_bytes() == fh.read()
        backend.release(handle)

    def test_dump_without_load_is_dump_error(self, backend, jpeg_container, tmp_path):
        handle = opened(backend, jpeg_container)

        with pytest.raises(DumpError):
            backend.dump_raw(handle, str(tmp_path / "a.raw.tmp"))
        with pytest.raises(DumpError):
            backend.dump_jpeg(handle, str(tmp_path / "a.jpg.tmp"))
        with pytest.raises(DumpError):
            backend.dump_metadata(handle, str(tmp_path / "a.meta.tmp"), max_matrix_elements=10)
        with pytest.raises(DumpError, match="Decoded sensor data not loaded"):
            backend.dump_tiff(handle, str(tmp_path / "a.tif.tmp"), **DEVELOP_DEFAULTS)
        backend.release(handle)

    def test_dump_jpeg(self, backend, jpeg_container, tmp_path):
        handle = opened(backend, jpeg_container, LoadSelector.PREVIEW)
        out = str(tmp_path / "photo.x3f.jpg.tmp")

        backend.dump_jpeg(handle, out)

        with Image.open(out) as img:
            assert img.format == "JPEG"
            assert img.size == (64, 48)
        backend.release(handle)

    def test_dump_tiff(self, backend, solid_container, tmp_path):
        handle = opened(backend, solid_container, LoadSelector.SENSOR_DECODED)
        out = str(tmp_path / "flat.x3f.tif.tmp")

        backend.dump_tiff(handle, out, **DEVELOP_DEFAULTS)

        with Image.open(out) as img:
            assert img.format == "TIFF"
            assert img.size == (8, 4)
            assert img.mode == "RGB"
            assert img.getpixel((0, 0)) == (10, 20, 30)
        backend.release(handle)

    def test_dump_tiff_crop(self, backend, tmp_path):
        path = str(tmp_path / "framed.x3f")
        image = Image.new("RGB", (10, 10), color=(0, 0, 0))
        image.paste((200, 100, 50), (2, 3, 7, 6))
        image.save(path, format="PNG")
        handle = opened(backend, path, LoadSelector.SENSOR_DECODED)
        out = str(tmp_path / "framed.x3f.tif.tmp")

        backend.dump_tiff(handle, out, **{**DEVELOP_DEFAULTS, "crop": True})

        with Image.open(out) as img:
            assert img.size == (5, 3)
        backend.release(handle)

    def test_dump_dng_carries_version_tag(self, backend, solid_container, tmp_path):
        handle = opened(
            backend,
            solid_container,
            LoadSelector.PROPERTY_METADATA,
            LoadSelector.SENSOR_DECODED,
        )
        out = str(tmp_path / "flat.x3f.dng.tmp")

        backend.dump_dng(handle, out, denoise=False, white_balance=None, legacy_offset=None)

        with Image.open(out) as img:
            assert img.tag_v2[DNG_VERSION_TAG] == DNG_VERSION
        backend.release(handle)

    def test_dump_ppm_binary(self, backend, solid_container, tmp_path):
        handle = opened(backend, solid_container, LoadSelector.SENSOR_DECODED)
        out = tmp_path / "flat.x3f.ppm.tmp"
        params = {**DEVELOP_DEFAULTS, "legacy_offset": 70}

        backend.dump_ppm(handle, str(out), binary=True, **params)

        payload = out.read_bytes()
        header = b"P6\n8 4\n65535\n"
        assert payload.startswith(header)
        body = payload[len(header):]
        assert len(body) == 8 * 4 * 3 * 2
        assert int.from_bytes(body[:2], "big") == 10 * 257 - 70
        backend.release(handle)

    def test_dump_ppm_ascii(self, backend, solid_container, tmp_path):
        handle = opened(backend, solid_container, LoadSelector.SENSOR_DECODED)
        out = tmp_path / "flat.x3f.ppm.tmp"

        backend.dump_ppm(handle, str(out), binary=False, **DEVELOP_DEFAULTS)

        lines = out.read_text().splitlines()
        assert lines[:3] == ["P3", "8 4", "65535"]
        assert len(lines) == 3 + 4
        assert lines[3].split()[:3] == ["2570", "5140", "7710"]
        backend.release(handle)

    @pytest.mark.parametrize("log_scale,bins", [(False, 256), (True, 17)])
    def test_dump_histogram(self, backend, solid_container, tmp_path, log_scale, bins):
        handle = opened(backend, solid_container, LoadSelector.SENSOR_DECODED)
        out = tmp_path / "flat.x3f.csv.tmp"

        backend.dump_histogram(handle, str(out), log_scale=log_scale, **DEVELOP_DEFAULTS)

        with open(out, newline="") as fh:
            rows = list(csv.reader(fh))
        assert rows[0] == ["bin", "red", "green", "blue"]
        assert len(rows) == 1 + bins
        for column in (1, 2, 3):
            assert sum(int(row[column]) for row in rows[1:]) == 8 * 4
        backend.release(handle)

    def test_dump_metadata(self, backend, jpeg_container, tmp_path):
        handle = opened(
            backend,
            jpeg_container,
            LoadSelector.PROPERTY_METADATA,
            LoadSelector.CALIBRATION_METADATA,
        )
        out = tmp_path / "photo.x3f.meta.tmp"

        backend.dump_metadata(handle, str(out), max_matrix_elements=100)

        lines = out.read_text().splitlines()
        assert lines[0] == "BEGIN: PROPERTIES"
        assert "  width: 64" in lines
        assert "END: PROPERTIES" in lines
        assert "BEGIN: CAMF" in lines
        assert lines[-1] == "END: CAMF"
        backend.release(handle)

    def test_set_gpu_acceleration(self, backend):
        backend.set_gpu_acceleration(True)

        assert backend.use_gpu is True


class TestHelpers:
    """Tests for array and formatting helpers."""

    def test_format_value_truncates_long_sequences(self):
        assert _format_value([1, 2, 3, 4, 5], 3) == "[1, 2, 3, ... (5 elements)]"
        assert _format_value((1, 2), 3) == "[1, 2]"
        assert _format_value("Canon", 3) == "Canon"

    def test_median3_removes_isolated_spike(self):
        data = np.full((5, 5, 3), 100, dtype=np.uint16)
        data[2, 2] = 60000

        filtered = _median3(data)

        assert filtered.dtype == np.uint16
        assert (filtered == 100).all()

    def test_active_area(self):
        data = np.zeros((6, 6, 3), dtype=np.uint16)
        data[1:3, 2:5, 0] = 1

        assert _active_area(data).shape == (2, 3, 3)

    def test_active_area_all_zero(self):
        data = np.zeros((4, 4, 3), dtype=np.uint16)

        assert _active_area(data).shape == (4, 4, 3)
