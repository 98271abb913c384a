"""Unit tests for the output dispatch table."""

import pytest

from x3f_extract.core.dispatch import (
    DISPATCH_TABLE,
    DngRequest,
    HistogramRequest,
    JpegRequest,
    MetadataRequest,
    PpmRequest,
    RawRequest,
    TiffRequest,
    get_entry,
)
from x3f_extract.core.models import (
    ColorEncoding,
    ExtractionKind,
    LoadSelector,
    ProcessingConfig,
)
from x3f_extract.testing.fakes import FakeBackend, FakeContainer


@pytest.fixture
def config():
    return ProcessingConfig(
        color_encoding=ColorEncoding.SRGB,
        crop=True,
        denoise=True,
        log_histogram=True,
        white_balance="Daylight",
        legacy_offset=4,
        max_matrix_elements=9,
    )


class TestDispatchTable:
    """Tests for table contents."""

    def test_every_kind_has_an_entry(self):
        assert set(DISPATCH_TABLE) == set(ExtractionKind)

    @pytest.mark.parametrize(
        "kind,extension",
        [
            (ExtractionKind.RAW, ".raw"),
            (ExtractionKind.TIFF, ".tif"),
            (ExtractionKind.DNG, ".dng"),
            (ExtractionKind.PPM_ASCII, ".ppm"),
            (ExtractionKind.PPM_BINARY, ".ppm"),
            (ExtractionKind.HISTOGRAM, ".csv"),
            (ExtractionKind.JPEG_PREVIEW, ".jpg"),
            (ExtractionKind.METADATA, ".meta"),
        ],
    )
    def test_extensions(self, kind, extension):
        assert get_entry(kind).extension == extension

    def test_preview_loads_only_preview(self):
        assert get_entry(ExtractionKind.JPEG_PREVIEW).loads == (LoadSelector.PREVIEW,)

    def test_metadata_loads_property_and_calibration(self):
        assert get_entry(ExtractionKind.METADATA).loads == (
            LoadSelector.PROPERTY_METADATA,
            LoadSelector.CALIBRATION_METADATA,
        )

    def test_raw_loads_undecoded_block(self):
        loads = get_entry(ExtractionKind.RAW).loads
        assert LoadSelector.SENSOR_UNDECODED in loads
        assert LoadSelector.SENSOR_DECODED not in loads

    @pytest.mark.parametrize(
        "kind",
        [
            ExtractionKind.TIFF,
            ExtractionKind.DNG,
            ExtractionKind.PPM_ASCII,
            ExtractionKind.PPM_BINARY,
            ExtractionKind.HISTOGRAM,
        ],
    )
    def test_processed_kinds_load_decoded_sensor(self, kind):
        loads = get_entry(kind).loads
        assert LoadSelector.SENSOR_DECODED in loads
        assert LoadSelector.SENSOR_UNDECODED not in loads


class TestBuildRequest:
    """Tests that each variant carries only what its dump uses."""

    def test_raw_and_jpeg_take_no_parameters(self, config):
        assert get_entry(ExtractionKind.RAW).build_request(config) == RawRequest()
        assert get_entry(ExtractionKind.JPEG_PREVIEW).build_request(config) == JpegRequest()

    def test_metadata_request(self, config):
        request = get_entry(ExtractionKind.METADATA).build_request(config)
        assert request == MetadataRequest(max_matrix_elements=9)

    def test_tiff_request(self, config):
        request = get_entry(ExtractionKind.TIFF).build_request(config)
        assert request == TiffRequest(
            color_encoding=ColorEncoding.SRGB,
            crop=True,
            denoise=True,
            white_balance="Daylight",
            legacy_offset=4,
        )

    def test_dng_request_has_no_color_or_crop(self, config):
        request = get_entry(ExtractionKind.DNG).build_request(config)
        assert request == DngRequest(denoise=True, white_balance="Daylight", legacy_offset=4)

    def test_ppm_binary_flag(self, config):
        ascii_request = get_entry(ExtractionKind.PPM_ASCII).build_request(config)
        binary_request = get_entry(ExtractionKind.PPM_BINARY).build_request(config)
        assert isinstance(ascii_request, PpmRequest)
        assert ascii_request.binary is False
        assert binary_request.binary is True

    def test_histogram_log_scale(self, config):
        request = get_entry(ExtractionKind.HISTOGRAM).build_request(config)
        assert isinstance(request, HistogramRequest)
        assert request.log_scale is True


class TestInvoke:
    """Tests for DispatchEntry.invoke."""

    def test_invoke_calls_matching_dump_with_parameters(self, config, tmp_path):
        backend = FakeBackend()
        handle = FakeContainer(path="c.x3f")
        entry = get_entry(ExtractionKind.PPM_BINARY)
        target = str(tmp_path / "c.x3f.ppm.tmp")

        entry.invoke(backend, handle, target, entry.build_request(config))

        [(operation, path, kwargs)] = backend.operations("dump_ppm")
        assert path == target
        assert kwargs["binary"] is True
        assert kwargs["color_encoding"] == ColorEncoding.SRGB
        assert kwargs["legacy_offset"] == 4

    def test_invoke_without_parameters(self, config, tmp_path):
        backend = FakeBackend()
        entry = get_entry(ExtractionKind.JPEG_PREVIEW)
        target = str(tmp_path / "c.jpg.tmp")

        entry.invoke(backend, FakeContainer(path="c.x3f"), target, entry.build_request(config))

        assert backend.operations("dump_jpeg") == [("dump_jpeg", target, {})]
