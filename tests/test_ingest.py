"""Tests for payload validation at the ingest boundary."""

import unittest

import numpy as np

from grismview.ingest import (
    GrismDataError,
    footprints_from_payload,
    frame_from_arrays,
    frame_from_buffers,
    offsets_from_payload,
    spectrum_from_payload,
)
from grismview.models import Footprint, GrismOffsets, RaDec


class TestFrames(unittest.TestCase):
    def test_float16_buffers(self) -> None:
        flux = np.arange(6, dtype="<f2")
        error = np.full(6, 0.5, dtype="<f2")
        frame = frame_from_buffers(flux.tobytes(), error.tobytes(), width=3, height=2)
        self.assertEqual((frame.height, frame.width), (2, 3))
        self.assertEqual(frame.flux.tolist(), [[0.0, 1.0, 2.0], [3.0, 4.0, 5.0]])
        self.assertEqual(float(frame.error[1, 2]), 0.5)

    def test_wrong_length(self) -> None:
        buf = np.zeros(5, dtype="<f2").tobytes()
        with self.assertLogs("grismview.ingest", level="ERROR"):
            with self.assertRaises(GrismDataError):
                frame_from_buffers(buf, buf, width=3, height=2)

    def test_partial_element(self) -> None:
        with self.assertLogs("grismview.ingest", level="ERROR"):
            with self.assertRaises(GrismDataError):
                frame_from_buffers(b"\x00" * 13, b"\x00" * 12, width=3, height=2)

    def test_bad_size(self) -> None:
        with self.assertLogs("grismview.ingest", level="ERROR"):
            with self.assertRaises(GrismDataError):
                frame_from_buffers(b"", b"", width=0, height=2)

    def test_arrays(self) -> None:
        frame = frame_from_arrays(np.ones((2, 3)), np.ones((2, 3)))
        self.assertEqual(frame.width, 3)
        with self.assertLogs("grismview.ingest", level="ERROR"):
            with self.assertRaises(GrismDataError):
                frame_from_arrays(np.ones((2, 3)), np.ones((3, 2)))

    def test_error_is_value_error(self) -> None:
        self.assertTrue(issubclass(GrismDataError, ValueError))


class TestOffsets(unittest.TestCase):
    def test_decode(self) -> None:
        self.assertEqual(offsets_from_payload({"dx": 3, "dy": "-2"}), GrismOffsets(3, -2))

    def test_not_fetched(self) -> None:
        self.assertIsNone(offsets_from_payload(None))

    def test_fractional_kept(self) -> None:
        offsets = offsets_from_payload({"dx": 2.7, "dy": -1.6})
        self.assertEqual(offsets, GrismOffsets(2.7, -1.6))
        self.assertEqual(offsets_from_payload({"dx": -0.5, "dy": 0.5}), GrismOffsets(-0.5, 0.5))

    def test_non_finite_rejected(self) -> None:
        for payload in ({"dx": float("nan"), "dy": 0}, {"dx": 0, "dy": "inf"}):
            with self.subTest(payload=payload):
                with self.assertLogs("grismview.ingest", level="ERROR"):
                    with self.assertRaises(GrismDataError):
                        offsets_from_payload(payload)

    def test_missing_key(self) -> None:
        with self.assertLogs("grismview.ingest", level="ERROR"):
            with self.assertRaises(GrismDataError):
                offsets_from_payload({"dx": 1})


class TestSpectrumPayload(unittest.TestCase):
    def test_covered(self) -> None:
        spectrum = spectrum_from_payload(
            {
                "covered": True,
                "wavelength": [1.0, 2.0, 3.0],
                "spectrum_2d": [[1, 2, 3], [4, 5, 6]],
                "error_2d": [[1, 1, 1], [1, 1, 1]],
            }
        )
        self.assertTrue(spectrum.covered)
        self.assertEqual(spectrum.spectrum_2d.shape, (2, 3))
        self.assertEqual(spectrum.error_2d.dtype, np.float64)

    def test_uncovered(self) -> None:
        spectrum = spectrum_from_payload({"covered": False, "wavelength": [1.0]})
        self.assertFalse(spectrum.covered)
        self.assertEqual(spectrum.wavelength.size, 0)
        self.assertIsNone(spectrum.error_2d)

    def test_no_error_array(self) -> None:
        spectrum = spectrum_from_payload(
            {"covered": True, "wavelength": [1.0, 2.0], "spectrum_2d": [[1, 2]]}
        )
        self.assertIsNone(spectrum.error_2d)

    def test_rejects_bad_payloads(self) -> None:
        bad = [
            {"covered": True, "wavelength": [1.0, 2.0]},
            {"covered": True, "wavelength": [1.0, 2.0], "spectrum_2d": [[1, 2, 3]]},
            {"covered": True, "wavelength": [2.0, 1.0], "spectrum_2d": [[1, 2]]},
            {"covered": True, "wavelength": [1.0, 2.0], "spectrum_2d": [1, 2]},
            {
                "covered": True,
                "wavelength": [1.0, 2.0],
                "spectrum_2d": [[1, 2]],
                "error_2d": [[1, 2], [3, 4]],
            },
        ]
        for payload in bad:
            with self.subTest(payload=payload):
                with self.assertLogs("grismview.ingest", level="ERROR"):
                    with self.assertRaises(GrismDataError):
                        spectrum_from_payload(payload)


class TestFootprints(unittest.TestCase):
    def test_decode(self) -> None:
        (fp,) = footprints_from_payload(
            [
                {
                    "id": 17,
                    "footprint": {
                        "vertices": [[10, -1], [11, -1], [11, 1], [10, 1]],
                        "center": [10.5, 0],
                    },
                    "meta": {"program": "survey"},
                }
            ]
        )
        self.assertEqual(fp.id, "17")
        self.assertEqual(len(fp.vertices), 4)
        self.assertEqual(fp.center, RaDec(10.5, 0.0))
        self.assertEqual(fp.meta["program"], "survey")

    def test_short_polygon_skipped(self) -> None:
        payload = [{"id": "x", "footprint": {"vertices": [[0, 0], [1, 1]]}}]
        with self.assertLogs("grismview.ingest", level="WARNING"):
            self.assertEqual(footprints_from_payload(payload), ())

    def test_malformed_vertex(self) -> None:
        payload = [{"id": "x", "footprint": {"vertices": [[0, 0], [1], [2, 2]]}}]
        with self.assertLogs("grismview.ingest", level="ERROR"):
            with self.assertRaises(GrismDataError):
                footprints_from_payload(payload)

    def test_meta_is_read_only(self) -> None:
        fp = Footprint(id="a", vertices=(RaDec(0, 0), RaDec(1, 0), RaDec(1, 1)))
        patched = fp.with_meta(selected=True)
        self.assertEqual(dict(fp.meta), {})
        self.assertTrue(patched.meta["selected"])
        with self.assertRaises(TypeError):
            patched.meta["selected"] = False


if __name__ == "__main__":
    unittest.main()
