"""Tests for wavelength display conversion."""

import itertools
import math
import unittest

from grismview.units import (
    display_factor,
    format_wavelength,
    from_display_wavelength,
    to_display_wavelength,
    to_input_value,
    velocity_offset_km_s,
)

UNITS = ("µm", "Å")
FRAMES = ("observe", "rest")


class TestConversion(unittest.TestCase):
    def test_round_trip(self) -> None:
        for unit, frame, z, v in itertools.product(
            UNITS, FRAMES, (0.0, 0.5, 3.2, 7.0), (0.6, 1.0, 4.1, 5.3)
        ):
            back = from_display_wavelength(to_display_wavelength(v, unit, frame, z), unit, frame, z)
            self.assertLess(abs(back - v) / v, 1e-9, (unit, frame, z, v))

    def test_matches_display_factor(self) -> None:
        for unit, frame in itertools.product(UNITS, FRAMES):
            self.assertAlmostEqual(
                to_display_wavelength(2.5, unit, frame, 1.5),
                2.5 * display_factor(unit, frame, 1.5),
            )

    def test_factor_values(self) -> None:
        self.assertEqual(display_factor("µm", "observe", 3.0), 1.0)
        self.assertEqual(display_factor("Å", "observe", 3.0), 1e4)
        self.assertEqual(display_factor("Å", "rest", 1.0), 5e3)

    def test_non_finite_redshift_is_zero(self) -> None:
        self.assertEqual(to_display_wavelength(2.0, "µm", "rest", math.nan), 2.0)
        self.assertEqual(display_factor("µm", "rest", math.inf), 1.0)

    def test_minus_one_redshift_guarded(self) -> None:
        self.assertEqual(to_display_wavelength(2.0, "µm", "rest", -1.0), 2.0)
        self.assertEqual(from_display_wavelength(2.0, "µm", "rest", -1.0), 2.0)

    def test_greek_mu_spelling(self) -> None:
        self.assertEqual(to_display_wavelength(2.0, "μm", "observe", 0.0), 2.0)


class TestFormatting(unittest.TestCase):
    def test_micron_label(self) -> None:
        self.assertEqual(format_wavelength(4.1, "µm", "observe", 0.0), "4.1000 μm")
        self.assertEqual(format_wavelength(4.1, "µm", "observe", 0.0, digits=2), "4.10 μm")

    def test_angstrom_label(self) -> None:
        self.assertEqual(format_wavelength(4.1, "Å", "observe", 0.0), "41000 Å")
        self.assertEqual(format_wavelength(4.1, "Å", "rest", 1.0), "20500 Å")
        self.assertEqual(format_wavelength(0.65625, "Å", "observe", 0.0), "6563 Å")

    def test_input_value(self) -> None:
        self.assertEqual(to_input_value(1.23456789, 3), "1.235")
        self.assertEqual(to_input_value(2.0), "2")
        self.assertEqual(to_input_value(math.nan), "")

    def test_velocity_offset(self) -> None:
        self.assertAlmostEqual(velocity_offset_km_s(1.3125, 0.65625, 1.0), 0.0)
        self.assertGreater(velocity_offset_km_s(1.32, 0.65625, 1.0), 0.0)


if __name__ == "__main__":
    unittest.main()
