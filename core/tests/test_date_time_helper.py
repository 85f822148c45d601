"""
core/tests/test_date_time_helper.py

ISO and PDF date parsing.
"""

from __future__ import annotations

import unittest
from datetime import datetime, timezone

from core.helpers.date_time_helper import parse_iso, parse_pdf_date, to_iso


class TestDateTimeHelper(unittest.TestCase):
    def test_pdf_date_offset_is_applied(self) -> None:
        expected = datetime(2024, 3, 1, 10, 30, 5, tzinfo=timezone.utc)
        self.assertEqual(parse_pdf_date("D:20240301123005+02'00'"), expected)
        self.assertEqual(parse_pdf_date("D:20240301083005-02'00"), expected)
        self.assertEqual(parse_pdf_date("D:20240301103005Z"), expected)
        self.assertEqual(parse_pdf_date("D:20240301103005"), expected)

    def test_bad_pdf_dates_are_none(self) -> None:
        self.assertIsNone(parse_pdf_date(""))
        self.assertIsNone(parse_pdf_date("20240301103005"))
        self.assertIsNone(parse_pdf_date("D:20241399103005"))

    def test_iso_round_trip_is_utc(self) -> None:
        value = parse_iso("2024-03-01T10:30:05Z")
        self.assertEqual(value.tzinfo, timezone.utc)
        self.assertEqual(to_iso(value), "2024-03-01T10:30:05.000+00:00")


if __name__ == "__main__":
    unittest.main()
