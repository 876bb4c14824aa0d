"""Tests for debug_console/formatter.py"""

import json
import unittest
from datetime import datetime, timezone

from debug_console.formatter import (
    RESET,
    describe_client,
    format_color,
    format_display_time,
    format_json,
    format_text,
    get_formatter,
)
from debug_console.models import LogRecord, parse_record


def _record(**overrides) -> LogRecord:
    fields = dict(
        timestamp=datetime(2025, 1, 15, 13, 0, 5, tzinfo=timezone.utc),
        severity="ERROR",
        source_level="paranoic",
        category="[API] [Points]",
        message="Submit failed",
    )
    fields.update(overrides)
    return LogRecord(**fields)


class TestDisplayTime(unittest.TestCase):
    def test_winter_is_cet(self):
        ts = datetime(2025, 1, 15, 13, 0, 5, tzinfo=timezone.utc)
        self.assertEqual(format_display_time(ts), "14:00:05 CET")

    def test_summer_is_cest(self):
        ts = datetime(2025, 7, 15, 13, 0, 5, tzinfo=timezone.utc)
        self.assertEqual(format_display_time(ts), "15:00:05 CEST")

    def test_other_timezone(self):
        ts = datetime(2025, 1, 15, 13, 0, 5, tzinfo=timezone.utc)
        self.assertEqual(format_display_time(ts, "UTC"), "13:00:05 UTC")

    def test_missing(self):
        self.assertEqual(format_display_time(None), "N/A")


class TestFormatters(unittest.TestCase):
    def test_text(self):
        line = format_text(_record())
        self.assertEqual(line, "14:00:05 CET ERROR   P [API] [Points] Submit failed")

    def test_text_with_data(self):
        line = format_text(_record(data={"b": 2, "a": 1}))
        self.assertTrue(line.endswith('DATA: {"a": 1, "b": 2}'))

    def test_text_general_category(self):
        self.assertIn("[General]", format_text(_record(category="")))

    def test_text_malformed(self):
        self.assertTrue(format_text(parse_record(99)).startswith("[INVALID LOG ENTRY]"))

    def test_color_contains_reset(self):
        line = format_color(_record())
        self.assertIn("\033[31m", line)
        self.assertIn(RESET, line)

    def test_json(self):
        obj = json.loads(format_json(_record()))
        self.assertEqual(obj["severity"], "ERROR")
        self.assertEqual(obj["display_time"], "14:00:05 CET")
        self.assertEqual(obj["timestamp"], "2025-01-15T13:00:05+00:00")

    def test_factory(self):
        record = _record()
        self.assertEqual(get_formatter("json")(record), format_json(record))
        self.assertEqual(get_formatter("text", color=True)(record), format_color(record))
        self.assertEqual(get_formatter()(record), format_text(record))


class TestDescribeClient(unittest.TestCase):
    def test_android_chrome(self):
        ua = ("Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
              "(KHTML, like Gecko) Chrome/120.0 Mobile Safari/537.36")
        records = [
            parse_record({"msg": "no data"}),
            parse_record({"msg": "session", "data": {"userAgent": ua, "platform": "Linux armv8l", "ip": "10.0.0.2"}}),
        ]
        info = describe_client(records)
        self.assertEqual(info.browser, "Chrome")
        self.assertEqual(info.os, "Android")
        self.assertEqual(info.device, "Mobile")
        self.assertEqual(info.ip, "10.0.0.2")

    def test_desktop_firefox(self):
        ua = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"
        info = describe_client([parse_record({"data": {"user_agent": ua}})])
        self.assertEqual((info.browser, info.os, info.device), ("Firefox", "Windows", "Desktop"))

    def test_no_metadata(self):
        self.assertIsNone(describe_client([parse_record({"msg": "x"})]))
