# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import unittest
from datetime import datetime, timezone

from nutritrack.middleware import REDACTED, error_body, redact, sanitize_headers
from nutritrack.recommendations.scheduler import DailyScheduler, seconds_until


class TestRedaction(unittest.TestCase):
    def test_nested_sensitive_keys_are_masked(self) -> None:
        body = {
            "email": "a@example.com",
            "password": "hunter2",
            "devices": [{"push_token": "ExponentPushToken[x]", "device_id": "d1"}],
            "meta": {"clientSecret": "s", "note": "ok"},
        }
        self.assertEqual(
            redact(body),
            {
                "email": "a@example.com",
                "password": REDACTED,
                "devices": [{"push_token": REDACTED, "device_id": "d1"}],
                "meta": {"clientSecret": REDACTED, "note": "ok"},
            },
        )
        self.assertEqual(body["password"], "hunter2")

    def test_headers(self) -> None:
        headers = sanitize_headers({"Authorization": "Bearer abc", "apikey": "k", "accept": "application/json"})
        self.assertEqual(headers["Authorization"], REDACTED)
        self.assertEqual(headers["apikey"], REDACTED)
        self.assertEqual(headers["accept"], "application/json")

    def test_error_body_shape(self) -> None:
        body = error_body(404, "/diary/entries/x", "Food entry not found")
        self.assertEqual(set(body), {"statusCode", "timestamp", "path", "message"})
        self.assertTrue(body["timestamp"].endswith("Z"))


class TestScheduler(unittest.TestCase):
    def test_seconds_until_same_day(self) -> None:
        now = datetime(2024, 5, 1, 22, 30, tzinfo=timezone.utc)
        self.assertEqual(seconds_until(23, now), 1800.0)

    def test_seconds_until_rolls_over(self) -> None:
        now = datetime(2024, 5, 1, 0, 0, 1, tzinfo=timezone.utc)
        self.assertEqual(seconds_until(0, now), 24 * 3600 - 1)

    def test_start_and_stop(self) -> None:
        async def job() -> None:
            return None

        async def scenario() -> tuple[bool, bool]:
            sched = DailyScheduler(job, hour_utc=3)
            sched.start()
            started = sched.running
            await sched.stop()
            return started, sched.running

        started, still_running = asyncio.run(scenario())
        self.assertTrue(started)
        self.assertFalse(still_running)


if __name__ == "__main__":
    unittest.main()
