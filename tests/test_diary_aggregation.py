# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import shutil
import tempfile
import unittest
from datetime import date
from pathlib import Path

from helpers import PROFILE, food_entry

from nutritrack.app_db import SqliteBackend
from nutritrack.diary.aggregator import get_or_create_daily_diary, recompute_totals
from nutritrack.diary.storage import create_food_entry, delete_food_entry, get_daily_diary
from nutritrack.gateway import Gateway, eq
from nutritrack.users.storage import create_profile, update_profile

DAY = date(2024, 5, 1)
USER = "user-aggregation"


class TestDiaryAggregation(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="nutritrack-test-"))
        self.db = Gateway(SqliteBackend(self._tmp / "store.db")).for_user("token")
        asyncio.run(create_profile(self.db, USER, "u@example.com", dict(PROFILE)))

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp, ignore_errors=True)

    def _diary(self, day: date = DAY) -> dict:
        return asyncio.run(get_daily_diary(self.db, USER, day))

    def test_get_or_create_returns_same_row(self) -> None:
        first = asyncio.run(get_or_create_daily_diary(self.db, USER, DAY))
        second = asyncio.run(get_or_create_daily_diary(self.db, USER, DAY))
        self.assertEqual(first["id"], second["id"])
        rows = asyncio.run(self.db.select("daily_diary", filters=[eq("user_id", USER)]))
        self.assertEqual(len(rows), 1)

    def test_first_access_race_returns_the_winning_row(self) -> None:
        winner = asyncio.run(get_or_create_daily_diary(self.db, USER, DAY))
        inner = self.db

        class StaleFirstLookup:
            """The first diary lookup misses although another writer already inserted it."""

            def __init__(self) -> None:
                self.lookups = 0

            def __getattr__(self, name):
                return getattr(inner, name)

            async def select_one(self, table, **kwargs):
                if table == "daily_diary":
                    self.lookups += 1
                    if self.lookups == 1:
                        return None
                return await inner.select_one(table, **kwargs)

        db = StaleFirstLookup()
        diary = asyncio.run(get_or_create_daily_diary(db, USER, DAY))

        self.assertEqual(diary["id"], winner["id"])
        self.assertEqual(db.lookups, 2)
        rows = asyncio.run(self.db.select("daily_diary", filters=[eq("user_id", USER)]))
        self.assertEqual(len(rows), 1)

    def test_new_diary_copies_profile_goals(self) -> None:
        diary = asyncio.run(get_or_create_daily_diary(self.db, USER, DAY))
        self.assertEqual(diary["calorie_goal"], 2000)
        self.assertEqual(diary["protein_goal_g"], 150.0)
        self.assertEqual(diary["carbs_goal_g"], 200.0)
        self.assertAlmostEqual(diary["fat_goal_g"], 66.7, places=1)
        self.assertEqual(diary["calories_consumed"], 0)

    def test_totals_follow_creates_and_deletes(self) -> None:
        entries = [
            food_entry("Oats", 380, 13.5, 60, 7),
            food_entry("Chicken", 165, 31, 0, 3.6),
            food_entry("Rice", 130, 2.7, 28, 0.3),
        ]
        created = [asyncio.run(create_food_entry(self.db, USER, DAY, e)) for e in entries]

        diary = self._diary()
        self.assertEqual(len(diary["food_entries"]), 3)
        self.assertAlmostEqual(diary["calories_consumed"], 675)
        self.assertAlmostEqual(diary["protein_consumed_g"], 47.2)
        self.assertAlmostEqual(diary["carbs_consumed_g"], 88)
        self.assertAlmostEqual(diary["fat_consumed_g"], 10.9)
        self.assertEqual(diary["protein_ratio"], 30)

        asyncio.run(delete_food_entry(self.db, USER, created[1]["id"]))
        diary = self._diary()
        self.assertAlmostEqual(diary["calories_consumed"], 510)
        self.assertAlmostEqual(diary["protein_consumed_g"], 16.2)

        for entry in (created[0], created[2]):
            asyncio.run(delete_food_entry(self.db, USER, entry["id"]))
        diary = self._diary()
        self.assertEqual(diary["food_entries"], [])
        for column in ("calories_consumed", "protein_consumed_g", "carbs_consumed_g", "fat_consumed_g"):
            self.assertEqual(diary[column], 0)

    def test_concurrent_recomputes_settle_on_entry_sums(self) -> None:
        async def scenario() -> dict:
            diary = await get_or_create_daily_diary(self.db, USER, DAY)
            await asyncio.gather(*(create_food_entry(self.db, USER, DAY, food_entry(f"Snack {i}", 100, 1, 10, 5)) for i in range(5)))
            await asyncio.gather(*(recompute_totals(self.db, diary["id"]) for _ in range(3)))
            return await get_daily_diary(self.db, USER, DAY)

        diary = asyncio.run(scenario())
        self.assertEqual(len(diary["food_entries"]), 5)
        self.assertAlmostEqual(diary["calories_consumed"], 500)
        self.assertAlmostEqual(diary["fat_consumed_g"], 25)

    def test_ratios_are_refreshed_from_current_profile(self) -> None:
        asyncio.run(create_food_entry(self.db, USER, DAY, food_entry("Egg", 78, 6, 0.6, 5)))
        asyncio.run(update_profile(self.db, USER, {"protein_ratio": 35, "carbs_ratio": 35}))
        entry = asyncio.run(create_food_entry(self.db, USER, DAY, food_entry("Toast", 80, 3, 15, 1)))
        diary = asyncio.run(recompute_totals(self.db, entry["day_id"]))
        self.assertEqual(diary["protein_ratio"], 35)
        self.assertEqual(diary["carbs_ratio"], 35)

    def test_calorie_goal_change_rewrites_every_diary(self) -> None:
        for day in (date(2024, 4, 1), DAY, date(2024, 6, 1)):
            asyncio.run(get_or_create_daily_diary(self.db, USER, day))

        asyncio.run(update_profile(self.db, USER, {"calorie_goal_value": 2400}))

        rows = asyncio.run(self.db.select("daily_diary", filters=[eq("user_id", USER)]))
        self.assertEqual(len(rows), 3)
        for row in rows:
            self.assertEqual(row["calorie_goal"], 2400)
            self.assertEqual(row["protein_goal_g"], 180.0)
            self.assertEqual(row["carbs_goal_g"], 240.0)

    def test_unrelated_profile_change_keeps_diaries(self) -> None:
        diary = asyncio.run(get_or_create_daily_diary(self.db, USER, DAY))
        asyncio.run(update_profile(self.db, USER, {"first_name": "Jane"}))
        row = asyncio.run(self.db.select_one("daily_diary", filters=[eq("id", diary["id"])]))
        self.assertEqual(row["updated_at"], diary["updated_at"])


if __name__ == "__main__":
    unittest.main()
