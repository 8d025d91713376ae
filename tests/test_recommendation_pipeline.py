# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import json
import shutil
import tempfile
import unittest
from datetime import date
from pathlib import Path

import httpx
from helpers import PROFILE, RecordingDispatcher, food_entry

from nutritrack.app_db import SqliteBackend
from nutritrack.completion import CompletionClient, CompletionError
from nutritrack.diary.aggregator import get_or_create_daily_diary
from nutritrack.diary.storage import create_food_entry
from nutritrack.gateway import Gateway, distinct_values, eq
from nutritrack.notifications.tokens import register_push_token
from nutritrack.recommendations.pipeline import RecommendationPipeline, resolve_user_source, users_from_profiles
from nutritrack.recommendations.prompt import PROMPT_VERSION, build_prompt, macro_percentages
from nutritrack.users.storage import add_weight, create_profile

DAY = date(2024, 5, 1)
ANSWER = json.dumps(
    {"summary": "Vyvážený den", "positives": ["Dost bílkovin"], "improvements": ["Více zeleniny"], "motivation": "Jen tak dál"},
    ensure_ascii=False,
)


class TestRecommendationPipeline(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="nutritrack-test-"))
        self.gateway = Gateway(SqliteBackend(self._tmp / "store.db"))
        self.db = self.gateway.for_service()
        self.requests = []

        def completion_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(json.loads(request.content))
            return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": ANSWER}}]})

        self.completion = CompletionClient(
            api_key="sk-test",
            base_url="https://llm.example.com/v1",
            language="Czech",
            transport=httpx.MockTransport(completion_handler),
        )
        self.dispatcher = RecordingDispatcher()

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp, ignore_errors=True)

    def _pipeline(self, **kwargs) -> RecommendationPipeline:
        return RecommendationPipeline(
            gateway=self.gateway,
            completion=kwargs.get("completion", self.completion),
            dispatcher=self.dispatcher,
            user_source=users_from_profiles,
            model="gpt-4o",
        )

    def _add_user(self, user_id: str, entries=()) -> None:
        asyncio.run(create_profile(self.db, user_id, f"{user_id}@example.com", dict(PROFILE)))
        for entry in entries:
            asyncio.run(create_food_entry(self.db, user_id, DAY, entry))

    def _recommendations(self, user_id: str):
        return asyncio.run(self.db.select("ai_recommendations", filters=[eq("user_id", user_id)]))

    def test_user_without_entries_gets_nothing(self) -> None:
        self._add_user("empty")
        asyncio.run(get_or_create_daily_diary(self.db, "empty", DAY))
        self._add_user("no-diary")

        report = asyncio.run(self._pipeline().run(DAY))

        self.assertEqual(sorted(report.skipped), ["empty", "no-diary"])
        self.assertEqual(report.processed, [])
        self.assertEqual(self._recommendations("empty"), [])
        self.assertEqual(self.dispatcher.calls, [])
        self.assertEqual(self.requests, [])

    def test_user_with_entries_gets_one_recommendation(self) -> None:
        self._add_user("eater", [food_entry("Oats", 380, 13.5, 60, 7, meal_type="breakfast"), food_entry("Chicken", 165, 31, 0, 3.6)])

        report = asyncio.run(self._pipeline().run(DAY))

        self.assertEqual(report.processed, ["eater"])
        rows = self._recommendations("eater")
        self.assertEqual(len(rows), 1)
        row = rows[0]
        self.assertEqual(row["prompt_version"], PROMPT_VERSION)
        self.assertFalse(row["viewed"])
        self.assertEqual(row["analyzed_date"], "2024-05-01")
        self.assertEqual(row["response"], ANSWER)
        self.assertEqual(row["model_used"], "gpt-4o")
        self.assertIn("- Oats (breakfast): 380 kcal", row["prompt"])

        self.assertEqual(len(self.dispatcher.calls), 1)
        self.assertEqual(self.dispatcher.calls[0]["user_id"], "eater")
        self.assertEqual(self.dispatcher.calls[0]["data"], {"recommendationId": row["id"]})

        sent = self.requests[0]
        self.assertEqual(sent["model"], "gpt-4o")
        self.assertEqual(sent["temperature"], 0.5)
        self.assertEqual(sent["response_format"], {"type": "json_object"})
        self.assertEqual(sent["messages"][0]["role"], "system")
        self.assertIn("Czech", sent["messages"][0]["content"])
        self.assertEqual(sent["messages"][1]["content"], row["prompt"])

    def test_second_run_does_not_duplicate(self) -> None:
        self._add_user("eater", [food_entry("Rice", 130, 2.7, 28, 0.3)])
        asyncio.run(self._pipeline().run(DAY))
        report = asyncio.run(self._pipeline().run(DAY))
        self.assertEqual(report.skipped, ["eater"])
        self.assertEqual(len(self._recommendations("eater")), 1)
        self.assertEqual(len(self.dispatcher.calls), 1)

    def test_failure_for_one_user_does_not_stop_the_run(self) -> None:
        self._add_user("a", [food_entry("Rice", 130, 2.7, 28, 0.3)])
        self._add_user("b", [food_entry("Pasta", 160, 6, 31, 1)])

        def failing(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"error": "overloaded"})

        broken = CompletionClient(api_key="sk-test", transport=httpx.MockTransport(failing))
        report = asyncio.run(self._pipeline(completion=broken).run(DAY))

        self.assertEqual(sorted(report.failed), ["a", "b"])
        self.assertEqual(self._recommendations("a"), [])
        self.assertEqual(self.dispatcher.calls, [])

    def test_prompt_uses_latest_weight(self) -> None:
        self._add_user("weighed", [food_entry("Rice", 130, 2.7, 28, 0.3)])
        asyncio.run(add_weight(self.db, "weighed", weight_value=150, weight_unit="lbs"))
        asyncio.run(self._pipeline().run(DAY))
        prompt = self._recommendations("weighed")[0]["prompt"]
        self.assertIn("žena, 68.0 kg, cíl zhubnout na 65 kg", prompt)

    def test_push_token_user_source(self) -> None:
        self._add_user("with-token")
        self._add_user("without-token")
        asyncio.run(register_push_token(self.db, "with-token", "ExponentPushToken[abc]", device_id="d1"))
        asyncio.run(register_push_token(self.db, "with-token", "ExponentPushToken[def]", device_id="d2"))
        source = resolve_user_source("push_tokens")
        self.assertEqual(asyncio.run(source(self.db)), ["with-token"])
        with self.assertRaises(ValueError):
            resolve_user_source("everyone")

    def test_push_token_source_reads_every_page(self) -> None:
        heavy = [{"user_id": "heavy", "push_token": f"ExponentPushToken[h{i}]", "device_id": f"h{i}"} for i in range(1500)]
        asyncio.run(self.db.insert("user_push_tokens", heavy + [{"user_id": "light", "push_token": "ExponentPushToken[l]"}]))
        users = asyncio.run(resolve_user_source("push_tokens")(self.db))
        self.assertEqual(sorted(users), ["heavy", "light"])

    def test_profile_source_reads_every_page(self) -> None:
        for i in range(5):
            self._add_user(f"user-{i}")
        users = asyncio.run(distinct_values(self.db, "user_profiles", "user_id", page_size=2))
        self.assertEqual(sorted(users), [f"user-{i}" for i in range(5)])
        self.assertEqual(sorted(asyncio.run(users_from_profiles(self.db))), sorted(users))


class TestPrompt(unittest.TestCase):
    def test_macro_percentages(self) -> None:
        self.assertEqual(macro_percentages(50, 100, 50), {"protein": 25, "carbs": 50, "fat": 25})
        self.assertEqual(macro_percentages(0, 0, 0), {"protein": 0, "carbs": 0, "fat": 0})

    def test_template_wording(self) -> None:
        prompt = build_prompt(
            {"gender": "male", "weight_value": 80, "target_weight_value": 85, "goal": "gain_muscle"},
            {
                "calories_consumed": 2500,
                "protein_consumed_g": 150,
                "carbs_consumed_g": 300,
                "fat_consumed_g": 50,
                "food_entries": [{"food_name": "Steak", "meal_type": "dinner", "calories": 600, "protein": 50, "carbs": 0, "fat": 40}],
            },
        )
        self.assertIn("Uživatel: muž, 80 kg, cíl nabrat svaly na 85 kg.", prompt)
        self.assertIn("150g bílkovin (30%), 300g sacharidů (60%), 50g tuků (10%)", prompt)
        self.assertIn("- Steak (dinner): 600 kcal, 50g bílkovin, 0g sacharidů, 40g tuků", prompt)
        self.assertIn('"motivation"', prompt)

    def test_unknown_gender_and_goal(self) -> None:
        prompt = build_prompt({"gender": "other", "goal": "maintain_weight"}, {"food_entries": []})
        self.assertIn("Uživatel: osoba, ? kg, cíl udržet váhu na ? kg.", prompt)


class TestCompletionClient(unittest.TestCase):
    def test_missing_api_key(self) -> None:
        client = CompletionClient(api_key="", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with self.assertRaises(CompletionError):
            asyncio.run(client.generate("hi", "gpt-4o"))

    def test_unexpected_shape(self) -> None:
        client = CompletionClient(api_key="k", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"x": 1})))
        with self.assertRaises(CompletionError):
            asyncio.run(client.generate("hi", "gpt-4o"))

    def test_url_accepts_full_endpoint(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, json={"choices": [{"message": {"content": "{}"}}]})

        client = CompletionClient(
            api_key="k",
            base_url="https://llm.example.com/v1/chat/completions",
            transport=httpx.MockTransport(handler),
        )
        self.assertEqual(asyncio.run(client.generate("hi", "m")), "{}")
        self.assertEqual(seen["url"], "https://llm.example.com/v1/chat/completions")
        self.assertEqual(seen["auth"], "Bearer k")


if __name__ == "__main__":
    unittest.main()
