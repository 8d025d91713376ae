# -*- coding: utf-8 -*-

from __future__ import annotations

import asyncio
import json
import shutil
import tempfile
import unittest
from pathlib import Path

import httpx

from nutritrack.app_db import SqliteBackend
from nutritrack.gateway import Gateway
from nutritrack.notifications.dispatcher import NotificationDispatcher, chunk_messages, is_expo_push_token
from nutritrack.notifications.tokens import list_push_tokens, register_push_token, remove_push_token

USER = "push-user"


class TestPushTokens(unittest.TestCase):
    def test_token_format(self) -> None:
        self.assertTrue(is_expo_push_token("ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]"))
        self.assertTrue(is_expo_push_token("ExpoPushToken[abc]"))
        self.assertTrue(is_expo_push_token("f47ac10b-58cc-4372-a567-0e02b2c3d479"))
        self.assertFalse(is_expo_push_token("fcm:abcdef"))
        self.assertFalse(is_expo_push_token(None))

    def test_chunking(self) -> None:
        chunks = chunk_messages([{"to": i} for i in range(250)])
        self.assertEqual([len(c) for c in chunks], [100, 100, 50])


class TestNotificationDispatcher(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = Path(tempfile.mkdtemp(prefix="nutritrack-test-"))
        self.gateway = Gateway(SqliteBackend(self._tmp / "store.db"))
        self.db = self.gateway.for_service()
        self.posts = []

    def tearDown(self) -> None:
        shutil.rmtree(self._tmp, ignore_errors=True)

    def _dispatcher(self, handler) -> NotificationDispatcher:
        def recording(request: httpx.Request) -> httpx.Response:
            self.posts.append(json.loads(request.content))
            return handler(request, self.posts[-1])

        return NotificationDispatcher(
            self.gateway,
            push_url="https://push.example.com/send",
            access_token="",
            transport=httpx.MockTransport(recording),
        )

    def test_register_upserts_by_device(self) -> None:
        asyncio.run(register_push_token(self.db, USER, "ExponentPushToken[old]", device_id="phone", device_name="Pixel"))
        asyncio.run(register_push_token(self.db, USER, "ExponentPushToken[new]", device_id="phone", device_name="Pixel"))
        asyncio.run(register_push_token(self.db, USER, "ExponentPushToken[tablet]", device_id="tablet"))
        self.assertEqual(
            sorted(asyncio.run(list_push_tokens(self.db, USER))),
            ["ExponentPushToken[new]", "ExponentPushToken[tablet]"],
        )
        self.assertEqual(asyncio.run(remove_push_token(self.db, USER, device_id="tablet")), 1)
        self.assertEqual(asyncio.run(list_push_tokens(self.db, USER)), ["ExponentPushToken[new]"])

    def test_no_tokens_is_a_no_op(self) -> None:
        dispatcher = self._dispatcher(lambda request, body: httpx.Response(200, json={"data": []}))
        result = asyncio.run(dispatcher.send(USER, "t", "b"))
        self.assertEqual(result.sent, 0)
        self.assertEqual(self.posts, [])

    def test_sends_in_chunks_and_skips_malformed_tokens(self) -> None:
        for i in range(205):
            asyncio.run(register_push_token(self.db, USER, f"ExponentPushToken[t{i}]", device_id=f"d{i}"))
        asyncio.run(register_push_token(self.db, USER, "not-a-token", device_id="broken"))

        def ok(request: httpx.Request, body) -> httpx.Response:
            return httpx.Response(200, json={"data": [{"status": "ok", "id": str(i)} for i in range(len(body))]})

        result = asyncio.run(self._dispatcher(ok).send(USER, "Hello", "World", {"recommendationId": "r1"}))

        self.assertEqual([len(p) for p in self.posts], [100, 100, 5])
        self.assertEqual(result.sent, 205)
        self.assertEqual(result.skipped_tokens, ["not-a-token"])
        message = self.posts[0][0]
        self.assertEqual(message["title"], "Hello")
        self.assertEqual(message["sound"], "default")
        self.assertEqual(message["data"], {"recommendationId": "r1"})

    def test_unregistered_devices_are_removed(self) -> None:
        asyncio.run(register_push_token(self.db, USER, "ExponentPushToken[alive]", device_id="a"))
        asyncio.run(register_push_token(self.db, USER, "ExponentPushToken[gone]", device_id="b"))
        asyncio.run(register_push_token(self.db, USER, "ExponentPushToken[creds]", device_id="c"))

        def tickets(request: httpx.Request, body) -> httpx.Response:
            data = []
            for message in body:
                if message["to"] == "ExponentPushToken[gone]":
                    data.append({"status": "error", "message": "not registered", "details": {"error": "DeviceNotRegistered"}})
                elif message["to"] == "ExponentPushToken[creds]":
                    data.append({"status": "error", "message": "bad creds", "details": {"error": "InvalidCredentials"}})
                else:
                    data.append({"status": "ok", "id": "x"})
            return httpx.Response(200, json={"data": data})

        result = asyncio.run(self._dispatcher(tickets).send(USER, "t", "b"))

        self.assertEqual(result.sent, 1)
        self.assertEqual(result.failed, 2)
        self.assertEqual(result.removed_tokens, ["ExponentPushToken[gone]"])
        self.assertEqual(
            sorted(asyncio.run(list_push_tokens(self.db, USER))),
            ["ExponentPushToken[alive]", "ExponentPushToken[creds]"],
        )

    def test_failed_chunk_does_not_raise(self) -> None:
        asyncio.run(register_push_token(self.db, USER, "ExponentPushToken[a]", device_id="a"))
        result = asyncio.run(self._dispatcher(lambda request, body: httpx.Response(500, text="down")).send(USER, "t", "b"))
        self.assertEqual(result.failed, 1)
        self.assertEqual(result.sent, 0)


class TestNotificationsApi(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        from helpers import load_app

        cls._tmp = Path(tempfile.mkdtemp(prefix="nutritrack-test-"))
        cls.app = load_app(cls._tmp)

        from fastapi.testclient import TestClient

        cls.client = TestClient(cls.app)

    @classmethod
    def tearDownClass(cls) -> None:
        cls.client.close()
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def test_register_and_remove_token(self) -> None:
        from helpers import auth_headers

        headers = auth_headers("api-push-user")
        body = {"push_token": "ExponentPushToken[abc]", "device_id": "phone", "device_name": "iPhone"}
        self.assertEqual(self.client.post("/notifications/register-token", json=body).status_code, 401)
        resp = self.client.post("/notifications/register-token", json=body, headers=headers)
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertTrue(resp.json()["success"])

        resp = self.client.request("DELETE", "/notifications/register-token", json={"device_id": "phone"}, headers=headers)
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["message"], "Removed 1 token(s)")

        resp = self.client.request("DELETE", "/notifications/register-token", json={}, headers=headers)
        self.assertEqual(resp.status_code, 400)

    def test_test_send_without_auth(self) -> None:
        from nutritrack.notifications.dispatcher import set_dispatcher
        from helpers import RecordingDispatcher

        recorder = RecordingDispatcher()
        set_dispatcher(recorder)
        try:
            resp = self.client.post(
                "/test-notifications/send",
                json={"userId": "u1", "title": "Hi", "body": "There", "data": {"k": "v"}},
            )
        finally:
            set_dispatcher(None)
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(recorder.calls, [{"user_id": "u1", "title": "Hi", "body": "There", "data": {"k": "v"}}])


if __name__ == "__main__":
    unittest.main()
