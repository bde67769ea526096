"""
Tests for afk_bot/webserver.py

Handlers are called directly with mocked requests.
"""

import asyncio
import json
import threading

import pytest
from aiohttp.test_utils import make_mocked_request

from afk_bot.webserver import StatusServer


class _Bot:
    """Minimal stand-in for BotController."""

    def __init__(self, client=None, mining=False):
        self.client = client
        self.mining = mining

    def is_mining(self):
        return self.mining


def call(handler, path):
    response = asyncio.run(handler(make_mocked_request("GET", path)))
    return response.status, response.text


class TestHandlers:
    """Tests for the HTTP handlers."""

    def test_index(self):
        server = StatusServer(_Bot())
        status, text = call(server.index_handler, "/")
        assert status == 200
        assert text == "Minecraft bot is running!"

    def test_status_connected(self, client):
        server = StatusServer(_Bot(client, mining=True))
        status, text = call(server.status_handler, "/status")
        assert status == 200
        assert json.loads(text) == {
            "username": "AfkBot",
            "health": 20.0,
            "food": 20.0,
            "position": {"x": 0.5, "y": 64, "z": 0.5},
            "isMining": True,
        }

    def test_status_without_bot(self):
        server = StatusServer(_Bot())
        status, text = call(server.status_handler, "/status")
        body = json.loads(text)
        assert status == 200
        assert body["username"] == "N/A"
        assert body["health"] == "N/A"
        assert body["position"] is None
        assert body["isMining"] is False

    def test_status_error(self, client):
        class _Broken(_Bot):
            def is_mining(self):
                raise RuntimeError("boom")

        server = StatusServer(_Broken(client))
        status, text = call(server.status_handler, "/status")
        assert status == 500
        assert "error" in json.loads(text)

    def test_inventory(self, client):
        client.give_item("dirt", 3)
        server = StatusServer(_Bot(client))
        status, text = call(server.inventory_handler, "/inventory")
        assert status == 200
        assert json.loads(text) == [{"name": "dirt", "count": 3}]

    def test_inventory_without_bot(self):
        server = StatusServer(_Bot())
        _, text = call(server.inventory_handler, "/inventory")
        assert json.loads(text) == []

    def test_client_reads_run_off_the_event_loop(self, client, monkeypatch):
        threads = {}
        get_health = client.get_health

        def recording_health():
            threads["read"] = threading.current_thread()
            return get_health()

        monkeypatch.setattr(client, "get_health", recording_health)
        server = StatusServer(_Bot(client))

        async def request_status():
            threads["loop"] = threading.current_thread()
            return await server.status_handler(make_mocked_request("GET", "/status"))

        response = asyncio.run(request_status())
        assert response.status == 200
        assert threads["read"] is not threads["loop"]

    def test_inventory_error(self, client, monkeypatch):
        def broken():
            raise RuntimeError("bridge closed")

        monkeypatch.setattr(client, "get_inventory", broken)
        server = StatusServer(_Bot(client))
        status, text = call(server.inventory_handler, "/inventory")
        assert status == 500
        assert "error" in json.loads(text)


class TestLifecycle:
    """Tests for starting and stopping the server thread."""

    def test_start_and_stop(self):
        server = StatusServer(_Bot(), port=0, host="127.0.0.1")
        assert server.start() is True
        server.stop()
        assert server._thread is None
