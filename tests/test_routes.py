"""Tests for the HTTP API (FastAPI TestClient)."""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from solorpg.app import create_app
from solorpg.llm import EchoLLM
from tests.helpers import make_campaign, make_character


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(config={"provider": "echo"}, llm=EchoLLM()))


def _context() -> dict:
    return {
        "campaign": make_campaign().model_dump(),
        "messages": [],
        "character": make_character().model_dump(),
    }


def test_health(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_settings_mask_api_key(client: TestClient, monkeypatch) -> None:
    monkeypatch.setenv("SOLORPG_API_KEY", "sk-secret")
    assert client.get("/api/settings").json()["api_key"] == "***"


def test_settings_patch(client: TestClient) -> None:
    data = client.patch("/api/settings", json={"language": "es"}).json()
    assert data["language"] == "es"


class TestMechanics:
    def test_resolve(self, client: TestClient) -> None:
        data = client.post("/api/resolve", json={"roll": 20, "modifier": -100, "dc": 50}).json()
        assert data["outcome"] == "critical_success"

    def test_narrative_risk(self, client: TestClient) -> None:
        assert client.get("/api/narrative-risk", params={"dc": 16}).json()["guidance"] == "Common challenge"

    def test_progression(self, client: TestClient) -> None:
        data = client.get("/api/progression", params={"xp": 900}).json()
        assert data == {"level": 2, "next_level_xp": 1800, "progress": 25.0}

    def test_progression_negative_xp(self, client: TestClient) -> None:
        assert client.get("/api/progression", params={"xp": -1}).status_code == 400

    def test_xp_change(self, client: TestClient) -> None:
        data = client.post("/api/progression/xp", json={"level": 1, "xp": 590, "delta": 20}).json()
        assert data["new_level"] == 2
        assert data["attribute_points"] == 1

    def test_migrate(self, client: TestClient) -> None:
        data = client.post("/api/attributes/migrate", json={"attributes": {"STR": 16, "POW": 99}}).json()
        assert data == {"strength": 16, "agility": 5, "mind": 20, "presence": 5}

    def test_dice(self, client: TestClient) -> None:
        data = client.post("/api/dice/roll", json={"notation": "3d6"}).json()
        assert 3 <= data["total"] <= 18
        assert client.post("/api/dice/roll", json={"notation": "3x6"}).status_code == 400

    def test_presets(self, client: TestClient) -> None:
        assert len(client.get("/api/presets").json()) == 5


class TestDirectivesAndContext:
    def test_extract(self, client: TestClient) -> None:
        data = client.post("/api/directives/extract", json={"text": "Ow. <damage>2</damage>"}).json()
        assert data["clean_content"] == "Ow."
        assert data["effects"] == [{"type": "damage", "amount": 2, "roll_notation": None, "resource_name": None}]

    def test_assemble(self, client: TestClient) -> None:
        messages = [
            {"id": "1", "campaign_id": "c", "role": "ai", "content": "a"},
            {"id": "2", "campaign_id": "c", "role": "ai", "content": "b"},
        ]
        data = client.post("/api/context/assemble", json={"messages": messages}).json()
        assert data == [
            {"role": "user", "content": "[Conversation started]"},
            {"role": "assistant", "content": "a\n\nb"},
        ]


class TestSession:
    def test_turn_echoes_through_extraction(self, client: TestClient) -> None:
        body = {"context": _context(), "message": "I search. <heal>4</heal>"}
        data = client.post("/api/turn", json=body).json()
        assert data["status"] == "ok"
        assert data["narration"] == "I search."
        assert data["effects"][0]["type"] == "heal"

    def test_roll_turn(self, client: TestClient) -> None:
        roll = {"notation": "d20", "rolls": [12], "total": 12, "breakdown": "12 = 12"}
        data = client.post("/api/turn/roll", json={"context": _context(), "roll": roll, "dc": 10}).json()
        assert data["resolution"]["outcome"] == "success"
        assert data["roll_xp"]["amount"] == 10

    def test_action_turn(self, client: TestClient) -> None:
        action = {"id": "1", "label": "Look", "action": "I look around"}
        data = client.post("/api/turn/action", json={"context": _context(), "action": action}).json()
        assert data["narration"] == "I look around"

    def test_start_and_defeat(self, client: TestClient) -> None:
        assert client.post("/api/turn/start", json=_context()).json()["status"] == "ok"
        data = client.post("/api/turn/defeat", json=_context()).json()
        assert data["narration"].startswith("💀 **GAME OVER**")

    def test_cancel_unknown_session(self, client: TestClient) -> None:
        assert client.post("/api/turn/cancel", params={"session_id": "ghost"}).status_code == 404
        assert client.post("/api/turn/cancel").status_code == 422

    def test_session_turn_then_cancel_and_close(self, client: TestClient) -> None:
        params = {"session_id": "s1"}
        body = {"context": _context(), "message": "I wait."}
        assert client.post("/api/turn", json=body, params=params).json()["status"] == "ok"
        assert client.post("/api/turn/cancel", params=params).json() == {"ok": True}
        assert client.delete("/api/sessions/s1").json() == {"ok": True}
        assert client.delete("/api/sessions/s1").status_code == 404

    def test_memory_extract_degrades_to_empty(self, client: TestClient) -> None:
        messages = [{"id": "m1", "campaign_id": "c", "role": "user", "content": "hello"}]
        data = client.post("/api/memory/extract", json={"messages": messages}).json()
        assert data == {"recap": "", "entities": [], "facts": []}

    def test_invalid_body(self, client: TestClient) -> None:
        assert client.post("/api/turn", json={"message": "x"}).status_code == 422

    def test_campaign_suggestion_falls_back(self, client: TestClient) -> None:
        data = client.post("/api/campaigns/suggest", json={"system": "dnd-fantasy"}).json()
        assert data["title"] == "The Forgotten Ruins"


def test_resolve_rejects_roll_outside_d20(client: TestClient) -> None:
    assert client.post("/api/resolve", json={"roll": 0, "dc": 10}).status_code == 422
    assert client.post("/api/resolve", json={"roll": 21, "dc": 10}).status_code == 422


# ---------------------------------------------------------------------------
# Concurrent clients
# ---------------------------------------------------------------------------

class SlowLLM:
    """Answers after a delay, so several turns are in flight at once."""

    def __init__(self, reply: str, delay: float = 0.2) -> None:
        self.reply = reply
        self.delay = delay

    async def send_streaming(self, system_prompt, turns, on_chunk=None) -> str:
        await asyncio.sleep(self.delay)
        if on_chunk is not None:
            on_chunk(self.reply)
        return self.reply

    async def send_once(self, system_prompt, turns) -> str:
        return "{}"


def _async_client() -> httpx.AsyncClient:
    app = create_app(config={"provider": "echo"}, llm=SlowLLM("The gate opens."))
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestConcurrentTurns:
    async def test_turns_of_different_sessions_both_complete(self) -> None:
        body = {"context": _context(), "message": "I push the gate"}
        async with _async_client() as c:
            a, b = await asyncio.gather(
                c.post("/api/turn", json=body, params={"session_id": "a"}),
                c.post("/api/turn", json=body, params={"session_id": "b"}),
            )
        for response in (a, b):
            assert response.json()["status"] == "ok"
            assert response.json()["narration"] == "The gate opens."

    async def test_turns_without_session_id_are_isolated(self) -> None:
        body = {"context": _context(), "message": "I push the gate"}
        async with _async_client() as c:
            responses = await asyncio.gather(*(c.post("/api/turn", json=body) for _ in range(3)))
        assert [r.json()["status"] for r in responses] == ["ok", "ok", "ok"]

    async def test_cancel_hits_only_its_own_session(self) -> None:
        body = {"context": _context(), "message": "I push the gate"}
        async with _async_client() as c:

            async def cancel_a() -> httpx.Response:
                await asyncio.sleep(0.05)
                return await c.post("/api/turn/cancel", params={"session_id": "a"})

            a, b, cancelled = await asyncio.gather(
                c.post("/api/turn", json=body, params={"session_id": "a"}),
                c.post("/api/turn", json=body, params={"session_id": "b"}),
                cancel_a(),
            )
        assert cancelled.json() == {"ok": True}
        assert a.json()["status"] == "cancelled"
        assert b.json()["status"] == "ok"
