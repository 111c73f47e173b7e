from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(PROJECT_ROOT))

from backend.app.core.config import settings  # noqa: E402
from backend.app.core.errors import GatewayError, ServerError  # noqa: E402

QUEST_ID = "quest-1"


class FakeQuestServer:
    """
    In-memory stand-in for the Nakama quest RPCs.

    Enforces step order and finalization the way the real server does, and
    records every call so tests can assert on what was sent.
    """

    def __init__(self, step_count: int = 3) -> None:
        self.quest = {
            "id": QUEST_ID,
            "title": "Old Town Walk",
            "description": "Three stops around the old town",
            "location_lat": 52.5200,
            "location_lng": 13.4050,
            "radius_meters": 100,
            "difficulty": 2,
            "xp_reward": 150,
        }
        self.steps = [
            {
                "id": f"step-{n}",
                "step_number": n,
                "title": f"Stop {n}",
                "description": f"Find stop {n}",
                "hint": "Look up",
                "latitude": 52.52 + n / 1000,
                "longitude": 13.405,
            }
            for n in range(1, step_count + 1)
        ]
        self.status = "available"
        self.current_step_number = 0
        self.rated = False
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._failures: dict[str, list[GatewayError]] = {}

    def fail(self, name: str, error: GatewayError, times: int = 1) -> None:
        self._failures.setdefault(name, []).extend([error] * times)

    def calls_to(self, name: str) -> list[dict[str, Any]]:
        return [payload for called, payload in self.calls if called == name]

    @property
    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def _list_item(self) -> dict[str, Any]:
        return {**self.quest, "user_status": self.status}

    async def call(self, name: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        payload = payload or {}
        self.calls.append((name, payload))
        pending = self._failures.get(name)
        if pending:
            raise pending.pop(0)
        return getattr(self, f"_rpc_{name}")(payload)

    def _rpc_get_quest_detail(self, payload: dict[str, Any]) -> dict[str, Any]:
        if payload.get("questId") != QUEST_ID:
            raise ServerError("Quest not found")
        user_quest = None
        if self.status != "available":
            user_quest = {"status": self.status, "current_step_number": self.current_step_number}
        return {"success": True, "quest": dict(self.quest), "steps": list(self.steps), "userQuest": user_quest}

    def _rpc_get_available_quests(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {"success": True, "quests": [self._list_item()], "count": 1}

    def _rpc_start_quest(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.status = "active"
        return {"success": True}

    def _rpc_upload_photo(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {"success": True, "url": f"https://cdn.example.com/{payload['questId']}/{payload['stepId']}.jpg"}

    def _rpc_submit_step_media(self, payload: dict[str, Any]) -> dict[str, Any]:
        return {"success": True, "mediaId": "media-1"}

    def _rpc_complete_step(self, payload: dict[str, Any]) -> dict[str, Any]:
        if self.status != "active":
            raise ServerError("Quest is not active")
        expected = self.steps[self.current_step_number]["id"] if self.current_step_number < len(self.steps) else None
        if payload.get("stepId") != expected:
            raise ServerError("Steps must be completed in order")
        self.current_step_number += 1
        return {"success": True, "questCompleted": self.current_step_number == len(self.steps)}

    def _rpc_complete_quest(self, payload: dict[str, Any]) -> dict[str, Any]:
        if self.current_step_number != len(self.steps):
            raise ServerError("Quest has unfinished steps")
        self.status = "completed"
        return {
            "success": True,
            "xp_reward": self.quest["xp_reward"],
            "level_up": True,
            "new_level": 3,
            "rank_up": True,
            "new_rank": 2,
        }

    def _rpc_submit_rating(self, payload: dict[str, Any]) -> dict[str, Any]:
        if self.rated:
            raise ServerError("Quest already rated")
        self.rated = True
        return {"success": True}


@pytest.fixture
def quest_server() -> FakeQuestServer:
    return FakeQuestServer()


@pytest.fixture
def proxy_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "openrouter_api_key", "or-test-key")
    monkeypatch.setattr(settings, "google_maps_api_key", "gm-test-key")
