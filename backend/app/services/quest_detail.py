from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from ..core.errors import AuthError, GatewayError, QuestNotFound, ServerError
from ..schemas.quests import QuestDefinition, ResolvedQuest, UserQuestProgress
from .nakama import RpcGateway

logger = logging.getLogger(__name__)


class DetailedFetch(BaseModel):
    kind: Literal["detailed"] = "detailed"
    quest: dict[str, Any]
    steps: list[dict[str, Any]] = Field(default_factory=list)
    user_quest: dict[str, Any] | None = None


class ListFallback(BaseModel):
    kind: Literal["list"] = "list"
    quest: dict[str, Any]


FetchResult = DetailedFetch | ListFallback


def _same_id(doc: dict[str, Any], quest_id: str) -> bool:
    return str(doc.get("id") or doc.get("quest_id") or "") == quest_id


def normalize(fetch: FetchResult) -> ResolvedQuest:
    """Turn either fetch shape into the single model callers work with."""
    if isinstance(fetch, DetailedFetch):
        steps = fetch.steps or fetch.quest.get("steps") or []
        quest = QuestDefinition.from_rpc(fetch.quest, steps)
        progress = UserQuestProgress.from_rpc(quest.id, fetch.user_quest, quest.total_steps)
        return ResolvedQuest(quest=quest, progress=progress, source="detail")
    if isinstance(fetch, ListFallback):
        # The list shape carries no steps
        quest = QuestDefinition.from_rpc(fetch.quest, [])
        user_fields = {"status": fetch.quest.get("user_status"), "progress": fetch.quest.get("progress")}
        progress = UserQuestProgress.from_rpc(quest.id, user_fields, 0)
        return ResolvedQuest(quest=quest, progress=progress, source="list")
    raise TypeError(f"Unknown fetch result: {type(fetch).__name__}")


class QuestDetailResolver:
    def __init__(self, gateway: RpcGateway) -> None:
        self.gateway = gateway

    async def _fetch_detailed(self, quest_id: str) -> DetailedFetch | None:
        try:
            result = await self.gateway.call("get_quest_detail", {"questId": quest_id})
        except AuthError:
            raise
        except GatewayError as exc:
            logger.info("get_quest_detail failed for %s, falling back to quest list: %s", quest_id, exc)
            return None

        quest = result.get("quest")
        if not isinstance(quest, dict) or not _same_id(quest, quest_id):
            logger.info("get_quest_detail returned no quest for %s, falling back to quest list", quest_id)
            return None
        return DetailedFetch(
            quest=quest,
            steps=result.get("steps") or [],
            user_quest=result.get("userQuest") or result.get("user_quest"),
        )

    async def _fetch_from_list(self, quest_id: str) -> ListFallback | None:
        result = await self.gateway.call("get_available_quests", {})
        for doc in result.get("quests") or []:
            if isinstance(doc, dict) and _same_id(doc, quest_id):
                return ListFallback(quest=doc)
        return None

    async def fetch(self, quest_id: str) -> FetchResult:
        detailed = await self._fetch_detailed(quest_id)
        if detailed is not None:
            return detailed
        fallback = await self._fetch_from_list(quest_id)
        if fallback is not None:
            return fallback
        raise QuestNotFound(quest_id)

    async def resolve(self, quest_id: str) -> ResolvedQuest:
        fetched = await self.fetch(quest_id)
        try:
            return normalize(fetched)
        except ValidationError as exc:
            logger.warning("Quest %s has a malformed definition: %s", quest_id, exc)
            raise ServerError("malformed quest definition") from exc

    async def list_available(
        self,
        latitude: float | None = None,
        longitude: float | None = None,
        max_distance_km: float | None = None,
    ) -> list[QuestDefinition]:
        payload: dict[str, Any] = {}
        if latitude is not None and longitude is not None:
            payload = {"latitude": latitude, "longitude": longitude}
            if max_distance_km is not None:
                payload["maxDistanceKm"] = max_distance_km
        result = await self.gateway.call("get_available_quests", payload)
        return [QuestDefinition.from_rpc(doc, []) for doc in result.get("quests") or [] if isinstance(doc, dict)]
