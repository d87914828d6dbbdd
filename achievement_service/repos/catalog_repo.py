from __future__ import annotations

import threading
import time
from typing import Protocol
from uuid import UUID

from achievement_service.models.achievement import AchievementDefinition, AwardRecord


class CatalogRepo(Protocol):
    """Achievement catalog and award records.

    insert_award_if_absent is the only write path for awards.  It must be
    atomic with respect to the (learner_id, achievement_id) uniqueness
    rule and report whether it created the row.
    """

    async def list_all(self) -> list[AchievementDefinition]: ...
    async def list_unheld(self, learner_id: str) -> list[AchievementDefinition]: ...
    async def get(self, achievement_id: UUID) -> AchievementDefinition | None: ...
    async def get_by_name(self, name: str) -> AchievementDefinition | None: ...
    async def add(self, achievement: AchievementDefinition) -> None: ...
    async def list_awards(self, learner_id: str) -> list[AwardRecord]: ...
    async def insert_award_if_absent(
        self,
        learner_id: str,
        achievement_id: UUID,
        *,
        source: str = "evaluation",
        granted_by: str | None = None,
    ) -> AwardRecord | None: ...
    async def commit(self) -> None:
        """Make the writes so far visible to other readers."""
        ...


class InMemoryCatalogRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, AchievementDefinition] = {}
        self._awards: dict[tuple[str, UUID], AwardRecord] = {}
        # Plays the part of the unique index on (learner_id, achievement_id).
        self._lock = threading.Lock()

    def clear(self) -> None:
        with self._lock:
            self._by_id.clear()
            self._awards.clear()

    async def commit(self) -> None:
        pass

    async def list_all(self) -> list[AchievementDefinition]:
        return sorted(self._by_id.values(), key=lambda a: a.created_at)

    async def list_unheld(self, learner_id: str) -> list[AchievementDefinition]:
        with self._lock:
            held = {aid for (lid, aid) in self._awards if lid == learner_id}
        return [a for a in await self.list_all() if a.id not in held]

    async def get(self, achievement_id: UUID) -> AchievementDefinition | None:
        return self._by_id.get(achievement_id)

    async def get_by_name(self, name: str) -> AchievementDefinition | None:
        for a in self._by_id.values():
            if a.name == name:
                return a
        return None

    async def add(self, achievement: AchievementDefinition) -> None:
        if achievement.id in self._by_id:
            raise ValueError("achievement already exists")
        if await self.get_by_name(achievement.name) is not None:
            raise ValueError("achievement name already exists")
        self._by_id[achievement.id] = achievement

    async def list_awards(self, learner_id: str) -> list[AwardRecord]:
        with self._lock:
            awards = [r for (lid, _), r in self._awards.items() if lid == learner_id]
        return sorted(awards, key=lambda r: r.earned_at, reverse=True)

    async def insert_award_if_absent(
        self,
        learner_id: str,
        achievement_id: UUID,
        *,
        source: str = "evaluation",
        granted_by: str | None = None,
    ) -> AwardRecord | None:
        key = (learner_id, achievement_id)
        with self._lock:
            if key in self._awards:
                return None
            record = AwardRecord(
                learner_id=learner_id,
                achievement_id=achievement_id,
                earned_at=int(time.time()),
                source=source,
                granted_by=granted_by,
            )
            self._awards[key] = record
            return record
