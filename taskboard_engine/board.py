"""Board persistence collaborator used when staged tasks are committed."""

from __future__ import annotations

import logging
from typing import Any, Protocol
from uuid import uuid4

logger = logging.getLogger(__name__)


class BoardClient(Protocol):
    async def create_task(self, fields: dict[str, Any]) -> dict[str, Any]:
        ...

    async def fetch_board(self, board_id: str) -> dict[str, Any]:
        ...


class InMemoryBoardClient:
    """Board store kept in memory, for demos and tests."""

    def __init__(self) -> None:
        self.boards: dict[str, list[dict[str, Any]]] = {}

    async def create_task(self, fields: dict[str, Any]) -> dict[str, Any]:
        board_id = fields.get("boardId")
        if not board_id:
            raise ValueError("boardId is required to create a task")
        task = {**fields, "id": f"task_{uuid4().hex[:12]}"}
        self.boards.setdefault(board_id, []).append(task)
        logger.debug("Created task %s on board %s", task["id"], board_id)
        return task

    async def fetch_board(self, board_id: str) -> dict[str, Any]:
        return {"id": board_id, "tasks": list(self.boards.get(board_id, []))}
