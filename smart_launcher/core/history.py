"""Run history and the JSON file store it persists through."""

import asyncio
import logging
import os
import time
from enum import Enum
from typing import Callable, Generic, List, Optional, Protocol, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from smart_launcher.config import Settings, get_settings
from smart_launcher.models.schemas import (
    CommandHandler,
    ExecutableCommand,
    HistoryEntry,
    HistoryState,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Creating notes and system actions are not worth repeating from history
UNRECORDED_HANDLERS = {CommandHandler.CREATE_NOTE.value, CommandHandler.SYSTEM.value}


class Store(Protocol[M]):
    async def restore(self) -> M: ...

    async def persist(self, value: M) -> None: ...


class JsonFileStore(Generic[M]):
    """Schema-validated JSON file; a missing or invalid file restores defaults."""

    def __init__(self, path: str, model: Type[M]):
        self.path = os.path.expanduser(path)
        self.model = model

    def _read(self) -> Optional[str]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def _write(self, data: str):
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        temp_path = f"{self.path}.tmp"
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(temp_path, self.path)

    async def restore(self) -> M:
        raw = await asyncio.to_thread(self._read)
        if raw is None:
            return self.model()
        try:
            return self.model.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Invalid data in {self.path}, using defaults: {e}")
            return self.model()

    async def persist(self, value: M):
        await asyncio.to_thread(self._write, value.model_dump_json(indent=2))


def _handler_name(handler: Union[str, CommandHandler]) -> str:
    return handler.value if isinstance(handler, Enum) else handler


class CommandHistory:
    """Insertion-ordered run history with one entry per (handler, value)."""

    def __init__(
        self,
        store: Optional[Store[HistoryState]] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock
        self._entries: List[HistoryEntry] = []

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    async def restore(self):
        if self.store is None:
            return
        state = await self.store.restore()
        self._entries = list(state.entries)
        logger.info(f"Restored {len(self._entries)} history entries")

    async def _persist(self):
        if self.store is not None:
            await self.store.persist(HistoryState(entries=self._entries))

    def should_record(self, command: ExecutableCommand) -> bool:
        if self.settings.incognito_enabled:
            return False
        return command.handler not in UNRECORDED_HANDLERS

    async def record(self, command: ExecutableCommand) -> bool:
        """Append the command, moving an earlier run of it to the end."""
        if not self.should_record(command):
            return False
        entry = HistoryEntry.from_command(command, ran_at=self.clock())
        self._entries = [
            existing for existing in self._entries if existing.identity != entry.identity
        ]
        self._entries.append(entry)
        await self._persist()
        return True

    async def remove(self, handler: Union[str, CommandHandler], value: str) -> bool:
        identity = (_handler_name(handler), value)
        remaining = [entry for entry in self._entries if entry.identity != identity]
        if len(remaining) == len(self._entries):
            return False
        self._entries = remaining
        await self._persist()
        return True

    async def remove_handler(self, handler: Union[str, CommandHandler]) -> int:
        """Drop every entry of one handler, e.g. all opened notes."""
        name = _handler_name(handler)
        remaining = [entry for entry in self._entries if entry.handler != name]
        removed = len(self._entries) - len(remaining)
        if removed:
            self._entries = remaining
            await self._persist()
        return removed

    async def clear(self):
        self._entries = []
        await self._persist()

    def commands_most_recent_first(self) -> List[ExecutableCommand]:
        return [entry.to_command() for entry in reversed(self._entries)]
