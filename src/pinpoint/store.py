"""Draft persistence: a keyed collection of drafts plus the active-draft pointer.

Writes are fire-and-forget from the engine's point of view. A failed write
is logged and the in-memory copy stays authoritative for the session. Inside
a running event loop the file write is coalesced into one background task
and done on a worker thread.
"""

import asyncio
import copy
import json
import logging
from pathlib import Path

from pinpoint.draft import Draft

logger = logging.getLogger(__name__)


class MemoryDraftStore:
    """Process-local draft store. Returned drafts are copies."""

    def __init__(self):
        self._drafts: dict[str, Draft] = {}
        self._active_id: str | None = None

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @active_id.setter
    def active_id(self, draft_id: str | None):
        self._active_id = draft_id
        self._persist()

    def get(self, draft_id: str) -> Draft | None:
        draft = self._drafts.get(draft_id)
        return copy.deepcopy(draft) if draft else None

    def put(self, draft: Draft) -> None:
        self._drafts[draft.id] = copy.deepcopy(draft)
        self._persist()

    def delete(self, draft_id: str) -> None:
        self._drafts.pop(draft_id, None)
        self._persist()

    def all(self) -> list[Draft]:
        """Most recently created first."""
        drafts = sorted(self._drafts.values(), key=lambda d: d.created_at, reverse=True)
        return [copy.deepcopy(d) for d in drafts]

    def _persist(self) -> None:
        pass

    async def flush(self) -> None:
        """Wait for pending writes. Nothing to do in memory."""


class JsonFileDraftStore(MemoryDraftStore):
    """Draft store mirrored to a single JSON file."""

    def __init__(self, path: str | Path):
        super().__init__()
        self.path = Path(path)
        self._dirty = False
        self._flush_task: asyncio.Task | None = None
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.error("could not read draft store %s: %s", self.path, e)
            return
        for raw in data.get("drafts", []):
            draft = Draft.from_dict(raw)
            self._drafts[draft.id] = draft
        active = data.get("active_draft_id")
        self._active_id = active if active in self._drafts else None
        logger.info("loaded %d drafts from %s", len(self._drafts), self.path)

    def _serialize(self) -> str:
        return json.dumps({
            "drafts": [d.to_dict() for d in self._drafts.values()],
            "active_draft_id": self._active_id,
        }, indent=2)

    def _write(self, text: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(text)
            tmp.replace(self.path)
        except OSError as e:
            logger.error("draft store write to %s failed: %s", self.path, e)

    def _persist(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write(self._serialize())
            return
        self._dirty = True
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = loop.create_task(self._flush_pending())

    async def _flush_pending(self) -> None:
        # Snapshot on the loop, write on a thread; later changes queue one more pass
        while self._dirty:
            self._dirty = False
            await asyncio.to_thread(self._write, self._serialize())

    async def flush(self) -> None:
        if self._flush_task is not None:
            await self._flush_task
