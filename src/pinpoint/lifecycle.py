import logging
import math
import time
from dataclasses import dataclass, field, fields as dataclass_fields
from datetime import datetime, timezone

from pinpoint.completion import completion_status, is_ready
from pinpoint.draft import (
    DERIVED_FIELDS,
    NUMERIC_FIELDS,
    PROJECT_TYPES,
    PROTECTED_FIELDS,
    ROLES,
    AddOn,
    ColorAssignment,
    ConversationEntry,
    Draft,
    PaintItem,
)
from pinpoint.extraction import diff_transcript
from pinpoint.pricing import apply_totals

logger = logging.getLogger(__name__)

_DRAFT_FIELDS = {f.name for f in dataclass_fields(Draft)}
_LIST_RECORDS = {"paint_items": PaintItem, "colors": ColorAssignment, "add_ons": AddOn}


class DraftError(Exception):
    pass


class NoActiveDraftError(DraftError):
    """A mutation targeted the active draft but none is set."""


class DraftNotFoundError(DraftError):
    def __init__(self, draft_id: str):
        super().__init__(f"draft {draft_id} not found")
        self.draft_id = draft_id


@dataclass
class DraftCommand:
    """Field changes for one draft, produced outside the manager (e.g. by a tool call).

    ``updates`` are merged as-is; ``defaults`` only fill fields that are
    still unset on the draft.
    """

    draft_id: str
    updates: dict = field(default_factory=dict)
    defaults: dict = field(default_factory=dict)
    source: str = ""


def _valid_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def _coerce_records(key: str, items: list) -> list:
    record = _LIST_RECORDS.get(key)
    if record is None:
        return list(items)
    return [item if isinstance(item, record) else record(**item) for item in items]


class DraftManager:
    """Owns every draft mutation: merge, recalculate, stamp, persist."""

    def __init__(self, store, clock=time.time):
        self.store = store
        self.clock = clock

    def _now(self) -> str:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc).isoformat()

    # ── Lookup ──

    def get(self, draft_id: str) -> Draft | None:
        return self.store.get(draft_id)

    def active(self) -> Draft | None:
        draft_id = self.store.active_id
        if not draft_id:
            return None
        return self.store.get(draft_id)

    def require_active(self) -> Draft:
        draft = self.active()
        if draft is None:
            raise NoActiveDraftError("no active draft")
        return draft

    def list_drafts(self) -> list[Draft]:
        return self.store.all()

    def incomplete_drafts(self) -> list[Draft]:
        return [d for d in self.store.all() if not d.is_complete and not d.estimate_id]

    def resolve(self, draft_id: str | None) -> Draft:
        if draft_id is None:
            return self.require_active()
        draft = self.store.get(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        return draft

    def _save(self, draft: Draft, recalculate: bool = True) -> Draft:
        draft.updated_at = self._now()
        if recalculate:
            apply_totals(draft)
        self.store.put(draft)
        return draft

    # ── Lifecycle ──

    def create(self) -> Draft:
        now = self._now()
        draft = Draft(created_at=now, updated_at=now)
        apply_totals(draft)
        self.store.put(draft)
        self.store.active_id = draft.id
        logger.info("created draft %s", draft.id)
        return draft

    def resume_or_create(self) -> Draft:
        """The active draft, or a fresh one when nothing is active."""
        return self.active() or self.create()

    def set_active(self, draft_id: str | None) -> None:
        if draft_id is not None and self.store.get(draft_id) is None:
            raise DraftNotFoundError(draft_id)
        self.store.active_id = draft_id

    def update_fields(self, draft_id: str | None, updates: dict) -> Draft:
        """Merge a partial update, recalculate totals and persist.

        ``draft_id=None`` targets the active draft.
        """
        draft = self.resolve(draft_id)
        self._merge(draft, updates)
        return self._save(draft)

    def _merge(self, draft: Draft, updates: dict) -> None:
        for key, value in updates.items():
            if key in PROTECTED_FIELDS or key in DERIVED_FIELDS:
                logger.warning("ignoring update to managed field %s on %s", key, draft.id)
                continue
            if key not in _DRAFT_FIELDS:
                logger.warning("ignoring unknown field %s on %s", key, draft.id)
                continue
            if key in NUMERIC_FIELDS and value is not None and not _valid_number(value):
                logger.warning("rejecting %s=%r on %s", key, value, draft.id)
                continue
            if key == "project_type" and value is not None and value not in PROJECT_TYPES:
                logger.warning("rejecting project_type=%r on %s", value, draft.id)
                continue
            if isinstance(value, list):
                value = _coerce_records(key, value)
            setattr(draft, key, value)

    def apply(self, command: DraftCommand) -> Draft:
        draft = self.resolve(command.draft_id)
        updates = dict(command.updates)
        for key, value in command.defaults.items():
            if getattr(draft, key, None) is None and key not in updates:
                updates[key] = value
        logger.info(
            "applying %s command to %s: %s",
            command.source or "external", draft.id, sorted(updates),
        )
        if not updates:
            return draft
        return self.update_fields(draft.id, updates)

    def append_entry(
        self,
        draft_id: str | None,
        role: str,
        message: str,
        timestamp: float | None = None,
    ) -> Draft:
        """Append to the conversation. Persists only; no recalculation."""
        if role not in ROLES:
            raise ValueError(f"unknown role {role!r}")
        draft = self.resolve(draft_id)
        draft.conversation.append(ConversationEntry(
            role=role,
            message=message,
            timestamp=timestamp if timestamp is not None else self.clock(),
        ))
        return self._save(draft, recalculate=False)

    def extract(self, draft_id: str | None = None) -> dict:
        """Run extraction over the full transcript and merge whatever changed."""
        draft = self.resolve(draft_id)
        update, evidence = diff_transcript(draft.conversation, draft)
        if update:
            self._merge(draft, update)
        if update or evidence != draft.extracted:
            draft.extracted = evidence
            self._save(draft)
        return update

    def ingest_turn(self, role: str, message: str, draft_id: str | None = None) -> dict:
        """Record one spoken turn and fold the transcript into the draft.

        Returns the field update that was applied (empty if nothing changed).
        """
        draft = self.append_entry(draft_id, role, message)
        update = self.extract(draft.id)
        if update:
            status = completion_status(self.store.get(draft.id))
            logger.info(
                "[%s] %s turn updated %s (%d%% complete)",
                draft.id, role, ", ".join(sorted(update)), status.percent,
            )
        return update

    def finish_session(self, draft_id: str | None = None, explicit: bool = False) -> Draft:
        """Final extraction pass at session end.

        The draft is marked complete when the user explicitly finished or
        every required field is collected.
        """
        draft = self.resolve(draft_id)
        self.extract(draft.id)
        draft = self.store.get(draft.id)
        if explicit or is_ready(draft):
            draft = self.mark_complete(draft.id)
        logger.info("session closed for %s (complete=%s)", draft.id, draft.is_complete)
        return draft

    def mark_complete(self, draft_id: str | None = None) -> Draft:
        draft = self.resolve(draft_id)
        draft.is_complete = True
        return self._save(draft)

    def link_to_estimate(self, draft_id: str | None, estimate_id: str) -> Draft:
        draft = self.resolve(draft_id)
        draft.estimate_id = estimate_id
        logger.info("draft %s linked to estimate %s", draft.id, estimate_id)
        return self._save(draft)

    def delete(self, draft_id: str) -> None:
        if self.store.get(draft_id) is None:
            raise DraftNotFoundError(draft_id)
        self.store.delete(draft_id)
        if self.store.active_id == draft_id:
            self.store.active_id = None
        logger.info("deleted draft %s", draft_id)
