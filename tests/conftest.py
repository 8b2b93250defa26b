import pytest
from pinpoint.draft import ConversationEntry, Draft
from pinpoint.lifecycle import DraftManager
from pinpoint.store import MemoryDraftStore


class FakeClock:
    def __init__(self, start: float = 1_760_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def conversation(*turns) -> list[ConversationEntry]:
    """Build a conversation from (role, message) pairs or bare user messages."""
    entries = []
    for i, turn in enumerate(turns):
        role, message = turn if isinstance(turn, tuple) else ("user", turn)
        entries.append(ConversationEntry(role=role, message=message, timestamp=float(i)))
    return entries


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryDraftStore()


@pytest.fixture
def manager(store, clock):
    return DraftManager(store, clock=clock)


@pytest.fixture
def draft():
    return Draft()
