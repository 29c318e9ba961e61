"""pytest configuration for relation-core tests."""

import heapq
import itertools
from datetime import date, datetime, timezone

import pytest

from relation_core import (
    Identity,
    IdentityDirectory,
    IdentityHasher,
    LocalStore,
    RelationSession,
    RelationSettings,
    RelationshipStore,
    RequestLedger,
)

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
FIXED_TODAY = date(2026, 3, 1)

ALICE_PHONE = "(555) 100-0001"
BOB_PHONE = "555-100-0002"
CAROL_PHONE = "555 100 0003"


class ManualTimer:
    """Timer queue with virtual time, driven explicitly by ``advance``."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay, callback, *args):
        handle = _ManualHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), handle, callback, args))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _, _ in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            when, _, handle, callback, args = heapq.heappop(self._queue)
            self.now = when
            if not handle.cancelled:
                callback(*args)
        self.now = target


class _ManualHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


def make_identity(identity_id: str, name: str, phone: str | None = None) -> Identity:
    return Identity(
        id=identity_id,
        display_name=name,
        identifier_hash=IdentityHasher().hash(phone) if phone else "",
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


@pytest.fixture
def timer():
    return ManualTimer()


@pytest.fixture
def alice():
    return make_identity("id-alice", "Alice", ALICE_PHONE)


@pytest.fixture
def bob():
    return make_identity("id-bob", "Bob", BOB_PHONE)


@pytest.fixture
def carol():
    return make_identity("id-carol", "Carol", CAROL_PHONE)


@pytest.fixture
def directory(alice, bob, carol):
    return IdentityDirectory([alice, bob, carol])


@pytest.fixture
def store():
    return RelationshipStore(clock=lambda: FIXED_NOW)


@pytest.fixture
def ledger(store, directory):
    return RequestLedger(store, directory, clock=lambda: FIXED_NOW)


@pytest.fixture
def local_store():
    return LocalStore()


@pytest.fixture
def settings():
    return RelationSettings(reveal_initial_delay=0.5, reveal_period=0.2)


@pytest.fixture
def session(local_store, settings, timer, alice):
    session = RelationSession(
        local_store,
        settings=settings,
        timer=timer,
        clock=lambda: FIXED_NOW,
        today=lambda: FIXED_TODAY,
    )
    session.init(alice)
    yield session
    session.teardown()
