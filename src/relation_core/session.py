"""RelationSession: the host-facing entry point.

A session owns the local state for one viewing identity (directory,
relationships, requests), keeps it in sync with a persistence backend, and
tracks the graph viewpoint and reveal schedule for the renderer.

Every mutation is applied locally first and then written to the backend.
What happens when the write fails is fixed per operation in
``PERSISTENCE_POLICY``: the local change is either retained or rolled back.
Either way the ``PersistenceError`` reaches the caller.
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable

from .backend import PersistenceBackend
from .config import RelationSettings, build_backend
from .directory import UNKNOWN_NAME, IdentityDirectory
from .exceptions import InvalidStateError, NotFoundError, PersistenceError
from .insights import InsightsEngine
from .ledger import RequestLedger
from .projector import GraphProjector, is_synthetic_node
from .relationships import RelationshipStore
from .reveal import RevealScheduler, TimerQueue
from .types import (
    ConnectionRequest,
    GraphFilters,
    GraphSnapshot,
    Identity,
    Insights,
    Relationship,
    utcnow,
)

logger = logging.getLogger(__name__)


class SyncPolicy(str, Enum):
    """What to do with a local mutation whose remote write failed."""

    RETAIN = "retain"
    ROLLBACK = "rollback"


PERSISTENCE_POLICY = {
    "create_request": SyncPolicy.RETAIN,
    "accept": SyncPolicy.RETAIN,
    "decline": SyncPolicy.RETAIN,
    "withdraw": SyncPolicy.RETAIN,
    "remove_relationship": SyncPolicy.RETAIN,
    "update_relationship": SyncPolicy.ROLLBACK,
    "update_profile": SyncPolicy.ROLLBACK,
}


class SelectionOutcome(str, Enum):
    SELF = "self"
    EXPANDED = "expanded"
    COLLAPSED = "collapsed"
    IGNORED = "ignored"


SnapshotListener = Callable[[GraphSnapshot], None]


class RelationSession:
    """Explicit session store with ``init``/``teardown``.

    Example:
        >>> session = RelationSession(LocalStore("network.json"))
        >>> session.init(Identity(id="u1", display_name="You", identifier_hash=h))
        >>> request = session.create_request("555 123 4567", "Friend", to_name="Sam")
        >>> session.get_graph_snapshot().node_ids()
        ['u1', 'pending-...']
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        settings: RelationSettings | None = None,
        timer: TimerQueue | None = None,
        clock: Callable[[], datetime] = utcnow,
        today: Callable[[], date] = date.today,
    ):
        self.settings = settings or RelationSettings()
        self.backend = backend
        self.directory = IdentityDirectory()
        self.relationships = RelationshipStore(clock=clock)
        self.ledger = RequestLedger(
            self.relationships,
            self.directory,
            relation_typing=self.settings.relation_typing,
            clock=clock,
        )
        self.projector = GraphProjector(self.directory)
        self.insights_engine = InsightsEngine(
            fading_threshold_days=self.settings.fading_threshold_days,
            today=today,
        )
        self.reveal = RevealScheduler(
            timer=timer,
            initial_delay=self.settings.reveal_initial_delay,
            period=self.settings.reveal_period,
            on_change=self._on_reveal_tick,
        )
        self.filters = GraphFilters()
        self.expanded_peer_id: str | None = None
        self._clock = clock
        self._identity_id: str | None = None
        self._listeners: list[SnapshotListener] = []

    @classmethod
    def from_settings(
        cls,
        settings: RelationSettings | None = None,
        timer: TimerQueue | None = None,
    ) -> "RelationSession":
        """Build a session with the backend selected by ``settings``."""
        settings = settings or RelationSettings.from_env()
        return cls(build_backend(settings), settings=settings, timer=timer)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.teardown()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._identity_id is not None

    @property
    def identity(self) -> Identity:
        if self._identity_id is None:
            raise InvalidStateError("Session is not initialized. Call init() first.")
        return self.directory.require(self._identity_id)

    def init(self, identity: Identity | str) -> Identity:
        """Load the viewer's identity, relationships and requests.

        Args:
            identity: An identity id to load, or an Identity to load or
                register when the backend does not know it yet

        Raises:
            NotFoundError: The id is unknown to the backend
            PersistenceError: The backend failed; local state is untouched
        """
        if isinstance(identity, str):
            current = self.backend.get_identity(identity)
            if current is None:
                raise NotFoundError(
                    f"Unknown identity: {identity}", details={"identity_id": identity}
                )
        else:
            current = self.backend.get_identity(identity.id) or self.backend.save_identity(identity)

        relationships = self.backend.list_relationships(current.id)
        requests = self.backend.list_requests(current)
        # Peers and request senders, each looked up once.
        others: dict[str, Identity | None] = {}
        wanted = [rel.counterpart(current.id) for rel in relationships]
        wanted += [request.from_id for request in requests if request.from_id != current.id]
        for identity_id in wanted:
            if identity_id not in others:
                others[identity_id] = self.backend.get_identity(identity_id)

        self.directory.load([current, *(i for i in others.values() if i is not None)])
        self.relationships.load(relationships)
        self.ledger.load(requests)
        for request in requests:
            if request.from_id != current.id and request.from_id not in self.directory:
                self._put_placeholder(request.from_id, request.from_name)
        self.ledger.resolve_recipient(current)

        self._identity_id = current.id
        self.expanded_peer_id = None
        logger.info(
            "Session initialized for %s: %d relationship(s), %d request(s)",
            current.id,
            len(relationships),
            len(requests),
        )
        self._changed()
        return current

    def teardown(self) -> None:
        """Cancel timers, drop listeners and release the backend."""
        self.reveal.close()
        self._listeners.clear()
        self.backend.close()
        self._identity_id = None
        self.expanded_peer_id = None

    # -------------------------------------------------------------------------
    # Requests and relationships
    # -------------------------------------------------------------------------

    def create_request(
        self,
        to_identifier: str,
        relation_type: str | None = None,
        to_name: str | None = None,
        hidden: bool = False,
    ) -> ConnectionRequest:
        viewer_id = self.identity.id
        return self._commit(
            "create_request",
            lambda: self.ledger.create(
                viewer_id,
                to_identifier,
                relation_type=relation_type,
                hidden=hidden,
                to_name=to_name,
            ),
            self.backend.create_request,
        )

    def accept(self, request_id: str, relation_type: str | None = None) -> Relationship:
        """Accept an incoming request, optionally relabelling the relationship."""
        viewer = self.identity
        request = self.ledger.get(request_id)
        self._ensure_identity(request.from_id, request.from_name)
        is_new = self.relationships.find_pair(request.from_id, viewer.id) is None

        def persist(relationship: Relationship) -> None:
            self.backend.create_relationship(relationship)
            self.backend.update_request(request)
            if is_new:
                self.backend.increment_score(request.from_id)
                self.backend.increment_score(viewer.id)

        return self._commit(
            "accept",
            lambda: self.ledger.accept(request_id, viewer.id, relation_type),
            persist,
        )

    def decline(self, request_id: str) -> ConnectionRequest:
        viewer_id = self.identity.id
        return self._commit(
            "decline",
            lambda: self.ledger.decline(request_id, viewer_id),
            self.backend.update_request,
        )

    def withdraw(self, request_id: str) -> ConnectionRequest:
        viewer_id = self.identity.id
        return self._commit(
            "withdraw",
            lambda: self.ledger.withdraw(request_id, viewer_id),
            lambda request: self.backend.delete_request(request.id),
        )

    def remove_relationship(self, relationship_id: str) -> Relationship:
        viewer_id = self.identity.id

        def apply() -> Relationship:
            relationship = self.relationships.remove(relationship_id)
            if relationship.counterpart(viewer_id) == self.expanded_peer_id:
                # Back to the default view with every remaining node shown.
                self.expanded_peer_id = None
                self.reveal.reset()
            return relationship

        return self._commit(
            "remove_relationship",
            apply,
            lambda relationship: self.backend.delete_relationship(relationship.id),
        )

    def update_relationship(
        self,
        relationship_id: str,
        strength: int | None = None,
        last_interaction: date | None = None,
    ) -> Relationship:
        """Edit one of the viewer's relationships; rolled back if the write fails.

        Raises:
            NotFoundError: No such relationship for the viewer
            ValidationError: Strength outside 1..10
        """
        viewer_id = self.identity.id
        if not self.relationships.get(relationship_id).involves(viewer_id):
            raise NotFoundError(
                f"Relationship not found: {relationship_id}",
                details={"relationship_id": relationship_id},
            )
        return self._commit(
            "update_relationship",
            lambda: self.relationships.update(
                relationship_id, strength=strength, last_interaction=last_interaction
            ),
            self.backend.update_relationship,
        )

    def update_profile(
        self,
        display_name: str | None = None,
        identifier: str | None = None,
    ) -> Identity:
        """Edit the viewer's own identity; rolled back if the write fails."""
        viewer = self.identity

        def apply() -> Identity:
            if display_name is not None:
                viewer.display_name = display_name
            if identifier is not None:
                viewer.identifier_hash = self.ledger.hasher.hash(identifier)
            viewer.updated_at = self._clock()
            return viewer

        updated = self._commit("update_profile", apply, self.backend.save_identity)
        if identifier is not None:
            self.ledger.resolve_recipient(updated)
        return updated

    def pending_incoming(self) -> list[ConnectionRequest]:
        return self.ledger.pending_incoming(self.identity.id)

    def pending_outgoing(self) -> list[ConnectionRequest]:
        return self.ledger.pending_outgoing(self.identity.id)

    def requests(self) -> list[ConnectionRequest]:
        return self.ledger.list_for(self.identity.id)

    def connections(self) -> list[Relationship]:
        return self.relationships.query(self.identity.id)

    # -------------------------------------------------------------------------
    # Graph and insights
    # -------------------------------------------------------------------------

    def get_insights(self) -> Insights:
        return self.insights_engine.insights(self.connections())

    def get_graph_snapshot(self, viewpoint_id: str | None = None) -> GraphSnapshot:
        """Project the graph from ``viewpoint_id`` (default: current viewpoint).

        The reveal budget only applies to the default view.
        """
        viewer_id = self.identity.id
        if viewpoint_id is None:
            viewpoint_id = self.expanded_peer_id or viewer_id

        is_default = viewpoint_id == viewer_id
        snapshot = self.projector.project(
            viewer_id,
            self.connections(),
            self.pending_outgoing(),
            viewpoint_id=viewpoint_id,
            reveal_budget=self.reveal.budget if is_default else None,
            filters=self.filters,
        )
        snapshot.staggering = is_default and self.reveal.is_active
        return snapshot

    def set_filters(self, **changes: Any) -> GraphFilters:
        self.filters = GraphFilters(**{**self.filters.model_dump(), **changes})
        self._changed()
        return self.filters

    def expand(self, peer_id: str) -> None:
        """Center the graph on a verified peer."""
        viewer_id = self.identity.id
        if self.relationships.find_pair(viewer_id, peer_id) is None:
            raise NotFoundError(
                f"{peer_id} is not a verified peer", details={"peer_id": peer_id}
            )
        self.reveal.cancel()
        self.expanded_peer_id = peer_id
        logger.debug("Expanded peer %s", peer_id)
        self._changed()

    def collapse(self) -> None:
        """Return to the default view and reveal its nodes one at a time."""
        if self.expanded_peer_id is None:
            return
        viewer_id = self.identity.id
        self.expanded_peer_id = None
        total = self.projector.count_candidates(
            viewer_id, self.connections(), self.pending_outgoing(), self.filters
        )
        logger.debug("Collapsed to default view, revealing %d node(s)", total)
        self.reveal.start(total)

    def on_node_selected(self, node_id: str) -> SelectionOutcome:
        """Renderer click callback."""
        viewer_id = self.identity.id
        if node_id == viewer_id:
            self.collapse()
            return SelectionOutcome.SELF
        if is_synthetic_node(node_id):
            return SelectionOutcome.IGNORED
        if self.relationships.find_pair(viewer_id, node_id) is None:
            return SelectionOutcome.IGNORED
        if self.expanded_peer_id == node_id:
            self.collapse()
            return SelectionOutcome.COLLAPSED
        self.expand(node_id)
        return SelectionOutcome.EXPANDED

    def add_listener(self, listener: SnapshotListener) -> None:
        """Receive a fresh snapshot after every change and reveal tick."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _commit(self, operation: str, apply: Callable[[], Any], persist: Callable[[Any], Any]) -> Any:
        policy = PERSISTENCE_POLICY[operation]
        saved = self._snapshot_state() if policy == SyncPolicy.ROLLBACK else None
        result = apply()
        try:
            persist(result)
        except PersistenceError as e:
            if policy == SyncPolicy.ROLLBACK:
                self._restore_state(saved)
                logger.warning("%s not persisted, rolled back: %s", operation, e)
            else:
                e.local_result = result
                logger.warning("%s not persisted, keeping local change: %s", operation, e)
            self._changed()
            raise
        self._changed()
        return result

    def _snapshot_state(self) -> tuple:
        return (
            self.directory.snapshot(),
            self.relationships.snapshot(),
            self.ledger.snapshot(),
            self.expanded_peer_id,
        )

    def _restore_state(self, saved: tuple) -> None:
        identities, relationships, requests, expanded_peer_id = saved
        self.directory.load(identities)
        self.relationships.load(relationships)
        self.ledger.load(requests)
        self.expanded_peer_id = expanded_peer_id

    def _ensure_identity(self, identity_id: str, fallback_name: str | None) -> None:
        """Make ``identity_id`` known, from the backend when it has the row."""
        if identity_id in self.directory:
            return
        identity = self.backend.get_identity(identity_id)
        if identity is not None:
            self.directory.put(identity)
        else:
            self._put_placeholder(identity_id, fallback_name)

    def _put_placeholder(self, identity_id: str, name: str | None) -> None:
        logger.debug("No stored identity for %s, using a placeholder", identity_id)
        self.directory.put(Identity(id=identity_id, display_name=name or UNKNOWN_NAME))

    def _on_reveal_tick(self, count: int) -> None:
        self._changed()

    def _changed(self) -> None:
        if not self._listeners or not self.is_initialized:
            return
        snapshot = self.get_graph_snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
