"""relation-core - verified relationships and ego-network projection.

Example:
    >>> from relation_core import LocalStore, RelationSession, Identity
    >>> session = RelationSession(LocalStore())
    >>> session.init(Identity(id="u1", display_name="You"))
    >>> session.create_request("(555) 123-4567", "Friend", to_name="Sam")
    >>> print([node.label for node in session.get_graph_snapshot().nodes])
"""

import logging

from .client import RelationClient
from .config import RelationSettings, build_backend
from .directory import IdentityDirectory
from .exceptions import (
    RelationError,
    ValidationError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
    BackendConnectionError,
    RecordNotFoundError,
)
from .hashing import IdentityHasher
from .insights import InsightsEngine
from .ledger import RequestLedger
from .projector import GraphProjector
from .relationships import RelationshipStore
from .reveal import RevealScheduler, RevealState
from .session import RelationSession, SelectionOutcome, SyncPolicy
from .storage import LocalStore
from .types import (
    ConnectionRequest,
    Direction,
    GraphEdge,
    GraphFilters,
    GraphNode,
    GraphSnapshot,
    Identity,
    Insights,
    NetworkAnalysis,
    Relationship,
    RelationTyping,
    RequestStatus,
    TypedKind,
    UntypedKind,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "RelationSession",
    "SelectionOutcome",
    "SyncPolicy",
    "RelationSettings",
    "build_backend",
    "RelationClient",
    "LocalStore",
    "IdentityDirectory",
    "IdentityHasher",
    "RequestLedger",
    "RelationshipStore",
    "GraphProjector",
    "RevealScheduler",
    "RevealState",
    "InsightsEngine",
    "ConnectionRequest",
    "Direction",
    "GraphEdge",
    "GraphFilters",
    "GraphNode",
    "GraphSnapshot",
    "Identity",
    "Insights",
    "NetworkAnalysis",
    "Relationship",
    "RelationTyping",
    "RequestStatus",
    "TypedKind",
    "UntypedKind",
    "RelationError",
    "ValidationError",
    "InvalidStateError",
    "NotFoundError",
    "PersistenceError",
    "BackendConnectionError",
    "RecordNotFoundError",
]
