"""Pydantic data models for relation-core."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Timezone-aware current time, the default clock for all records."""
    return datetime.now(timezone.utc)


class RelationTyping(str, Enum):
    """Deployment-wide choice between typed and phone-only requests."""

    TYPED = "typed"
    UNTYPED = "untyped"


class RequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Direction(str, Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"


class Identity(BaseModel):
    """A person known to the session.

    Attributes:
        id: Stable identity id
        display_name: Name shown on graph nodes
        identifier_hash: Hash of the normalized contact identifier
        score: Contribution score, incremented on each mutual verification
    """

    id: str
    display_name: str
    identifier_hash: str = ""
    score: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class TypedKind(BaseModel):
    """Request carrying a sender-chosen relationship label."""

    kind: Literal["typed"] = "typed"
    relation_type: str


class UntypedKind(BaseModel):
    """Phone-only request without a relationship label."""

    kind: Literal["untyped"] = "untyped"


RequestKind = Annotated[Union[TypedKind, UntypedKind], Field(discriminator="kind")]


class ConnectionRequest(BaseModel):
    """A request from one identity to a (hashed) contact identifier.

    The direction of a request depends on who is looking at it, so it is
    never stored; use ``direction_for``.
    """

    id: str
    from_id: str
    to_identifier_hash: str
    to_id: str | None = None
    to_name: str | None = None
    from_name: str | None = None
    kind: RequestKind = Field(default_factory=UntypedKind)
    hidden: bool = False
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def relation_type(self) -> str | None:
        if isinstance(self.kind, TypedKind):
            return self.kind.relation_type
        return None

    def direction_for(self, viewer_id: str) -> Direction:
        if self.from_id == viewer_id:
            return Direction.OUTGOING
        return Direction.INCOMING

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING


class Relationship(BaseModel):
    """A verified, symmetric tie stored in canonical order (user_a < user_b)."""

    id: str
    user_a: str
    user_b: str
    relation_type: str | None = None
    hidden: bool = False
    strength: int = Field(default=5, ge=1, le=10)
    last_interaction: date | None = None
    verified_at: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)

    def involves(self, identity_id: str) -> bool:
        return identity_id in (self.user_a, self.user_b)

    def counterpart(self, identity_id: str) -> str:
        """Return the other endpoint of the tie as seen from ``identity_id``."""
        return self.user_b if self.user_a == identity_id else self.user_a


class NodeKind(str, Enum):
    SELF = "self"
    PEER = "peer"
    PENDING = "pending"
    FRIEND_OF_FRIEND = "friend_of_friend"


class EdgeKind(str, Enum):
    VERIFIED = "verified"
    PENDING = "pending"
    FRIEND_OF_FRIEND = "friend_of_friend"


class NodeColor(BaseModel):
    background: str
    border: str


class GraphNode(BaseModel):
    """A renderable node. ``fixed`` pins it at the projection origin."""

    id: str
    label: str
    kind: NodeKind
    color: NodeColor
    size: int
    title: str | None = None
    fixed: bool = False
    is_current_user: bool = False
    mutual: bool = False


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    kind: EdgeKind
    color: str
    width: int
    dashes: list[int] | None = None


class GraphSnapshot(BaseModel):
    """Full node/edge model for one projection cycle.

    Attributes:
        viewpoint_id: Identity pinned at the origin
        staggering: True while the reveal schedule is still exposing nodes,
            so the renderer can hold its force layout
    """

    viewpoint_id: str
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    staggering: bool = False

    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    def edge_ids(self) -> list[str]:
        return [edge.id for edge in self.edges]


class GraphFilters(BaseModel):
    """Filters applied to relationships before the reveal budget."""

    search_query: str = ""
    show_hidden: bool = False
    min_strength: int = Field(default=1, ge=1, le=10)
    max_strength: int = Field(default=10, ge=1, le=10)


class NetworkAnalysis(BaseModel):
    """Ungated analytics over a relationship set."""

    central_node_ids: list[str]
    fading_relationships: list[Relationship]
    network_depth: Literal[1, 2, 3]
    total_connections: int


class Insights(BaseModel):
    """Analytics exposed to the caller, gated by network depth.

    Tier 1 exposes no optional field, tier 2 exposes the totals and fading
    relationships, tier 3 also exposes centrality.
    """

    network_depth: Literal[1, 2, 3]
    connections_to_next_tier: int
    total_connections: int | None = None
    fading_relationships: list[Relationship] | None = None
    central_node_ids: list[str] | None = None
