"""Ego-network projection into renderable nodes and edges.

Two viewpoints are supported:

- the default view, centered on the viewer, showing verified peers and
  pending outgoing requests;
- the expanded view of one verified peer, centered on that peer, showing the
  viewer plus a synthetic friend-of-friend neighbourhood.

The peer's real connections are not available locally, so the expanded view
is synthesized from a generator seeded with the peer's id: the same peer
always yields the same neighbourhood.

Mutual friend-of-friend nodes are detected by case-insensitive display-name
equality with the viewer's own peers. Two different people with the same name
are reported as mutual; keying this by identity id needs queryable peer data.
"""

import logging
import random
from typing import Sequence

from .directory import IdentityDirectory
from .exceptions import NotFoundError
from .types import (
    ConnectionRequest,
    EdgeKind,
    GraphEdge,
    GraphFilters,
    GraphNode,
    GraphSnapshot,
    NodeColor,
    NodeKind,
    Relationship,
)

logger = logging.getLogger(__name__)

SELF_COLOR = NodeColor(background="#000000", border="#333333")
PEER_COLOR = NodeColor(background="#007AFF", border="#007AFF")
PENDING_COLOR = NodeColor(background="#cccccc", border="#cccccc")
FOF_COLOR = NodeColor(background="#999999", border="#999999")

CENTER_SIZE = 55
PEER_SIZE = 38
SATELLITE_SIZE = 32

PENDING_PREFIX = "pending-"
FOF_PREFIX = "fof-"

FOF_NAMES = (
    "Emma Wilson", "Liam Johnson", "Olivia Brown", "Noah Davis", "Ava Martinez",
    "Ethan Garcia", "Sophia Anderson", "Mason Thomas", "Isabella Jackson", "Lucas White",
)
FOF_TYPES = ("Friend", "Coworker", "Family", "College friend", "Neighbor", "Roommate")
FOF_MIN = 2
FOF_MAX = 5


def pending_node_id(request_id: str) -> str:
    return f"{PENDING_PREFIX}{request_id}"


def is_synthetic_node(node_id: str) -> bool:
    """True for placeholder and friend-of-friend nodes (never identities)."""
    return node_id.startswith(PENDING_PREFIX) or node_id.startswith(FOF_PREFIX)


def synthesize_neighbours(peer_id: str) -> list[tuple[str, str, str]]:
    """Deterministic stand-in for a peer's other connections.

    Returns:
        ``(node_id, name, relation_type)`` tuples, between 2 and 5 of them
    """
    rng = random.Random(peer_id)
    count = rng.randint(FOF_MIN, FOF_MAX)
    names = rng.sample(FOF_NAMES, count)
    return [
        (f"{FOF_PREFIX}{peer_id}-{index}", name, rng.choice(FOF_TYPES))
        for index, name in enumerate(names)
    ]


class GraphProjector:
    """Builds a full GraphSnapshot from relationship and request records."""

    def __init__(self, directory: IdentityDirectory):
        self.directory = directory

    def project(
        self,
        viewer_id: str,
        relationships: Sequence[Relationship],
        pending_outgoing: Sequence[ConnectionRequest],
        viewpoint_id: str | None = None,
        reveal_budget: int | None = None,
        filters: GraphFilters | None = None,
    ) -> GraphSnapshot:
        """Project the viewer's network from a viewpoint.

        Args:
            viewer_id: The viewing identity
            relationships: Relationships touching the viewer, in query order
            pending_outgoing: Pending requests sent by the viewer
            viewpoint_id: A verified peer to expand, or None for the default view
            reveal_budget: Maximum counterpart nodes in the default view
                (None means no limit)
            filters: Search and visibility filters for the default view

        Returns:
            GraphSnapshot with every node and edge for this cycle

        Raises:
            NotFoundError: viewpoint_id is not a verified peer of the viewer
        """
        if viewpoint_id is None or viewpoint_id == viewer_id:
            return self._project_default(
                viewer_id, relationships, pending_outgoing, reveal_budget, filters
            )
        return self._project_expanded(viewer_id, viewpoint_id, relationships)

    def filter_relationships(
        self,
        viewer_id: str,
        relationships: Sequence[Relationship],
        filters: GraphFilters | None = None,
    ) -> list[Relationship]:
        filters = filters or GraphFilters()
        query = filters.search_query.strip().lower()
        selected = []
        for rel in relationships:
            if rel.hidden and not filters.show_hidden:
                continue
            if not filters.min_strength <= rel.strength <= filters.max_strength:
                continue
            if query:
                name = self.directory.display_name(rel.counterpart(viewer_id))
                if query not in name.lower():
                    continue
            selected.append(rel)
        return selected

    def count_candidates(
        self,
        viewer_id: str,
        relationships: Sequence[Relationship],
        pending_outgoing: Sequence[ConnectionRequest],
        filters: GraphFilters | None = None,
    ) -> int:
        """Number of counterpart nodes the default view shows without a budget."""
        counterparts = {
            rel.counterpart(viewer_id)
            for rel in self.filter_relationships(viewer_id, relationships, filters)
        }
        return len(counterparts) + len(pending_outgoing)

    def _project_default(
        self,
        viewer_id: str,
        relationships: Sequence[Relationship],
        pending_outgoing: Sequence[ConnectionRequest],
        reveal_budget: int | None,
        filters: GraphFilters | None,
    ) -> GraphSnapshot:
        nodes = [
            GraphNode(
                id=viewer_id,
                label=self.directory.display_name(viewer_id),
                kind=NodeKind.SELF,
                color=SELF_COLOR,
                size=CENTER_SIZE,
                fixed=True,
                is_current_user=True,
            )
        ]
        edges: list[GraphEdge] = []
        seen = {viewer_id}
        budget = reveal_budget if reveal_budget is not None else float("inf")
        added = 0

        for rel in self.filter_relationships(viewer_id, relationships, filters):
            if added >= budget:
                break
            other_id = rel.counterpart(viewer_id)
            if other_id not in seen:
                nodes.append(
                    GraphNode(
                        id=other_id,
                        label=self.directory.display_name(other_id),
                        title=rel.relation_type,
                        kind=NodeKind.PEER,
                        color=PEER_COLOR,
                        size=PEER_SIZE,
                    )
                )
                seen.add(other_id)
                added += 1
            edges.append(
                GraphEdge(
                    id=rel.id,
                    source=viewer_id,
                    target=other_id,
                    kind=EdgeKind.VERIFIED,
                    color=PEER_COLOR.background,
                    width=3,
                )
            )

        for request in pending_outgoing:
            if added >= budget:
                break
            node_id = pending_node_id(request.id)
            if node_id in seen:
                continue
            title = f"Pending: {request.relation_type}" if request.relation_type else "Pending"
            nodes.append(
                GraphNode(
                    id=node_id,
                    label=request.to_name or "Pending",
                    title=title,
                    kind=NodeKind.PENDING,
                    color=PENDING_COLOR,
                    size=SATELLITE_SIZE,
                )
            )
            seen.add(node_id)
            added += 1
            edges.append(
                GraphEdge(
                    id=f"edge-{request.id}",
                    source=viewer_id,
                    target=node_id,
                    kind=EdgeKind.PENDING,
                    color=PENDING_COLOR.background,
                    width=2,
                    dashes=[5, 5],
                )
            )

        return GraphSnapshot(viewpoint_id=viewer_id, nodes=nodes, edges=edges)

    def _project_expanded(
        self,
        viewer_id: str,
        peer_id: str,
        relationships: Sequence[Relationship],
    ) -> GraphSnapshot:
        if not any(rel.counterpart(viewer_id) == peer_id for rel in relationships):
            raise NotFoundError(
                f"{peer_id} is not a verified peer of {viewer_id}",
                details={"peer_id": peer_id},
            )

        nodes = [
            GraphNode(
                id=peer_id,
                label=self.directory.display_name(peer_id),
                kind=NodeKind.PEER,
                color=PEER_COLOR,
                size=CENTER_SIZE,
                fixed=True,
            ),
            GraphNode(
                id=viewer_id,
                label=self.directory.display_name(viewer_id),
                kind=NodeKind.SELF,
                color=SELF_COLOR,
                size=SATELLITE_SIZE,
                is_current_user=True,
            ),
        ]
        edges = [
            GraphEdge(
                id=f"edge-you-{peer_id}",
                source=peer_id,
                target=viewer_id,
                kind=EdgeKind.VERIFIED,
                color=SELF_COLOR.background,
                width=2,
            )
        ]

        known_names = {
            self.directory.display_name(rel.counterpart(viewer_id)).lower()
            for rel in relationships
        }
        for index, (node_id, name, relation_type) in enumerate(synthesize_neighbours(peer_id)):
            mutual = name.lower() in known_names
            color = PEER_COLOR if mutual else FOF_COLOR
            nodes.append(
                GraphNode(
                    id=node_id,
                    label=name,
                    title=relation_type,
                    kind=NodeKind.FRIEND_OF_FRIEND,
                    color=color,
                    size=SATELLITE_SIZE,
                    mutual=mutual,
                )
            )
            edges.append(
                GraphEdge(
                    id=f"edge-{FOF_PREFIX}{peer_id}-{index}",
                    source=peer_id,
                    target=node_id,
                    kind=EdgeKind.FRIEND_OF_FRIEND,
                    color=color.background,
                    width=2,
                )
            )

        logger.debug("Expanded view of %s with %d synthetic neighbours", peer_id, len(nodes) - 2)
        return GraphSnapshot(viewpoint_id=peer_id, nodes=nodes, edges=edges)
