#!/usr/bin/env python3
"""Basic usage example for relation-core.

This example demonstrates:
- Signing in two identities on one local store
- Sending and accepting a connection request
- Projecting the graph and expanding a peer
- Reading network insights
"""

import asyncio
import tempfile
from pathlib import Path

from relation_core import (
    Identity,
    IdentityHasher,
    LocalStore,
    RelationError,
    RelationSession,
)


def print_snapshot(session):
    snapshot = session.get_graph_snapshot()
    print(f"  Viewpoint: {session.directory.display_name(snapshot.viewpoint_id)}")
    for node in snapshot.nodes:
        print(f"    [{node.kind.value}] {node.label}")


async def main():
    """Run basic relation-core operations."""
    hasher = IdentityHasher()
    path = Path(tempfile.mkdtemp()) / "network.json"
    store = LocalStore(path)
    print(f"Using local store at {path}")

    alice = RelationSession(store)
    alice.init(Identity(id="u-alice", display_name="Alice", identifier_hash=hasher.hash("555 100 0001")))
    sam = RelationSession(store)
    sam.init(Identity(id="u-sam", display_name="Sam", identifier_hash=hasher.hash("555 123 4567")))

    # Alice sends a typed request to Sam's phone number
    print("\nSending request...")
    request = alice.create_request("(555) 123-4567", "Friend", to_name="Sam")
    print(f"Request {request.id} is {request.status.value}")
    print_snapshot(alice)

    # Sam reloads and accepts, choosing a different label
    print("\nAccepting request...")
    sam.init("u-sam")
    relationship = sam.accept(request.id, "College friend")
    print(f"Verified as '{relationship.relation_type}' (strength {relationship.strength})")

    # Alice reloads and sees a verified peer instead of a pending node
    alice.init("u-alice")
    print_snapshot(alice)

    # Expand the peer, then return to the default view
    print("\nExpanding Sam...")
    alice.on_node_selected("u-sam")
    print_snapshot(alice)

    print("\nCollapsing...")
    alice.on_node_selected("u-alice")
    while alice.get_graph_snapshot().staggering:
        await asyncio.sleep(0.1)
    print_snapshot(alice)

    insights = alice.get_insights()
    print(f"\nNetwork depth: {insights.network_depth}")
    print(f"Connections to next tier: {insights.connections_to_next_tier}")

    alice.teardown()
    sam.teardown()
    print("\nAll operations completed successfully!")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
    except RelationError as e:
        print(f"\nError: {e}")
        import traceback
        traceback.print_exc()
