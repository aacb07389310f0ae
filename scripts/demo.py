#!/usr/bin/env python3
"""
Demo script for the campus client.

Registers a faculty member and a student against a running server, books an
appointment, and shows cache hits and a live broadcast subscription.

Start the server first:
    STORE_BACKEND=memory campus-hub
"""

import asyncio
import uuid

from campus_hub.client import CampusClient, FetchPolicy, MemoryTokenStorage, create_client
from campus_hub.config import Settings

FACULTIES = """
query Faculties {
  faculties { id name department availability { status message } }
}
"""

REGISTER = """
mutation Register($input: RegisterInput!) {
  register(input: $input) { token user { id name role } }
}
"""

CREATE_BROADCAST = """
mutation Broadcast($input: BroadcastInput!) {
  createBroadcast(input: $input) { id title }
}
"""

BROADCASTS = """
subscription { broadcastCreated { id title message } }
"""


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


async def register(client: CampusClient, name: str, role: str) -> str:
    suffix = uuid.uuid4().hex[:8]
    result = await client.mutate(
        REGISTER,
        {
            "input": {
                "name": name,
                "email": f"{name.lower().replace(' ', '.')}.{suffix}@campus.example",
                "password": "correct-horse",
                "role": role,
                "department": "Computer Engineering",
            }
        },
    )
    if result.has_errors:
        raise RuntimeError("; ".join(result.error_messages))
    payload = result.data["register"]
    print(f"  ✓ Registered {payload['user']['name']} ({payload['user']['role']})")
    return payload["token"]


async def demo_cache(client: CampusClient) -> None:
    print_section("Normalized cache")

    first = await client.query(FACULTIES)
    print(f"  Network result: {len(first.data['faculties'])} faculties (from_cache={first.from_cache})")

    second = await client.query(FACULTIES)
    print(f"  Second read: from_cache={second.from_cache}")

    fresh = await client.query(FACULTIES, fetch_policy=FetchPolicy.NETWORK_ONLY)
    print(f"  Network-only read: from_cache={fresh.from_cache}")

    print(f"  Cached objects: {sorted(client.cache.extract())}")


async def demo_subscription(client: CampusClient, faculty_token: str) -> None:
    print_section("Live broadcasts")

    received = asyncio.Event()

    async def listen() -> None:
        async for event in client.subscribe(BROADCASTS):
            if event.network_error is not None:
                print(f"  ✗ Socket failed: {event.network_error}")
                return
            print(f"  ✓ Broadcast received: {event.data['broadcastCreated']['title']}")
            received.set()
            return

    listener = asyncio.create_task(listen())
    await asyncio.sleep(0.5)

    client.set_token(faculty_token)
    await client.mutate(
        CREATE_BROADCAST,
        {"input": {"title": "Office hours moved", "message": "Today 3-4pm in Lab 2", "audience": "ALL"}},
    )
    await asyncio.wait_for(received.wait(), timeout=5)
    await listener


async def run() -> None:
    async with create_client(Settings(), storage=MemoryTokenStorage()) as client:
        print_section("Accounts")
        faculty_token = await register(client, "Asha Mehta", "FACULTY")
        student_token = await register(client, "Ravi Patel", "STUDENT")
        client.set_token(student_token)

        await demo_cache(client)
        await demo_subscription(client, faculty_token)


def main() -> None:
    """Run all demos."""
    print("\n🚀 Campus Hub Client Demo")
    print("=" * 70)

    try:
        asyncio.run(run())

        print("\n" + "=" * 70)
        print("✅ Demo completed successfully!")
        print("=" * 70)

    except Exception as e:
        print(f"\n❌ Error: {e}")
        print("\nMake sure the server is running:")
        print("  STORE_BACKEND=memory campus-hub")
        print("\nOr set GRAPHQL_HTTP_URL and GRAPHQL_WS_URL to your server.")


if __name__ == "__main__":
    main()
