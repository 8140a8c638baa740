#!/usr/bin/env python3
"""
Load test script for the personalization WebSocket API.

Simulates many concurrently connected users on one analyzer and measures:
- Time from an activity-update to its first score-update
- Fan-out latency from a new-content event to each user's score-update
- Latency distribution (p50, p75, p90, p95, p99)
- Delivery completeness (one score-update per user per content item)

The analyzer must be trained first, otherwise every score request is
answered with a not_initialized error.

Usage:
    python scripts/load_test.py --url ws://localhost:8000 --analyzer behavior --users 50 --content 20
"""

import argparse
import asyncio
import json
import random
import statistics
import time
import uuid
from dataclasses import dataclass, field

import websockets


CATEGORIES = ["Bilim", "Spor", "Siyaset", "Eğlence", "Futbol"]
KINDS = ["video", "tweet", "photo"]


@dataclass(frozen=True)
class DeliveryResult:
    """One score-update observed by a simulated user."""

    user: str
    content_id: str
    latency_ms: float


@dataclass
class LoadTestConfig:
    """Configuration for the load test."""

    base_url: str
    analyzer: str
    users: int
    content_items: int
    content_interval_seconds: float
    timeout_seconds: float


@dataclass
class UserSession:
    """State of one simulated user."""

    address: str
    deliveries: list[DeliveryResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    activity_latency_ms: float | None = None


def generate_activity(address: str) -> dict:
    """Generate an activity-update with a random behavior profile."""
    now_ms = int(time.time() * 1000)
    interactions = [
        {
            "postId": f"seed-{i}",
            "timestamp": now_ms - random.randint(0, 72) * 3_600_000,
            "action": random.choice(["view", "like", "share"]),
        }
        for i in range(random.randint(0, 6))
    ]
    return {
        "event": "activity-update",
        "data": {
            "address": address,
            "viewedPosts": [f"seed-{i}" for i in range(random.randint(0, 40))],
            "likedPosts": [f"seed-{i}" for i in range(random.randint(0, 10))],
            "selectedCategories": random.sample(CATEGORIES, k=random.randint(1, 3)),
            "interactions": interactions,
        },
    }


def generate_content(content_id: str) -> dict:
    """Generate a new-content event."""
    return {
        "event": "new-content",
        "data": {
            "id": content_id,
            "type": random.choice(KINDS),
            "category": random.choice(CATEGORIES),
            "content": f"Load test post {content_id} about {random.choice(CATEGORIES)}",
            "likes": random.randint(0, 500),
            "timestamp": int(time.time() * 1000),
        },
    }


async def run_user(
    session: UserSession,
    url: str,
    ready: asyncio.Event,
    done: asyncio.Event,
    sent_at: dict[str, float],
) -> None:
    """Connect, announce activity, then record every score-update until done."""
    start_time = time.perf_counter()
    try:
        websocket = await websockets.connect(url)
        await websocket.send(json.dumps(generate_activity(session.address)))
    finally:
        ready.set()

    async with websocket:
        while not done.is_set():
            try:
                raw = await asyncio.wait_for(websocket.recv(), timeout=0.5)
            except asyncio.TimeoutError:
                continue
            received = time.perf_counter()
            message = json.loads(raw)

            if message.get("event") == "error":
                session.errors.append(f"{message.get('code')}: {message.get('message')}")
                continue
            if message.get("event") != "score-update":
                continue

            content_id = message.get("content_id")
            if session.activity_latency_ms is None:
                session.activity_latency_ms = (received - start_time) * 1000
            if content_id in sent_at and content_id not in {d.content_id for d in session.deliveries}:
                session.deliveries.append(DeliveryResult(
                    user=session.address,
                    content_id=content_id,
                    latency_ms=(received - sent_at[content_id]) * 1000,
                ))


async def run_publisher(url: str, config: LoadTestConfig, sent_at: dict[str, float]) -> None:
    """Publish new-content events at a fixed interval."""
    async with websockets.connect(url) as websocket:
        for i in range(config.content_items):
            content_id = f"load-{i}-{uuid.uuid4().hex[:8]}"
            sent_at[content_id] = time.perf_counter()
            await websocket.send(json.dumps(generate_content(content_id)))
            if (i + 1) % max(1, config.content_items // 10) == 0:
                progress = (i + 1) / config.content_items * 100
                print(f"  Published: {i + 1}/{config.content_items} ({progress:.0f}%)")
            await asyncio.sleep(config.content_interval_seconds)


async def run_load_test(config: LoadTestConfig) -> list[UserSession]:
    """Execute the load test with the given configuration."""
    url = f"{config.base_url.rstrip('/')}/ws/{config.analyzer}"

    print("\nStarting load test:")
    print(f"  URL: {url}")
    print(f"  Users: {config.users}")
    print(f"  Content items: {config.content_items}")
    print(f"  Content interval: {config.content_interval_seconds}s")
    print()

    sessions = [UserSession(address=f"0x{uuid.uuid4().hex[:12]}") for _ in range(config.users)]
    ready_events = [asyncio.Event() for _ in sessions]
    done = asyncio.Event()
    sent_at: dict[str, float] = {}

    user_tasks = [
        asyncio.create_task(run_user(s, url, ready, done, sent_at))
        for s, ready in zip(sessions, ready_events)
    ]

    await asyncio.gather(*(e.wait() for e in ready_events))
    # Let the server finish merging the initial activity updates
    await asyncio.sleep(0.5)
    print("All users connected, publishing content...")

    start_time = time.perf_counter()
    await run_publisher(url, config, sent_at)

    # Drain outstanding deliveries
    expected = config.users * config.content_items
    deadline = time.perf_counter() + config.timeout_seconds
    while time.perf_counter() < deadline:
        if sum(len(s.deliveries) for s in sessions) >= expected:
            break
        await asyncio.sleep(0.1)

    done.set()
    results = await asyncio.gather(*user_tasks, return_exceptions=True)
    for session, result in zip(sessions, results):
        if isinstance(result, Exception):
            session.errors.append(f"connection: {result}")

    total_time = time.perf_counter() - start_time
    print(f"\nTest completed in {total_time:.2f}s")
    return sessions


def calculate_percentile(values: list[float], percentile: float) -> float:
    """Calculate the given percentile of a list of values."""
    if not values:
        return 0.0
    sorted_values = sorted(values)
    index = int(len(sorted_values) * percentile / 100)
    index = min(index, len(sorted_values) - 1)
    return sorted_values[index]


def print_latency_block(title: str, values: list[float]) -> None:
    print(f"\n{title:^70}")
    print("-" * 70)
    if not values:
        print("  No data")
        return
    print(f"  Mean:               {statistics.mean(values):.2f}ms")
    print(f"  Std Dev:            {statistics.stdev(values) if len(values) > 1 else 0:.2f}ms")
    print(f"  Min:                {min(values):.2f}ms")
    print(f"  Max:                {max(values):.2f}ms")
    for p in (50, 75, 90, 95, 99):
        print(f"  p{p}:{'':<16}{calculate_percentile(values, p):.2f}ms")


def print_distribution_histogram(values: list[float], title: str, bins: int = 10) -> None:
    """Print an ASCII histogram of the distribution."""
    if not values:
        return

    min_val = min(values)
    max_val = max(values)
    if min_val == max_val:
        print(f"\n{title}: All values are {min_val:.2f}ms")
        return

    bin_width = (max_val - min_val) / bins
    histogram = [0] * bins
    for val in values:
        histogram[min(int((val - min_val) / bin_width), bins - 1)] += 1

    max_count = max(histogram)
    bar_width = 40

    print(f"\n{title}")
    print("-" * 70)
    for i, count in enumerate(histogram):
        lower = min_val + i * bin_width
        upper = lower + bin_width
        bar = "#" * int(count / max_count * bar_width)
        print(f"  {lower:8.2f} - {upper:8.2f}ms | {bar:<{bar_width}} | {count:4d}")


def analyze_results(sessions: list[UserSession], content_items: int) -> None:
    """Analyze and print the load test results."""
    deliveries = [d for s in sessions for d in s.deliveries]
    expected = len(sessions) * content_items

    print("\n" + "=" * 70)
    print("LOAD TEST RESULTS")
    print("=" * 70)

    print(f"\n{'SUMMARY':^70}")
    print("-" * 70)
    print(f"  Users:              {len(sessions)}")
    print(f"  Expected updates:   {expected}")
    print(f"  Received updates:   {len(deliveries)} ({len(deliveries) / max(expected, 1) * 100:.1f}%)")
    incomplete = [s for s in sessions if len(s.deliveries) < content_items]
    print(f"  Incomplete users:   {len(incomplete)}")

    activity = [s.activity_latency_ms for s in sessions if s.activity_latency_ms is not None]
    print_latency_block("ACTIVITY -> FIRST SCORE-UPDATE", activity)

    fanout = [d.latency_ms for d in deliveries]
    print_latency_block("NEW-CONTENT -> SCORE-UPDATE (fan-out)", fanout)
    print_distribution_histogram(fanout, "FAN-OUT LATENCY DISTRIBUTION")

    errors: dict[str, int] = {}
    for s in sessions:
        for error in s.errors:
            errors[error] = errors.get(error, 0) + 1
    if errors:
        print(f"\n{'ERRORS':^70}")
        print("-" * 70)
        for error, count in sorted(errors.items(), key=lambda x: -x[1]):
            print(f"  {count:4d}x  {error[:60]}")

    print("\n" + "=" * 70)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Load test the personalization WebSocket API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # 50 users, 20 content items on the behavior analyzer
  python scripts/load_test.py --url ws://localhost:8000 -a behavior -u 50 -n 20

  # Burst of content with no pause
  python scripts/load_test.py -a interaction -u 200 -n 50 --interval 0
        """,
    )
    parser.add_argument("--url", type=str, default="ws://localhost:8000", help="Base WebSocket URL (default: ws://localhost:8000)")
    parser.add_argument("--analyzer", "-a", type=str, default="behavior", help="Real-time analyzer (default: behavior)")
    parser.add_argument("--users", "-u", type=int, default=50, help="Number of simulated users (default: 50)")
    parser.add_argument("--content", "-n", type=int, default=20, help="Number of content items to publish (default: 20)")
    parser.add_argument("--interval", type=float, default=0.2, help="Seconds between content items (default: 0.2)")
    parser.add_argument("--timeout", "-t", type=float, default=30.0, help="Seconds to wait for outstanding updates (default: 30)")
    return parser.parse_args()


def main() -> None:
    """Main entry point for the load test script."""
    args = parse_args()

    config = LoadTestConfig(
        base_url=args.url,
        analyzer=args.analyzer,
        users=args.users,
        content_items=args.content,
        content_interval_seconds=args.interval,
        timeout_seconds=args.timeout,
    )

    print("Personalization API - Load Test")
    print("=" * 70)

    sessions = asyncio.run(run_load_test(config))
    analyze_results(sessions, config.content_items)


if __name__ == "__main__":
    main()
