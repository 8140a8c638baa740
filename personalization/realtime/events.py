"""Inbound event payload parsing.

Payloads arrive as loosely-typed JSON objects. Both snake_case keys and the
camelCase keys older clients send are accepted. Malformed pieces fall back to
neutral defaults and are logged; nothing here is surfaced to the end user
except an unknown event name.
"""

from datetime import datetime, timezone
import math
import secrets
import string
import time
from typing import Any

from loguru import logger

from personalization.domain.entities import (
    ContentItem,
    Interaction,
    InteractionAction,
    Market,
    MarketOrder,
    ProfileUpdate,
    UserBehaviorProfile,
    utc_now,
)
from personalization.domain.errors import MalformedInput


ACTIVITY_UPDATE = "activity-update"
NEW_CONTENT = "new-content"
ERROR = "error"

PROFILE_KEYS = {
    "address": ("address", "identity"),
    "viewed_content_ids": ("viewed_content_ids", "viewedPosts"),
    "liked_content_ids": ("liked_content_ids", "likedPosts"),
    "selected_categories": ("selected_categories", "selectedCategories"),
    "interactions": ("interactions",),
}

CONTENT_KEYS = {
    "content_id": ("content_id", "id"),
    "kind": ("kind", "type"),
    "category": ("category",),
    "body": ("body", "content"),
    "likes": ("likes",),
    "created_at": ("created_at", "timestamp"),
    "author": ("author", "creator"),
}

MARKET_KEYS = {
    "market_id": ("market_id", "id"),
    "question": ("question",),
    "resolved": ("resolved",),
    "outcome": ("outcome",),
    "orders": ("orders",),
    "created_at": ("created_at", "createdAt"),
}

ORDER_KEYS = {
    "user": ("user",),
    "outcome": ("outcome",),
    "is_bid": ("is_bid", "isBid"),
    "price": ("price",),
    "amount": ("amount",),
    "created_at": ("created_at", "createdAt"),
}

_BASE36 = string.digits + string.ascii_lowercase


def _pick(payload: dict[str, Any], aliases: tuple[str, ...]) -> Any:
    for key in aliases:
        if key in payload:
            return payload[key]
    return None


def parse_timestamp(value: Any) -> datetime:
    """Parse a datetime, an ISO string or epoch milliseconds into UTC.

    Raises:
        MalformedInput: If the value can't be interpreted as an instant
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise MalformedInput(f"Invalid timestamp {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedInput(f"Timestamp out of range {value!r}") from e
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except (OverflowError, ValueError) as e:
            raise MalformedInput(f"Invalid timestamp {value!r}") from e
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise MalformedInput(f"Invalid timestamp {value!r}")


def parse_interaction(raw: Any) -> Interaction:
    if not isinstance(raw, dict):
        raise MalformedInput(f"Interaction must be an object, got {type(raw).__name__}")

    content_id = raw.get("content_id", raw.get("postId"))
    if content_id is None:
        raise MalformedInput("Interaction without content id")

    try:
        action = InteractionAction(raw.get("action"))
    except ValueError as e:
        raise MalformedInput(f"Unknown interaction action {raw.get('action')!r}") from e

    return Interaction(
        content_id=str(content_id),
        timestamp=parse_timestamp(raw.get("timestamp")),
        action=action,
    )


def _string_collection(value: Any, field_name: str) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(v) for v in value]
    logger.warning(f"Ignoring malformed '{field_name}': expected a list, got {type(value).__name__}")
    return None


def parse_profile_update(payload: dict[str, Any] | None) -> ProfileUpdate:
    """Build a partial profile from an activity-update payload."""
    payload = payload or {}

    address = _pick(payload, PROFILE_KEYS["address"])
    viewed = _string_collection(_pick(payload, PROFILE_KEYS["viewed_content_ids"]), "viewed_content_ids")
    liked = _string_collection(_pick(payload, PROFILE_KEYS["liked_content_ids"]), "liked_content_ids")
    categories = _string_collection(_pick(payload, PROFILE_KEYS["selected_categories"]), "selected_categories")

    interactions = None
    raw_interactions = _pick(payload, PROFILE_KEYS["interactions"])
    if isinstance(raw_interactions, (list, tuple)):
        interactions = []
        for raw in raw_interactions:
            try:
                interactions.append(parse_interaction(raw))
            except MalformedInput as e:
                logger.warning(f"Dropping malformed interaction: {e}")
    elif raw_interactions is not None:
        logger.warning("Ignoring malformed 'interactions': expected a list")

    return ProfileUpdate(
        address=str(address) if address else None,
        viewed_content_ids=frozenset(viewed) if viewed is not None else None,
        liked_content_ids=frozenset(liked) if liked is not None else None,
        selected_categories=tuple(categories) if categories is not None else None,
        interactions=tuple(interactions) if interactions is not None else None,
    )


def generate_content_id() -> str:
    """Millisecond timestamp plus a random base36 suffix."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(10))
    return f"{int(time.time() * 1000)}-{suffix}"


def parse_content(payload: dict[str, Any] | None) -> ContentItem:
    """Build a content item from a new-content payload, generating an id if absent."""
    payload = payload or {}

    content_id = _pick(payload, CONTENT_KEYS["content_id"])
    content_id = str(content_id) if content_id else generate_content_id()

    likes = _pick(payload, CONTENT_KEYS["likes"])
    try:
        likes = int(likes) if likes is not None else 0
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Content {content_id}: ignoring malformed likes {likes!r}")
        likes = 0

    created_at = None
    raw_created = _pick(payload, CONTENT_KEYS["created_at"])
    if raw_created is not None:
        try:
            created_at = parse_timestamp(raw_created)
        except MalformedInput as e:
            logger.warning(f"Content {content_id}: {e}")

    category = _pick(payload, CONTENT_KEYS["category"])
    author = _pick(payload, CONTENT_KEYS["author"])

    return ContentItem(
        content_id=content_id,
        kind=str(_pick(payload, CONTENT_KEYS["kind"]) or "post"),
        category=str(category) if category else None,
        body=str(_pick(payload, CONTENT_KEYS["body"]) or ""),
        likes=likes,
        created_at=created_at,
        author=str(author) if author else None,
    )


def build_profile(update: ProfileUpdate, identity: str, now: datetime | None = None) -> UserBehaviorProfile:
    """Full profile from a partial update, for profiles that are not tracked."""
    return UserBehaviorProfile(
        identity=update.address or identity,
        viewed_content_ids=set(update.viewed_content_ids or ()),
        liked_content_ids=set(update.liked_content_ids or ()),
        selected_categories=list(update.selected_categories or ()),
        interactions=list(update.interactions or ()),
        last_active_at=now or utc_now(),
    )


def _finite_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise MalformedInput(f"Invalid {field_name} {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedInput(f"Invalid {field_name} {value!r}") from e
    if not math.isfinite(number):
        raise MalformedInput(f"Invalid {field_name} {value!r}")
    return number


def parse_order(raw: Any) -> MarketOrder:
    if not isinstance(raw, dict):
        raise MalformedInput(f"Order must be an object, got {type(raw).__name__}")

    raw_created = _pick(raw, ORDER_KEYS["created_at"])
    return MarketOrder(
        user=str(_pick(raw, ORDER_KEYS["user"]) or ""),
        outcome=int(_finite_number(_pick(raw, ORDER_KEYS["outcome"]) or 0, "outcome")),
        is_bid=bool(_pick(raw, ORDER_KEYS["is_bid"])),
        price=_finite_number(_pick(raw, ORDER_KEYS["price"]), "price"),
        amount=_finite_number(_pick(raw, ORDER_KEYS["amount"]), "amount"),
        created_at=parse_timestamp(raw_created) if raw_created is not None else None,
    )


def parse_market(payload: dict[str, Any] | None) -> Market:
    """Build a market from a loosely-typed payload; malformed orders are dropped.

    Raises:
        MalformedInput: If the payload is not an object
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise MalformedInput(f"Market must be an object, got {type(payload).__name__}")

    market_id = str(_pick(payload, MARKET_KEYS["market_id"]) or "")

    orders = []
    raw_orders = _pick(payload, MARKET_KEYS["orders"])
    if isinstance(raw_orders, (list, tuple)):
        for raw in raw_orders:
            try:
                orders.append(parse_order(raw))
            except MalformedInput as e:
                logger.warning(f"Market {market_id}: dropping malformed order: {e}")
    elif raw_orders is not None:
        logger.warning(f"Market {market_id}: ignoring malformed 'orders': expected a list")

    try:
        outcome = int(_finite_number(_pick(payload, MARKET_KEYS["outcome"]) or 0, "outcome"))
    except MalformedInput as e:
        logger.warning(f"Market {market_id}: {e}")
        outcome = 0

    created_at = None
    raw_created = _pick(payload, MARKET_KEYS["created_at"])
    if raw_created is not None:
        try:
            created_at = parse_timestamp(raw_created)
        except MalformedInput as e:
            logger.warning(f"Market {market_id}: {e}")

    return Market(
        market_id=market_id,
        question=str(_pick(payload, MARKET_KEYS["question"]) or ""),
        resolved=bool(_pick(payload, MARKET_KEYS["resolved"])),
        outcome=outcome,
        orders=tuple(orders),
        created_at=created_at,
    )
