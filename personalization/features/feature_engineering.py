"""Feature vectorization for the personalization analyzers.

Implements the fixed encodings every analyzer shares:
- One-hot interest/category slots in the shared vocabulary order
- Count features divided by a fixed divisor (never clamped)
- Elapsed-time features measured against the evaluation-time "now"
- A recency window over the most recent interactions
- Order-book aggregates of prediction markets
- Hashed bag-of-words text features

Slot order is a contract with trained weights: never reorder these lists.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

import numpy as np
from loguru import logger
from sklearn.feature_extraction.text import HashingVectorizer

from personalization.domain.entities import (
    CATEGORIES,
    ContentItem,
    FeatureVector,
    InteractionAction,
    Market,
    UserBehaviorProfile,
    utc_now,
)


SECONDS_PER_HOUR = 3600.0
HOURS_PER_DAY = 24.0

CONTENT_KINDS: tuple[str, ...] = ("video", "tweet", "photo")

INTEREST_FEATURES = [f"interest_{c}" for c in CATEGORIES]

BEHAVIOR_COUNT_FEATURES = [
    "liked_count",
    "viewed_count",
    "share_count",
]

BEHAVIOR_TIME_FEATURES = [
    "days_since_active",
    "session_hours",
]

CONTENT_FEATURES = (
    [f"category_{c}" for c in CATEGORIES]
    + ["likes", "age_days"]
    + [f"kind_{k}" for k in CONTENT_KINDS]
)

PROFILE_SUMMARY_FEATURES = INTEREST_FEATURES + [
    "liked_count",
    "viewed_count",
    "days_since_active",
    "session_hours",
    "interaction_count",
]

MARKET_FEATURES = [
    "order_count",
    "resolved",
    "outcome",
    "age_days",
    "notional",
    "volume",
    "bid_ratio",
    "ask_ratio",
    "days_since_last_order",
    "active",
]


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def hours_since(ts: datetime | None, now: datetime) -> float:
    """Elapsed hours between ts and now; 0 for a missing timestamp."""
    if ts is None:
        return 0.0
    return (_as_utc(now) - _as_utc(ts)).total_seconds() / SECONDS_PER_HOUR


def encode_categories(categories, vocabulary: tuple[str, ...] = CATEGORIES) -> np.ndarray:
    """One slot per vocabulary entry; unknown categories are dropped."""
    vector = np.zeros(len(vocabulary), dtype=np.float64)
    for category in categories or ():
        if category in vocabulary:
            vector[vocabulary.index(category)] = 1.0
        else:
            logger.debug(f"Dropping unknown category {category!r}")
    return vector


@dataclass(frozen=True)
class BehaviorVectorizer:
    """Full behavior profile encoding used by the behavior and interaction analyzers."""

    recent_window: int = 5
    like_divisor: float = 100.0
    view_divisor: float = 100.0
    share_divisor: float = 50.0

    @property
    def dimension(self) -> int:
        return len(self.feature_names())

    def feature_names(self) -> list[str]:
        recent = [f"recent_interaction_{i}" for i in range(self.recent_window)]
        return INTEREST_FEATURES + BEHAVIOR_COUNT_FEATURES + BEHAVIOR_TIME_FEATURES + recent

    def vectorize(self, profile: UserBehaviorProfile, now: datetime | None = None) -> FeatureVector:
        now = now or utc_now()

        interactions = profile.interactions or []
        shares = sum(1 for i in interactions if i.action == InteractionAction.SHARE)

        counts = np.array([
            len(profile.liked_content_ids or ()) / self.like_divisor,
            len(profile.viewed_content_ids or ()) / self.view_divisor,
            shares / self.share_divisor,
        ])

        times = np.array([
            hours_since(profile.last_active_at, now) / HOURS_PER_DAY,
            (profile.cumulative_session_seconds or 0) / SECONDS_PER_HOUR,
        ])

        recent = np.zeros(self.recent_window)
        ordered = sorted(
            (i for i in interactions if i.timestamp is not None),
            key=lambda i: _as_utc(i.timestamp),
            reverse=True,
        )
        for slot, interaction in enumerate(ordered[: self.recent_window]):
            recent[slot] = hours_since(interaction.timestamp, now) / HOURS_PER_DAY

        features = np.concatenate([
            encode_categories(profile.selected_categories),
            counts,
            times,
            recent,
        ])
        return FeatureVector(features=features, feature_names=self.feature_names())


@dataclass(frozen=True)
class CompactBehaviorVectorizer:
    """Interests plus like volume, paired with text for content-level analyzers."""

    like_divisor: float = 100.0

    @property
    def dimension(self) -> int:
        return len(self.feature_names())

    def feature_names(self) -> list[str]:
        return INTEREST_FEATURES + ["liked_count"]

    def vectorize(self, profile: UserBehaviorProfile, now: datetime | None = None) -> FeatureVector:
        features = np.append(
            encode_categories(profile.selected_categories),
            len(profile.liked_content_ids or ()) / self.like_divisor,
        )
        return FeatureVector(features=features, feature_names=self.feature_names())


@dataclass(frozen=True)
class ProfileSummaryVectorizer:
    """Interests, volumes and session time without the recency window."""

    like_divisor: float = 100.0
    view_divisor: float = 100.0
    interaction_divisor: float = 50.0

    @property
    def dimension(self) -> int:
        return len(PROFILE_SUMMARY_FEATURES)

    def feature_names(self) -> list[str]:
        return PROFILE_SUMMARY_FEATURES.copy()

    def vectorize(self, profile: UserBehaviorProfile, now: datetime | None = None) -> FeatureVector:
        now = now or utc_now()

        stats = np.array([
            len(profile.liked_content_ids or ()) / self.like_divisor,
            len(profile.viewed_content_ids or ()) / self.view_divisor,
            hours_since(profile.last_active_at, now) / HOURS_PER_DAY,
            (profile.cumulative_session_seconds or 0) / SECONDS_PER_HOUR,
            len(profile.interactions or ()) / self.interaction_divisor,
        ])

        features = np.concatenate([encode_categories(profile.selected_categories), stats])
        return FeatureVector(features=features, feature_names=self.feature_names())


@dataclass(frozen=True)
class ContentVectorizer:
    """Category, engagement, age and kind of a content item."""

    like_divisor: float = 100.0

    @property
    def dimension(self) -> int:
        return len(CONTENT_FEATURES)

    def feature_names(self) -> list[str]:
        return CONTENT_FEATURES.copy()

    def vectorize(self, content: ContentItem, now: datetime | None = None) -> FeatureVector:
        now = now or utc_now()

        category = encode_categories([content.category] if content.category else [])
        kind = np.array([1.0 if content.kind == k else 0.0 for k in CONTENT_KINDS])
        stats = np.array([
            (content.likes or 0) / self.like_divisor,
            hours_since(content.created_at, now) / HOURS_PER_DAY,
        ])

        features = np.concatenate([category, stats, kind])
        return FeatureVector(features=features, feature_names=self.feature_names())


@dataclass(frozen=True)
class MarketVectorizer:
    """Order-book activity of a prediction market.

    Ages are elapsed days since creation and since the latest order; the
    latest order falls back to the market's own creation time.
    """

    order_divisor: float = 1000.0
    notional_divisor: float = 1000.0
    volume_divisor: float = 1000.0
    outcome_divisor: float = 2.0

    @property
    def dimension(self) -> int:
        return len(MARKET_FEATURES)

    def feature_names(self) -> list[str]:
        return MARKET_FEATURES.copy()

    def vectorize(self, market: Market, now: datetime | None = None) -> FeatureVector:
        now = now or utc_now()
        orders = market.orders or ()

        notional = sum(o.price * o.amount for o in orders)
        volume = sum(o.amount for o in orders)
        bids = sum(1 for o in orders if o.is_bid)
        asks = len(orders) - bids

        stamps = [o.created_at or market.created_at for o in orders]
        stamps = [_as_utc(ts) for ts in stamps if ts is not None]
        latest = max(stamps) if stamps else None

        features = np.array([
            len(orders) / self.order_divisor,
            1.0 if market.resolved else 0.0,
            (market.outcome or 0) / self.outcome_divisor,
            hours_since(market.created_at, now) / HOURS_PER_DAY,
            notional / self.notional_divisor,
            volume / self.volume_divisor,
            bids / len(orders) if orders else 0.0,
            asks / len(orders) if orders else 0.0,
            hours_since(latest, now) / HOURS_PER_DAY,
            1.0 if orders else 0.0,
        ])
        return FeatureVector(features=features, feature_names=self.feature_names())


@dataclass(frozen=True)
class TextVectorizer:
    """Hashed unigram/bigram encoding of free text.

    Hashing keeps the encoding stateless, so there is nothing to fit or persist
    beyond the predictor's own weights.
    """

    n_features: int = 64

    _hasher: HashingVectorizer = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        hasher = HashingVectorizer(
            n_features=self.n_features,
            ngram_range=(1, 2),
            alternate_sign=False,
            norm="l2",
        )
        object.__setattr__(self, "_hasher", hasher)

    @property
    def dimension(self) -> int:
        return self.n_features

    def feature_names(self) -> list[str]:
        return [f"text_hash_{i}" for i in range(self.n_features)]

    def vectorize(self, entity: ContentItem | str | None, now: datetime | None = None) -> FeatureVector:
        text = entity.body if isinstance(entity, ContentItem) else entity
        if not text:
            features = np.zeros(self.n_features)
        else:
            features = self._hasher.transform([text]).toarray()[0]
        return FeatureVector(features=features, feature_names=self.feature_names())
