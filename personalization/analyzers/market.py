"""Predictive analytics over prediction markets.

Scores the trend of a market as seen by one user: the profile summary is
followed by the market's order-book encoding.
"""

from datetime import datetime
from typing import Sequence

from personalization.domain.entities import (
    FeatureVector,
    LabelSet,
    Market,
    ScoreResult,
    TrainingExample,
    TrainingReport,
    UserBehaviorProfile,
    utc_now,
)
from personalization.domain.protocols import IPredictor
from personalization.features.feature_engineering import MarketVectorizer, ProfileSummaryVectorizer


MARKET_TREND_LABELS = LabelSet(("declining", "rising"))

_TRAINING_IDENTITY = "training"
_TRAINING_MARKET = "training"


class MarketTrendAnalyzer:
    """Profile summary ⧺ market -> declining/rising."""

    name = "market_trend"
    label_set = MARKET_TREND_LABELS

    def __init__(
        self,
        predictor: IPredictor,
        profile: ProfileSummaryVectorizer | None = None,
        market: MarketVectorizer | None = None,
    ) -> None:
        self.predictor = predictor
        self.profile = profile or ProfileSummaryVectorizer()
        self.market = market or MarketVectorizer()

    @property
    def labels(self) -> tuple[str, ...]:
        return self.predictor.label_set.labels

    @property
    def dimension(self) -> int:
        return self.profile.dimension + self.market.dimension

    def vectorize(
        self,
        profile: UserBehaviorProfile,
        market: Market,
        now: datetime | None = None,
    ) -> FeatureVector:
        now = now or utc_now()
        return self.profile.vectorize(profile, now).concat(self.market.vectorize(market, now))

    def predict(
        self,
        profile: UserBehaviorProfile,
        market: Market,
        now: datetime | None = None,
    ) -> ScoreResult:
        return self.predictor.predict(self.vectorize(profile, market, now))

    def training_vector(self, example: TrainingExample, now: datetime | None = None) -> FeatureVector:
        profile = example.profile or UserBehaviorProfile(identity=_TRAINING_IDENTITY)
        market = example.market or Market(market_id=_TRAINING_MARKET)
        return self.vectorize(profile, market, now)

    def train(
        self,
        examples: Sequence[TrainingExample],
        dataset_name: str | None = None,
        now: datetime | None = None,
    ) -> TrainingReport:
        now = now or utc_now()
        batch = [(self.training_vector(e, now), e.label) for e in examples]
        return self.predictor.train(batch, dataset_name=dataset_name)
