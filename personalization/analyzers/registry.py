"""Construction and lookup of every analyzer the service exposes."""

from dataclasses import dataclass, field

from loguru import logger

from personalization.analyzers.base import RealtimeAnalyzer
from personalization.analyzers.clustering import UserClusterer
from personalization.analyzers.market import MarketTrendAnalyzer
from personalization.analyzers.realtime import (
    BehaviorAnalyzer,
    ContentOptimizationAnalyzer,
    InteractionAnalyzer,
    PersonalizationAnalyzer,
    TrendAnalyzer,
)
from personalization.analyzers.text import TEXT_CLASSIFIERS, TextClassifier
from personalization.domain.entities import LabelSet
from personalization.domain.errors import UnknownAnalyzer
from personalization.features.feature_engineering import (
    BehaviorVectorizer,
    CompactBehaviorVectorizer,
    ContentVectorizer,
    MarketVectorizer,
    ProfileSummaryVectorizer,
    TextVectorizer,
)
from personalization.model_store.model_store import ModelStore
from personalization.models.xgboost_predictor import XGBoostPredictor
from personalization.pipelines.config import PipelineConfig


@dataclass
class AnalyzerRegistry:
    """Owns one independent predictor per analyzer."""

    config: PipelineConfig = field(default_factory=PipelineConfig)

    realtime: dict[str, RealtimeAnalyzer] = field(default_factory=dict, init=False)
    classifiers: dict[str, TextClassifier] = field(default_factory=dict, init=False)
    predictive: dict[str, MarketTrendAnalyzer] = field(default_factory=dict, init=False)
    clusterer: UserClusterer = field(init=False)
    store: ModelStore = field(init=False)

    def __post_init__(self) -> None:
        self.store = ModelStore(self.config.paths.model_dir)

        behavior = BehaviorVectorizer(recent_window=self.config.realtime.recent_window)
        content = ContentVectorizer()
        text = TextVectorizer(n_features=self.config.text.hashing_features)
        compact = CompactBehaviorVectorizer()
        summary = ProfileSummaryVectorizer()
        market = MarketVectorizer()

        profile_content = behavior.feature_names() + content.feature_names()
        text_profile = text.feature_names() + compact.feature_names()

        for analyzer in (
            BehaviorAnalyzer(self._predictor(BehaviorAnalyzer.name, BehaviorAnalyzer.label_set, profile_content), behavior, content),
            InteractionAnalyzer(self._predictor(InteractionAnalyzer.name, InteractionAnalyzer.label_set, profile_content), behavior, content),
            PersonalizationAnalyzer(self._predictor(PersonalizationAnalyzer.name, PersonalizationAnalyzer.label_set, profile_content), behavior, content),
            ContentOptimizationAnalyzer(self._predictor(ContentOptimizationAnalyzer.name, ContentOptimizationAnalyzer.label_set, text_profile), text, compact),
            TrendAnalyzer(self._predictor(TrendAnalyzer.name, TrendAnalyzer.label_set, text_profile), text, compact),
        ):
            self.realtime[analyzer.name] = analyzer

        for name, label_set in TEXT_CLASSIFIERS.items():
            predictor = self._predictor(name, label_set, text.feature_names())
            self.classifiers[name] = TextClassifier(name, predictor, text)

        market_features = summary.feature_names() + market.feature_names()
        trend = MarketTrendAnalyzer(
            self._predictor(MarketTrendAnalyzer.name, MarketTrendAnalyzer.label_set, market_features),
            summary,
            market,
        )
        self.predictive[trend.name] = trend

        self.clusterer = UserClusterer(vectorizer=behavior)

    def _predictor(self, name: str, label_set: LabelSet, feature_names: list[str]) -> XGBoostPredictor:
        return XGBoostPredictor(
            name=name,
            label_set=label_set,
            n_features=len(feature_names),
            store=self.store,
            config=self.config.to_domain_model_config(),
            training_config=self.config.to_domain_training_config(),
            feature_names=feature_names,
        )

    def load_all(self) -> dict[str, bool]:
        """Restore persisted weights for every analyzer."""
        loaded = {}
        for name, analyzer in {**self.realtime, **self.classifiers, **self.predictive}.items():
            loaded[name] = analyzer.predictor.load()
        logger.info(f"Restored weights for: {[n for n, ok in loaded.items() if ok] or 'none'}")
        return loaded

    def get_realtime(self, name: str) -> RealtimeAnalyzer:
        try:
            return self.realtime[name]
        except KeyError:
            raise UnknownAnalyzer(f"Unknown real-time analyzer '{name}'") from None

    def get_classifier(self, name: str) -> TextClassifier:
        try:
            return self.classifiers[name]
        except KeyError:
            raise UnknownAnalyzer(f"Unknown text classifier '{name}'") from None

    def get_predictive(self, name: str) -> MarketTrendAnalyzer:
        try:
            return self.predictive[name]
        except KeyError:
            raise UnknownAnalyzer(f"Unknown predictive analyzer '{name}'") from None

    def get_trainable(self, name: str) -> RealtimeAnalyzer | TextClassifier | MarketTrendAnalyzer:
        for group in (self.realtime, self.classifiers, self.predictive):
            if name in group:
                return group[name]
        raise UnknownAnalyzer(f"Unknown analyzer '{name}'")
