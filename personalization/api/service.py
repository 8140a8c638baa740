import uuid
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from loguru import logger

from personalization.analyzers.clustering import ClusterAssignment, UserClusterer
from personalization.analyzers.registry import AnalyzerRegistry
from personalization.api.dtos import (
    AnalyzerInfo,
    ClusterRequest,
    MarketPredictRequest,
    RecommendRequest,
    TrainRequest,
)
from personalization.domain.entities import Recommendation, ScoreResult, TrainingReport
from personalization.domain.errors import DeliveryFailure
from personalization.pipelines.training import TrainingPipeline, example_from_record
from personalization.realtime.events import build_profile, parse_market, parse_profile_update
from personalization.realtime.service import PersonalizationService


class WebSocketChannel:
    """Delivery channel backed by one accepted WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._channel_id = uuid.uuid4().hex

    @property
    def channel_id(self) -> str:
        return self._channel_id

    async def send(self, message: dict[str, Any]) -> None:
        try:
            await self._websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise DeliveryFailure(f"Channel {self._channel_id} is closed") from e


class PersonalizationAPIService:
    """Service class that owns one session pipeline per real-time analyzer."""

    def __init__(self, registry: AnalyzerRegistry) -> None:
        self._registry = registry
        self._training = TrainingPipeline(registry)
        interval = registry.config.realtime.refresh_interval_seconds
        self._sessions = {
            name: PersonalizationService(analyzer, refresh_interval_seconds=interval)
            for name, analyzer in registry.realtime.items()
        }

    @property
    def registry(self) -> AnalyzerRegistry:
        return self._registry

    def session(self, analyzer_name: str) -> PersonalizationService:
        """Session pipeline for a real-time analyzer.

        Raises:
            UnknownAnalyzer: If no real-time analyzer has that name
        """
        analyzer = self._registry.get_realtime(analyzer_name)
        return self._sessions[analyzer.name]

    def train(self, analyzer_name: str, request: TrainRequest) -> TrainingReport:
        examples = [example_from_record(e.model_dump()) for e in request.examples]
        return self._training.run(analyzer_name, examples, dataset_name=request.dataset_name)

    def classify(self, classifier_name: str, text: str) -> ScoreResult:
        return self._registry.get_classifier(classifier_name).classify(text)

    async def recommend(self, analyzer_name: str, request: RecommendRequest) -> list[Recommendation]:
        return await self.session(analyzer_name).recommend(request.profile, limit=request.limit)

    def predict_market(self, analyzer_name: str, request: MarketPredictRequest) -> ScoreResult:
        analyzer = self._registry.get_predictive(analyzer_name)
        profile = build_profile(parse_profile_update(request.profile), "anonymous")
        return analyzer.predict(profile, parse_market(request.market))

    def cluster(self, request: ClusterRequest) -> list[ClusterAssignment]:
        default = self._registry.clusterer
        clusterer = default if request.n_clusters == default.n_clusters else UserClusterer(
            n_clusters=request.n_clusters,
            random_state=default.random_state,
            vectorizer=default.vectorizer,
        )
        profiles = [
            build_profile(parse_profile_update(p), f"user-{i}")
            for i, p in enumerate(request.profiles)
        ]
        return clusterer.cluster(profiles)

    def analyzers(self) -> dict[str, list[AnalyzerInfo]]:
        def info(name, analyzer) -> AnalyzerInfo:
            return AnalyzerInfo(
                name=name,
                labels=list(analyzer.labels),
                dimension=analyzer.dimension,
                trained=analyzer.predictor.is_fitted,
            )

        return {
            "realtime": [info(n, a) for n, a in self._registry.realtime.items()],
            "classifiers": [info(n, c) for n, c in self._registry.classifiers.items()],
            "predictive": [info(n, p) for n, p in self._registry.predictive.items()],
        }

    async def shutdown(self) -> None:
        for name, session in self._sessions.items():
            await session.shutdown()
            logger.info(f"[{name}] session pipeline stopped")
