"""FastAPI application for the personalization analyzers."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError

from personalization.analyzers.registry import AnalyzerRegistry
from personalization.api.config import AppConfig
from personalization.api.service import PersonalizationAPIService, WebSocketChannel
from personalization.domain.errors import MalformedInput, PersonalizationError, UnknownAnalyzer
from personalization.pipelines.config import PipelineConfig, load_config, get_default_config
from personalization.realtime.events import ERROR
from personalization.utils.logging import setup_logging

from .dtos import (
    AnalyzerInfo,
    ClassifyRequest,
    ClusterItem,
    ClusterRequest,
    ClusterResponse,
    InboundMessage,
    MarketPredictRequest,
    RecommendationItem,
    RecommendRequest,
    RecommendResponse,
    ScoreResponse,
    TrainRequest,
    TrainResponse,
)


def _error_message(error: PersonalizationError) -> dict:
    return {"event": ERROR, "code": error.code, "message": str(error)}


def resolve_pipeline_config(app_config: AppConfig) -> PipelineConfig:
    """Pipeline config named by the app settings, with the model dir override applied."""
    if app_config.config_path is not None:
        config = load_config(app_config.config_path)
    else:
        config = get_default_config()
    if app_config.model_dir is not None:
        config = config.with_model_dir(app_config.model_dir)
    return config


def create_app(
    app_config: AppConfig | None = None,
    pipeline_config: PipelineConfig | None = None,
) -> FastAPI:
    """Build the application. Analyzers are constructed and restored on startup."""
    app_config = app_config or AppConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(app_config.log_level, app_config.log_dir)
        config = pipeline_config or resolve_pipeline_config(app_config)
        registry = AnalyzerRegistry(config)
        registry.load_all()
        app.state.service = PersonalizationAPIService(registry)
        logger.info(f"Serving analyzers: {sorted(registry.realtime)} + {sorted(registry.classifiers)}")
        yield
        await app.state.service.shutdown()

    app = FastAPI(
        title="Personalization API",
        description="Real-time personalization analyzers and text classifiers",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.exception_handler(PersonalizationError)
    async def personalization_error(request: Request, exc: PersonalizationError) -> JSONResponse:
        return JSONResponse(status_code=exc.status, content={"code": exc.code, "detail": str(exc)})

    @app.websocket("/ws/{analyzer}")
    async def session(websocket: WebSocket, analyzer: str) -> None:
        """Session socket: activity-update and new-content in, score-update out."""
        service: PersonalizationAPIService = websocket.app.state.service
        try:
            pipeline = service.session(analyzer)
        except UnknownAnalyzer as e:
            await websocket.accept()
            await websocket.send_json(_error_message(e))
            await websocket.close(code=4404)
            return

        await websocket.accept()
        connection = pipeline.open_connection(WebSocketChannel(websocket))
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    message = InboundMessage.model_validate_json(raw)
                except ValidationError as e:
                    logger.warning(f"[{analyzer}] malformed message on {connection.connection_id}")
                    await websocket.send_json(_error_message(MalformedInput(f"Malformed message: {e.errors()[0]['msg']}")))
                    continue
                try:
                    await pipeline.handle_event(connection, message.event, message.data)
                except PersonalizationError as e:
                    logger.warning(f"[{analyzer}] {message.event} failed: {e}")
                    await websocket.send_json(_error_message(e))
        except WebSocketDisconnect:
            pass
        finally:
            await pipeline.close_connection(connection)

    @app.post("/train/{analyzer}", response_model=TrainResponse)
    def train(analyzer: str, request: TrainRequest) -> TrainResponse:
        """Train or continue training one analyzer on a labeled batch."""
        start_time = time.perf_counter()
        report = app.state.service.train(analyzer, request)
        elapsed_seconds = time.perf_counter() - start_time

        return TrainResponse(
            model_name=report.model_name,
            dataset_name=report.dataset_name,
            train_samples=report.train_samples,
            validation_samples=report.validation_samples,
            boosting_rounds=report.boosting_rounds,
            metrics=report.metrics,
            trained_at=report.trained_at,
            execution_time_ms=elapsed_seconds * 1000,
            response_id=uuid.uuid4(),
        )

    @app.post("/classify/{classifier}", response_model=ScoreResponse)
    def classify(classifier: str, request: ClassifyRequest) -> ScoreResponse:
        """Classify a single text."""
        start_time = time.perf_counter()
        result = app.state.service.classify(classifier, request.text)
        elapsed_seconds = time.perf_counter() - start_time

        return ScoreResponse(
            classifier=classifier,
            label=result.label,
            confidence=result.confidence,
            scores=result.scores,
            execution_time_ms=elapsed_seconds * 1000,
            response_id=uuid.uuid4(),
        )

    @app.post("/recommend/{analyzer}", response_model=RecommendResponse)
    async def recommend(analyzer: str, request: RecommendRequest) -> RecommendResponse:
        """Rank the analyzer's cached content for one profile."""
        start_time = time.perf_counter()
        ranked = await app.state.service.recommend(analyzer, request)
        elapsed_seconds = time.perf_counter() - start_time

        return RecommendResponse(
            analyzer=analyzer,
            recommendations=[RecommendationItem(content_id=r.content_id, score=r.score) for r in ranked],
            execution_time_ms=elapsed_seconds * 1000,
            response_id=uuid.uuid4(),
        )

    @app.post("/predict/{analyzer}", response_model=ScoreResponse)
    def predict(analyzer: str, request: MarketPredictRequest) -> ScoreResponse:
        """Predict the trend of a market for a user."""
        start_time = time.perf_counter()
        result = app.state.service.predict_market(analyzer, request)
        elapsed_seconds = time.perf_counter() - start_time

        return ScoreResponse(
            classifier=analyzer,
            label=result.label,
            confidence=result.confidence,
            scores=result.scores,
            execution_time_ms=elapsed_seconds * 1000,
            response_id=uuid.uuid4(),
        )

    @app.post("/cluster", response_model=ClusterResponse)
    def cluster(request: ClusterRequest) -> ClusterResponse:
        """Group a batch of profiles by behavior."""
        start_time = time.perf_counter()
        assignments = app.state.service.cluster(request)
        elapsed_seconds = time.perf_counter() - start_time

        return ClusterResponse(
            assignments=[ClusterItem(identity=a.identity, cluster=a.cluster) for a in assignments],
            execution_time_ms=elapsed_seconds * 1000,
            response_id=uuid.uuid4(),
        )

    @app.get("/analyzers")
    def analyzers() -> dict[str, list[AnalyzerInfo]]:
        return app.state.service.analyzers()

    @app.get("/health")
    def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
