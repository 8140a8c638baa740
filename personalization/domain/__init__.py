"""Domain layer: entities, errors and protocols."""

from .entities import (
    CATEGORIES,
    ContentItem,
    FeatureVector,
    Interaction,
    InteractionAction,
    LabelSet,
    ModelConfig,
    ProfileUpdate,
    ScoreResult,
    ScoreUpdate,
    TrainingConfig,
    TrainingExample,
    TrainingReport,
    UserBehaviorProfile,
    utc_now,
)

from .errors import (
    DeliveryFailure,
    MalformedInput,
    NotInitialized,
    PersonalizationError,
    TrainingFailure,
    UnknownAnalyzer,
)

from .protocols import (
    IDeliveryChannel,
    IMetric,
    IPredictor,
    IVectorizer,
)

__all__ = [
    "CATEGORIES",
    "ContentItem",
    "FeatureVector",
    "Interaction",
    "InteractionAction",
    "LabelSet",
    "ModelConfig",
    "ProfileUpdate",
    "ScoreResult",
    "ScoreUpdate",
    "TrainingConfig",
    "TrainingExample",
    "TrainingReport",
    "UserBehaviorProfile",
    "utc_now",
    "DeliveryFailure",
    "MalformedInput",
    "NotInitialized",
    "PersonalizationError",
    "TrainingFailure",
    "UnknownAnalyzer",
    "IDeliveryChannel",
    "IMetric",
    "IPredictor",
    "IVectorizer",
]
