"""Real-time analyzers served over the session pipeline.

Each combines a profile encoding with a content encoding by concatenation
and maps the result onto its own closed label set.
"""

from datetime import datetime
from typing import Any

from personalization.analyzers.base import RealtimeAnalyzer
from personalization.domain.entities import (
    CATEGORIES,
    ContentItem,
    FeatureVector,
    LabelSet,
    ScoreResult,
    UserBehaviorProfile,
)
from personalization.domain.protocols import IPredictor
from personalization.features.feature_engineering import (
    BehaviorVectorizer,
    CompactBehaviorVectorizer,
    ContentVectorizer,
    TextVectorizer,
)


ENGAGEMENT_LABELS = LabelSet(("low", "medium", "high"))
PERFORMANCE_LABELS = LabelSet(("low", "medium", "high"))
TREND_LABELS = LabelSet(("declining", "stable", "rising"))
ACTION_LABELS = LabelSet(("view", "like", "share"))
RELEVANCE_LABELS = LabelSet(("irrelevant", "relevant"))


class _ProfileContentAnalyzer(RealtimeAnalyzer):
    """Behavior vector followed by content vector."""

    def __init__(
        self,
        predictor: IPredictor,
        behavior: BehaviorVectorizer | None = None,
        content: ContentVectorizer | None = None,
    ) -> None:
        super().__init__(predictor)
        self.behavior = behavior or BehaviorVectorizer()
        self.content = content or ContentVectorizer()

    @property
    def dimension(self) -> int:
        return self.behavior.dimension + self.content.dimension

    def vectorize(
        self,
        profile: UserBehaviorProfile,
        content: ContentItem,
        now: datetime | None = None,
    ) -> FeatureVector:
        return self.behavior.vectorize(profile, now).concat(self.content.vectorize(content, now))


class _TextProfileAnalyzer(RealtimeAnalyzer):
    """Text vector followed by compact behavior vector."""

    def __init__(
        self,
        predictor: IPredictor,
        text: TextVectorizer | None = None,
        behavior: CompactBehaviorVectorizer | None = None,
    ) -> None:
        super().__init__(predictor)
        self.text = text or TextVectorizer()
        self.behavior = behavior or CompactBehaviorVectorizer()

    @property
    def dimension(self) -> int:
        return self.text.dimension + self.behavior.dimension

    def vectorize(
        self,
        profile: UserBehaviorProfile,
        content: ContentItem,
        now: datetime | None = None,
    ) -> FeatureVector:
        return self.text.vectorize(content, now).concat(self.behavior.vectorize(profile, now))


class BehaviorAnalyzer(_ProfileContentAnalyzer):
    """Predicts how strongly a user will engage with an item."""

    name = "behavior"
    label_set = ENGAGEMENT_LABELS

    def details(self, profile, content, result: ScoreResult) -> dict[str, Any]:
        return {
            "engagement_level": result.label,
            "score": result.confidence * 100,
        }


class InteractionAnalyzer(_ProfileContentAnalyzer):
    """Ranks the interactions a user is most likely to perform on an item."""

    name = "interaction"
    label_set = ACTION_LABELS

    def details(self, profile, content, result: ScoreResult) -> dict[str, Any]:
        ranked = sorted(result.scores.items(), key=lambda kv: kv[1], reverse=True)
        return {
            "recommendations": [
                {"action": action, "score": score * 100} for action, score in ranked
            ],
        }


class PersonalizationAnalyzer(_ProfileContentAnalyzer):
    """Scores how relevant an item is to a user and ranks cached content."""

    name = "personalization"
    label_set = RELEVANCE_LABELS
    ranking_label = "relevant"

    def details(self, profile, content, result: ScoreResult) -> dict[str, Any]:
        return {"relevance": result.scores[self.ranking_label] * 100}


class ContentOptimizationAnalyzer(_TextProfileAnalyzer):
    """Predicts how well an item's text performs for a user, with suggestions."""

    name = "content_optimization"
    label_set = PERFORMANCE_LABELS

    def details(self, profile, content, result: ScoreResult) -> dict[str, Any]:
        return {
            "performance": result.label,
            "suggestions": self.suggestions(result.label, profile),
        }

    @staticmethod
    def suggestions(performance: str, profile: UserBehaviorProfile) -> list[str]:
        if performance == "low":
            tips = ["Add more engaging keywords."]
            if profile.selected_categories:
                interests = ", ".join(profile.selected_categories)
                tips.append(f"Tailor the content to the user's interests ({interests}).")
            return tips
        if performance == "medium":
            return [
                "Enrich the content with images or video.",
                "Add calls to action to drive more interaction.",
            ]
        return []


class TrendAnalyzer(_TextProfileAnalyzer):
    """Classifies the trend direction of an item for a user's audience."""

    name = "trend"
    label_set = TREND_LABELS

    def details(self, profile, content, result: ScoreResult) -> dict[str, Any]:
        return {
            "trend": result.label,
            "popularity_score": result.confidence * 100,
            "related_topics": self.related_topics(content.body),
        }

    @staticmethod
    def related_topics(text: str, limit: int = 3) -> list[str]:
        lowered = (text or "").lower()
        return [topic for topic in CATEGORIES if topic.lower() in lowered][:limit]
