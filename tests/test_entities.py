import numpy as np
import pytest

from personalization.domain.entities import (
    FeatureVector,
    LabelSet,
    ScoreResult,
    ScoreUpdate,
    TrainingReport,
)
from personalization.domain.errors import (
    DeliveryFailure,
    MalformedInput,
    NotInitialized,
    PersonalizationError,
    TrainingFailure,
    UnknownAnalyzer,
)


class TestLabelSet:

    def test_one_hot_uses_enumeration_index(self):
        labels = LabelSet(("low", "medium", "high"))
        assert labels.one_hot("high").tolist() == [0.0, 0.0, 1.0]

    def test_unknown_label(self):
        with pytest.raises(ValueError):
            LabelSet(("a", "b")).one_hot("c")

    def test_rejects_degenerate_sets(self):
        with pytest.raises(ValueError):
            LabelSet(("only",))
        with pytest.raises(ValueError):
            LabelSet(("a", "a"))

    def test_decode(self):
        label, confidence = LabelSet(("a", "b", "c")).decode(np.array([0.2, 0.7, 0.1]))
        assert label == "b"
        assert confidence == pytest.approx(0.7)


class TestFeatureVector:

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            FeatureVector(features=np.zeros(3), feature_names=["a", "b"])

    def test_concat_keeps_order(self):
        left = FeatureVector(np.array([1.0]), ["a"])
        right = FeatureVector(np.array([2.0, 3.0]), ["b", "c"])
        combined = left.concat(right)

        assert combined.features.tolist() == [1.0, 2.0, 3.0]
        assert combined.feature_names == ["a", "b", "c"]
        assert combined.dimension == 3


def test_score_update_message():
    result = ScoreResult.from_scores(LabelSet(("low", "high")), np.array([0.25, 0.75]))
    update = ScoreUpdate(
        analyzer="behavior",
        identity="0x1",
        content_id="c1",
        result=result,
        details={"engagement_level": "high"},
    )
    message = update.to_message()

    assert message["event"] == "score-update"
    assert message["identity"] == "0x1"
    assert message["content_id"] == "c1"
    assert message["label"] == "high"
    assert message["scores"] == {"low": 0.25, "high": 0.75}
    assert message["engagement_level"] == "high"


def test_training_report_summary():
    report = TrainingReport(
        model_name="spam",
        train_samples=8,
        validation_samples=2,
        boosting_rounds=10,
        metrics={"accuracy": 0.5},
        dataset_name="inbox",
    )
    summary = report.summary()
    assert "spam" in summary
    assert "inbox" in summary
    assert "accuracy: 0.500000" in summary


@pytest.mark.parametrize(
    "error_cls, status",
    [
        (NotInitialized, 409),
        (MalformedInput, 422),
        (DeliveryFailure, 410),
        (TrainingFailure, 422),
        (UnknownAnalyzer, 404),
    ],
)
def test_error_statuses(error_cls, status):
    error = error_cls("boom")
    assert isinstance(error, PersonalizationError)
    assert error.status == status
    assert str(error) == "boom"


def test_components_satisfy_protocols():
    from personalization.domain.protocols import IDeliveryChannel, IMetric, IPredictor, IVectorizer
    from personalization.features.feature_engineering import BehaviorVectorizer, ContentVectorizer, TextVectorizer
    from personalization.metrics.metrics import create_standard_metrics
    from personalization.models.xgboost_predictor import XGBoostPredictor

    from conftest import FakeChannel

    assert isinstance(XGBoostPredictor(name="x", label_set=LabelSet(("a", "b")), n_features=2), IPredictor)
    for vectorizer in (BehaviorVectorizer(), ContentVectorizer(), TextVectorizer()):
        assert isinstance(vectorizer, IVectorizer)
    for metric in create_standard_metrics():
        assert isinstance(metric, IMetric)
    assert isinstance(FakeChannel(), IDeliveryChannel)
