"""Grouping of users by behavior profile."""

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

import numpy as np
from sklearn.cluster import KMeans

from personalization.domain.entities import UserBehaviorProfile, utc_now
from personalization.domain.errors import MalformedInput
from personalization.features.feature_engineering import BehaviorVectorizer


@dataclass(frozen=True)
class ClusterAssignment:
    identity: str
    cluster: int


@dataclass
class UserClusterer:
    """K-means over behavior vectors, fitted per request.

    The number of clusters is capped at the number of distinct profiles, so
    small batches still get a valid partition.
    """

    n_clusters: int = 5
    random_state: int = 42
    vectorizer: BehaviorVectorizer | None = None

    def __post_init__(self) -> None:
        if self.n_clusters < 1:
            raise ValueError("n_clusters must be at least 1")
        self.vectorizer = self.vectorizer or BehaviorVectorizer()

    def cluster(
        self,
        profiles: Sequence[UserBehaviorProfile],
        now: datetime | None = None,
    ) -> list[ClusterAssignment]:
        """Assign each profile to a cluster.

        Raises:
            MalformedInput: If no profiles are given
        """
        if not profiles:
            raise MalformedInput("Clustering needs at least one profile")

        now = now or utc_now()
        X = np.vstack([self.vectorizer.vectorize(p, now).features for p in profiles])
        k = min(self.n_clusters, len(np.unique(X, axis=0)))

        model = KMeans(n_clusters=k, random_state=self.random_state, n_init=10)
        labels = model.fit_predict(X)

        return [
            ClusterAssignment(identity=p.identity, cluster=int(label))
            for p, label in zip(profiles, labels)
        ]
