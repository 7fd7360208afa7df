"""
Job clustering.

Vacancies are grouped by the cosine distance of their combined
(title + description) embeddings. Assignments and per-cluster properties
are rebuilt from scratch on every run; unclustered vacancies are stored
with the noise id so "not clustered" and "never clustered" can be told
apart.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict, Iterable, List, Optional

import numpy as np

from .database import NOISE_CLUSTER_ID
from .errors import MatchingError, ValidationError
from .logger import get_logger
from .models import ClusteringSummary, SimilarVacancy
from .providers.embeddings import EmbeddingProvider
from .similarity import average_vectors, cosine_distance_matrix, cosine_similarity
from .storage import Store

logger = get_logger()

DISTANCE_THRESHOLD = 0.3
TOP_TITLES = 3
TOP_SKILLS = 5
TOP_INDUSTRIES = 3
MAX_REINFORCEMENT = 0.1
REINFORCEMENT_PER_JOB = 0.01


class ClusteringAlgorithm(ABC):
    """Assigns a cluster id (or NOISE_CLUSTER_ID) to each row of a distance matrix."""

    @abstractmethod
    def fit(self, distances: np.ndarray, min_cluster_size: int, min_samples: int) -> List[int]:
        raise NotImplementedError


class GreedyDensityGrouping(ClusteringAlgorithm):
    """
    Single-pass grouping: each unvisited point claims every later unvisited
    point closer than the threshold. Groups smaller than min_cluster_size
    become noise. Order-dependent; min_samples is not used.
    """

    def __init__(self, threshold: float = DISTANCE_THRESHOLD):
        self.threshold = threshold

    def fit(self, distances: np.ndarray, min_cluster_size: int, min_samples: int) -> List[int]:
        n = distances.shape[0]
        labels = [NOISE_CLUSTER_ID] * n
        visited = [False] * n
        next_id = 0

        for i in range(n):
            if visited[i]:
                continue
            visited[i] = True
            group = [i]
            for j in range(i + 1, n):
                if not visited[j] and distances[i, j] < self.threshold:
                    group.append(j)
                    visited[j] = True

            if len(group) >= min_cluster_size:
                for idx in group:
                    labels[idx] = next_id
                next_id += 1

        return labels


def top_values(values: Iterable[str], n: int) -> List[str]:
    counts = Counter(v for v in values if v)
    return [value for value, _ in counts.most_common(n)]


def derive_cluster_properties(store: Store, cluster_id: int, member_ids: List[str]) -> None:
    vacancies = list(store.get_vacancies(member_ids).values())
    skills = [skill for v in vacancies for skill in (v.skills_required or [])]
    store.upsert_cluster_properties(
        cluster_id,
        representative_titles=top_values((v.title for v in vacancies), TOP_TITLES),
        representative_skills=top_values(skills, TOP_SKILLS),
        representative_industries=top_values((v.industry for v in vacancies), TOP_INDUSTRIES),
        job_count=len(vacancies),
    )


async def run_clustering(
    store: Store,
    min_cluster_size: int = 5,
    min_samples: int = 2,
    algorithm: Optional[ClusteringAlgorithm] = None,
    cluster_delay: float = 0.0,
) -> ClusteringSummary:
    """
    Cluster every vacancy that has a combined embedding.

    Args:
        store: Store to read vectors from and write assignments to
        min_cluster_size: Smallest group that counts as a cluster
        min_samples: Passed to the algorithm (unused by the greedy pass)
        algorithm: Clustering strategy (default GreedyDensityGrouping)
        cluster_delay: Seconds to wait between cluster property derivations

    Returns:
        ClusteringSummary with cluster and noise counts
    """
    if min_cluster_size < 1:
        raise ValidationError("min_cluster_size must be at least 1")

    algorithm = algorithm or GreedyDensityGrouping()
    rows = store.vacancies_with_combined_embedding()
    if not rows:
        logger.warning("No vacancy vectors found. Run embed-jobs first.")

    ids = [vacancy_id for vacancy_id, _ in rows]
    if len(rows) < min_cluster_size:
        labels = [NOISE_CLUSTER_ID] * len(rows)
    else:
        distances = cosine_distance_matrix(vector for _, vector in rows)
        labels = algorithm.fit(distances, min_cluster_size, min_samples)

    assignments = dict(zip(ids, labels))
    store.replace_cluster_assignments(assignments)

    members: Dict[int, List[str]] = {}
    for vacancy_id, label in assignments.items():
        if label != NOISE_CLUSTER_ID:
            members.setdefault(label, []).append(vacancy_id)

    for index, (cluster_id, member_ids) in enumerate(sorted(members.items())):
        if index > 0 and cluster_delay > 0:
            await asyncio.sleep(cluster_delay)
        derive_cluster_properties(store, cluster_id, member_ids)

    summary = ClusteringSummary(
        cluster_count=len(members),
        noise_count=sum(1 for label in labels if label == NOISE_CLUSTER_ID),
    )
    logger.info(
        f"Clustering complete: {summary.cluster_count} clusters, {summary.noise_count} noise points",
        vacancies=len(rows),
    )
    return summary


def get_similar_vacancies(store: Store, vacancy_id: str, limit: int = 10) -> List[SimilarVacancy]:
    """
    Other vacancies in the same cluster, most similar first.

    Raises:
        NotFoundError: if the vacancy does not exist
    """
    vacancy = store.get_vacancy(vacancy_id)
    cluster_id = store.get_cluster_id(vacancy_id)
    if cluster_id is None:
        return []

    other_ids = [m for m in store.get_cluster_members(cluster_id) if m != vacancy_id]
    others = store.get_vacancies(other_ids)

    similar = []
    for other_id in other_ids:
        other = others.get(other_id)
        score = 0.0
        if other is not None and vacancy.combined_embedding and other.combined_embedding:
            score = cosine_similarity(vacancy.combined_embedding, other.combined_embedding)
        similar.append(SimilarVacancy(vacancy_id=other_id, similarity=score))

    similar.sort(key=lambda s: s.similarity, reverse=True)
    return similar[:limit]


def cluster_reinforcement_score(store: Store, vacancy_id: str, candidate_id: str) -> float:
    """
    Bonus for a candidate on a clustered vacancy, growing with cluster size.

    Only cluster size is considered for now; candidate_id is accepted so
    per-candidate evidence can be added without changing callers.
    """
    cluster_id = store.get_cluster_id(vacancy_id)
    if cluster_id is None:
        return 0.0
    others = [m for m in store.get_cluster_members(cluster_id) if m != vacancy_id]
    return min(MAX_REINFORCEMENT, REINFORCEMENT_PER_JOB * len(others))


async def build_job_embeddings(store: Store, embedder: EmbeddingProvider, vacancy_id: str) -> List[float]:
    """
    Embed a vacancy's title and description and store the averaged vector.

    Raises:
        NotFoundError: if the vacancy does not exist
        ValidationError: if the vacancy has neither title nor job text
    """
    vacancy = store.get_vacancy(vacancy_id)
    title = (vacancy.title or "").strip()
    description = (vacancy.job_text or "").strip()
    if not title and not description:
        raise ValidationError(f"Vacancy {vacancy_id} has neither title nor job text")

    title_vector = await embedder.embed(title) if title else None
    description_vector = await embedder.embed(description) if description else None
    combined = average_vectors([title_vector, description_vector])

    store.update_vacancy_embeddings(
        vacancy_id,
        title_embedding=title_vector,
        description_embedding=description_vector,
        combined_embedding=combined,
    )
    logger.debug("Stored job embeddings", vacancy_id=vacancy_id)
    return combined


async def embed_missing_jobs(store: Store, embedder: EmbeddingProvider, delay: float = 0.0) -> int:
    """Build job embeddings for every vacancy lacking a combined vector. Returns count embedded."""
    embedded = 0
    pending = store.vacancy_ids_without_combined_embedding()
    for index, vacancy_id in enumerate(pending):
        if index > 0 and delay > 0:
            await asyncio.sleep(delay)
        try:
            await build_job_embeddings(store, embedder, vacancy_id)
            embedded += 1
        except MatchingError as e:
            logger.warning("Could not embed vacancy", vacancy_id=vacancy_id, error=str(e))
            logger.record_failure("job_embeddings", type(e).__name__)
    logger.info(f"Embedded {embedded}/{len(pending)} vacancies")
    return embedded
