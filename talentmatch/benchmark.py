"""
Offline evaluation of the ranking pipeline against labelled shortlists.

A benchmark job holds the candidates a recruiter marked as relevant for a
vacancy. Running it ranks the vacancy through the full pipeline and scores
the returned order with Precision@K, Recall@K, nDCG@K (binary relevance)
and MRR. Every run is stored under a version label so scoring changes can
be compared over time.
"""

import math
from typing import Dict, Sequence

from .errors import MatchingError, StoreError, ValidationError
from .logger import get_logger
from .models import BenchmarkMetrics
from .storage import Store

logger = get_logger()

DEFAULT_VERSION = "v1"


def _hits(ranking: Sequence[str], relevant: set, k: int) -> int:
    return sum(1 for candidate_id in ranking[:k] if candidate_id in relevant)


def precision_at_k(ranking: Sequence[str], ground_truth: Sequence[str], k: int) -> float:
    """Share of the top k slots holding a relevant candidate; empty slots count as misses."""
    return _hits(ranking, set(ground_truth), k) / k


def recall_at_k(ranking: Sequence[str], ground_truth: Sequence[str], k: int) -> float:
    if not ground_truth:
        return 0.0
    return _hits(ranking, set(ground_truth), k) / len(ground_truth)


def dcg_at_k(ranking: Sequence[str], ground_truth: Sequence[str], k: int) -> float:
    relevant = set(ground_truth)
    return sum(
        1.0 / math.log2(position + 1)
        for position, candidate_id in enumerate(ranking[:k], start=1)
        if candidate_id in relevant
    )


def ideal_dcg_at_k(ground_truth: Sequence[str], k: int) -> float:
    return sum(1.0 / math.log2(position + 1) for position in range(1, min(len(ground_truth), k) + 1))


def ndcg_at_k(ranking: Sequence[str], ground_truth: Sequence[str], k: int) -> float:
    ideal = ideal_dcg_at_k(ground_truth, k)
    if ideal == 0:
        return 0.0
    return dcg_at_k(ranking, ground_truth, k) / ideal


def reciprocal_rank(ranking: Sequence[str], ground_truth: Sequence[str]) -> float:
    relevant = set(ground_truth)
    for position, candidate_id in enumerate(ranking, start=1):
        if candidate_id in relevant:
            return 1.0 / position
    return 0.0


def compute_metrics(ranking: Sequence[str], ground_truth: Sequence[str]) -> BenchmarkMetrics:
    """
    Score a ranked list of candidate ids against the relevant ids.

    Args:
        ranking: Candidate ids, best first
        ground_truth: Candidate ids labelled relevant (order ignored)

    Returns:
        BenchmarkMetrics for k = 5 and k = 10 plus MRR
    """
    return BenchmarkMetrics(
        precision_5=precision_at_k(ranking, ground_truth, 5),
        precision_10=precision_at_k(ranking, ground_truth, 10),
        recall_5=recall_at_k(ranking, ground_truth, 5),
        recall_10=recall_at_k(ranking, ground_truth, 10),
        ndcg_5=ndcg_at_k(ranking, ground_truth, 5),
        ndcg_10=ndcg_at_k(ranking, ground_truth, 10),
        mrr=reciprocal_rank(ranking, ground_truth),
        total_relevant_candidates=len(ground_truth),
        total_retrieved_candidates=len(ranking),
    )


async def run_benchmark(
    store: Store, pipeline, vacancy_id: str, version: str = DEFAULT_VERSION
) -> BenchmarkMetrics:
    """
    Rank a benchmark vacancy and record how well the shortlist matches its labels.

    The result row is written best-effort: a store failure is logged and
    the computed metrics are still returned.

    Args:
        store: Store holding benchmark jobs and results
        pipeline: Anything with an async rank(vacancy_id) returning RankedCandidate items
        vacancy_id: Vacancy with a benchmark job
        version: Label of the scoring version being measured

    Raises:
        NotFoundError: if the vacancy has no benchmark job
        ValidationError: if the benchmark job has no relevant candidates
    """
    ground_truth = store.get_benchmark_ground_truth(vacancy_id)
    if not ground_truth:
        raise ValidationError("Ground truth candidates must be a non-empty list")

    ranked = await pipeline.rank(vacancy_id)
    ranking = [r.candidate_id for r in ranked]
    metrics = compute_metrics(ranking, ground_truth)

    try:
        store.add_benchmark_result(
            vacancy_id,
            version,
            details={"system_ranking_count": len(ranking), "ground_truth_count": len(ground_truth)},
            **metrics.to_dict(),
        )
    except StoreError as e:
        logger.error(f"Failed to store benchmark result: {e}", vacancy_id=vacancy_id, version=version)

    logger.info(
        f"Benchmark {vacancy_id} ({version}): P@10={metrics.precision_10:.3f} "
        f"nDCG@10={metrics.ndcg_10:.3f} MRR={metrics.mrr:.3f}",
        retrieved=len(ranking),
        relevant=len(ground_truth),
    )
    return metrics


async def run_all_benchmarks(
    store: Store, pipeline, version: str = DEFAULT_VERSION
) -> Dict[str, BenchmarkMetrics]:
    """
    Run every stored benchmark job in turn, e.g. from a weekly schedule.

    A failing job is logged and skipped; the others still run.

    Returns:
        Metrics keyed by vacancy id, for the jobs that completed
    """
    results: Dict[str, BenchmarkMetrics] = {}
    for vacancy_id in store.list_benchmark_vacancy_ids():
        try:
            results[vacancy_id] = await run_benchmark(store, pipeline, vacancy_id, version=version)
        except MatchingError as e:
            logger.warning(f"Benchmark {vacancy_id} failed: {e}", error_type=type(e).__name__)
            logger.record_failure("benchmark", type(e).__name__)
    logger.info(f"Benchmarks complete: {len(results)} succeeded", version=version)
    return results
