"""
Fusion & Ranking: weighted combination of the three layer scores.
"""

from typing import List, Sequence

from ..cache import ResultCache
from ..logger import get_logger
from ..models import EXPLANATION_UNAVAILABLE, FinalScoredCandidate, LLMPostRankedCandidate, RankedCandidate

logger = get_logger()

PRE_SCORE_WEIGHT = 0.20
NEURAL_WEIGHT = 0.50
LLM_WEIGHT = 0.30


def compute_final_score(pre_score: float, neural_rank_score: float, llm_score: float) -> float:
    return PRE_SCORE_WEIGHT * pre_score + NEURAL_WEIGHT * neural_rank_score + LLM_WEIGHT * llm_score


def score_candidates(candidates: Sequence[LLMPostRankedCandidate]) -> List[FinalScoredCandidate]:
    """Compute final scores and sort, highest first."""
    scored = [
        FinalScoredCandidate(
            candidate_id=c.candidate_id,
            pre_score=c.pre_score,
            neural_rank_score=c.neural_rank_score,
            llm_score=c.llm_score,
            final_score=compute_final_score(c.pre_score, c.neural_rank_score, c.llm_score),
        )
        for c in candidates
    ]
    scored.sort(key=lambda c: c.final_score, reverse=True)
    return scored


def fuse_scores(
    vacancy_id: str,
    candidates: Sequence[LLMPostRankedCandidate],
    cache: ResultCache,
) -> List[RankedCandidate]:
    """
    Produce the final ranked list with explanations.

    Only pre_score and final_score are written back (best-effort);
    explanations come from the cache and fall back to
    "Explanation unavailable".
    """
    scored = score_candidates(candidates)
    if not scored:
        return []

    failed_writes = 0
    for c in scored:
        # Layer scores keep the write time of the layer that computed them
        written = cache.put(vacancy_id, c.candidate_id, pre_score=c.pre_score, final_score=c.final_score)
        if not written:
            failed_writes += 1
    if failed_writes:
        logger.warning(f"{failed_writes} final scores were not cached", vacancy_id=vacancy_id)

    explanations = cache.get_many(vacancy_id, [c.candidate_id for c in scored], "explanation")

    return [
        RankedCandidate(
            candidate_id=c.candidate_id,
            pre_score=c.pre_score,
            neural_rank_score=c.neural_rank_score,
            llm_score=c.llm_score,
            final_score=c.final_score,
            explanation=explanations.get(c.candidate_id) or EXPLANATION_UNAVAILABLE,
        )
        for c in scored
    ]
