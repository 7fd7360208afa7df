"""
Pre-Score Layer: vector similarity over the pre-filtered candidates.
"""

from typing import List, Optional, Sequence

from ..errors import ValidationError
from ..logger import get_logger
from ..models import PreScoreResult
from ..similarity import clamp, cosine_similarity
from ..storage import Store
from .prefilter import filter_candidates

logger = get_logger()

META_WEIGHT = 0.35
CONTENT_WEIGHT = 0.65
PRE_SCORE_LIMIT = 50


def compute_pre_score(meta_similarity: float, content_similarity: float, soft_penalty: float) -> float:
    base = META_WEIGHT * meta_similarity + CONTENT_WEIGHT * content_similarity
    return base * (1 - soft_penalty)


def pre_score_candidates(
    store: Store,
    vacancy_id: str,
    limit: int = PRE_SCORE_LIMIT,
    enhanced_embedding: Optional[Sequence[float]] = None,
) -> List[PreScoreResult]:
    """
    Score filtered candidates by embedding similarity and keep the best.

    Args:
        store: Store to read vacancy/candidate vectors from
        vacancy_id: Vacancy to score against
        limit: Maximum results returned (default 50)
        enhanced_embedding: Optional expanded-query vector; only reported as
            enhanced_query_similarity, never folded into pre_score

    Returns:
        Results sorted by pre_score, highest first

    Raises:
        NotFoundError: if the vacancy does not exist
        ValidationError: if the vacancy has no meta/content embedding
    """
    filtered = filter_candidates(store, vacancy_id)
    if not filtered:
        return []

    vacancy = store.get_vacancy(vacancy_id)
    if not vacancy.meta_embedding or not vacancy.content_embedding:
        raise ValidationError(f"Vacancy {vacancy_id} has no embeddings")

    candidates = store.get_candidates(f.candidate_id for f in filtered)

    results: List[PreScoreResult] = []
    skipped = 0
    for item in filtered:
        candidate = candidates.get(item.candidate_id)
        if candidate is None or not candidate.meta_embedding or not candidate.content_embedding:
            skipped += 1
            continue

        try:
            meta = clamp(cosine_similarity(vacancy.meta_embedding, candidate.meta_embedding))
            content = clamp(cosine_similarity(vacancy.content_embedding, candidate.content_embedding))
        except ValueError as e:
            logger.warning("Skipping candidate with mismatched vectors", candidate_id=item.candidate_id, error=str(e))
            skipped += 1
            continue

        enhanced = None
        if enhanced_embedding:
            try:
                enhanced = clamp(cosine_similarity(enhanced_embedding, candidate.content_embedding))
            except ValueError:
                enhanced = None

        results.append(PreScoreResult(
            candidate_id=item.candidate_id,
            meta_similarity=meta,
            content_similarity=content,
            pre_score=compute_pre_score(meta, content, item.soft_penalty),
            enhanced_query_similarity=enhanced,
        ))

    if skipped:
        logger.info(f"Skipped {skipped} candidates without usable embeddings", vacancy_id=vacancy_id)

    results.sort(key=lambda r: r.pre_score, reverse=True)
    return results[:limit]
