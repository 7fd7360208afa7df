"""
Neural Rank Layer: pairwise language-model scoring of pre-scored candidates.

Calls run concurrently, bounded by a semaphore. Fresh cached scores are
reused; a candidate whose scoring fails is dropped from this layer only.
"""

import asyncio
from typing import List, Optional, Sequence

from ..cache import ResultCache
from ..errors import MatchingError, ValidationError
from ..logger import get_logger
from ..models import NeuralRankedCandidate, PreScoreResult
from ..providers.scorer import LanguageModelScorer
from ..similarity import clamp
from ..storage import Store

logger = get_logger()

NEURAL_RANK_LIMIT = 10


class NeuralRanker:
    """Cross-encoder style ranking of (vacancy text, resume text) pairs."""

    def __init__(
        self,
        store: Store,
        scorer: LanguageModelScorer,
        cache: ResultCache,
        max_concurrency: int = 5,
    ):
        self.store = store
        self.scorer = scorer
        self.cache = cache
        self.max_concurrency = max_concurrency

    async def rank(
        self,
        vacancy_id: str,
        pre_scored: Sequence[PreScoreResult],
        limit: int = NEURAL_RANK_LIMIT,
    ) -> List[NeuralRankedCandidate]:
        """
        Score every pre-scored candidate and return the best `limit`.

        Raises:
            NotFoundError: if the vacancy does not exist
            ValidationError: if the vacancy has no job text
        """
        if not pre_scored:
            return []

        vacancy = self.store.get_vacancy(vacancy_id)
        vacancy_text = (vacancy.job_text or "").strip()
        if not vacancy_text:
            raise ValidationError(f"Vacancy {vacancy_id} has no job text")

        ids = [item.candidate_id for item in pre_scored]
        cached = self.cache.get_many(vacancy_id, ids, "neural_rank_score")
        candidates = self.store.get_candidates(i for i in ids if i not in cached)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def score_one(item: PreScoreResult) -> Optional[NeuralRankedCandidate]:
            if item.candidate_id in cached:
                score = cached[item.candidate_id]
            else:
                candidate = candidates.get(item.candidate_id)
                if candidate is None:
                    logger.warning("Candidate disappeared before neural rank", candidate_id=item.candidate_id)
                    return None
                try:
                    async with semaphore:
                        score = clamp(await self.scorer.score_pair(vacancy_text, candidate.resume_text or ""))
                except MatchingError as e:
                    logger.warning(
                        "Neural rank failed, dropping candidate",
                        vacancy_id=vacancy_id,
                        candidate_id=item.candidate_id,
                        error=str(e),
                    )
                    logger.record_failure("neural_rank", type(e).__name__)
                    return None
                # Store is synchronous SQLite; the upsert blocks the loop briefly
                self.cache.put(vacancy_id, item.candidate_id, neural_rank_score=score)

            return NeuralRankedCandidate(
                candidate_id=item.candidate_id,
                pre_score=item.pre_score,
                neural_rank_score=score,
            )

        scored = await asyncio.gather(*(score_one(item) for item in pre_scored))
        ranked = [item for item in scored if item is not None]
        ranked.sort(key=lambda r: r.neural_rank_score, reverse=True)

        logger.info(
            f"Neural rank scored {len(ranked)}/{len(pre_scored)} candidates ({len(cached)} cached)",
            vacancy_id=vacancy_id,
        )
        return ranked[:limit]
