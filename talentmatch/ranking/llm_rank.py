"""
LLM Post-Rank Layer: batched scoring with explanations.

Batches run sequentially with a fixed delay between them to stay under
provider rate limits. A batch that fails (malformed JSON, provider error)
is dropped as a whole; other batches are unaffected.
"""

import asyncio
from typing import Dict, List, Sequence

from ..cache import ResultCache
from ..config import MAX_BATCH_SIZE
from ..errors import MatchingError, ValidationError
from ..logger import get_logger
from ..models import EXPLANATION_UNAVAILABLE, CandidateText, LLMPostRankedCandidate, NeuralRankedCandidate
from ..providers.scorer import LanguageModelScorer
from ..similarity import clamp
from ..storage import Store

logger = get_logger()


def make_batches(items: Sequence, size: int) -> List[list]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class LLMPostRanker:
    """Scores neural-ranked candidates in batches and caches explanations."""

    def __init__(
        self,
        store: Store,
        scorer: LanguageModelScorer,
        cache: ResultCache,
        batch_size: int = 10,
        batch_delay: float = 1.0,
    ):
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
        self.store = store
        self.scorer = scorer
        self.cache = cache
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def _score_batches(
        self, vacancy_id: str, vacancy_text: str, pending: List[CandidateText]
    ) -> Dict[str, float]:
        scores: Dict[str, float] = {}
        batches = make_batches(pending, self.batch_size)

        for index, batch in enumerate(batches):
            if index > 0 and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

            batch_ids = {c.candidate_id for c in batch}
            try:
                results = await self.scorer.score_batch(vacancy_text, batch, max_batch=self.batch_size)
            except MatchingError as e:
                logger.warning(
                    f"LLM batch {index + 1}/{len(batches)} failed, dropping {len(batch)} candidates",
                    vacancy_id=vacancy_id,
                    error=str(e),
                )
                logger.record_failure("llm_post_rank", type(e).__name__)
                continue

            for result in results:
                if result.candidate_id not in batch_ids:
                    logger.debug("Ignoring result for candidate outside batch", candidate_id=result.candidate_id)
                    continue
                if result.candidate_id in scores:
                    continue
                score = clamp(result.llm_score)
                explanation = (result.explanation or "").strip() or EXPLANATION_UNAVAILABLE
                scores[result.candidate_id] = score
                # Blocking SQLite upsert; batches are sequential anyway
                self.cache.put(vacancy_id, result.candidate_id, llm_score=score, explanation=explanation)

        return scores

    async def rank(
        self,
        vacancy_id: str,
        neural_ranked: Sequence[NeuralRankedCandidate],
    ) -> List[LLMPostRankedCandidate]:
        """
        Attach an llm_score to each neural-ranked candidate.

        Candidates whose batch failed are absent from the result.

        Raises:
            NotFoundError: if the vacancy does not exist
            ValidationError: if the vacancy has no job text
        """
        if not neural_ranked:
            return []

        vacancy = self.store.get_vacancy(vacancy_id)
        vacancy_text = (vacancy.job_text or "").strip()
        if not vacancy_text:
            raise ValidationError(f"Vacancy {vacancy_id} has no job text")

        ids = [item.candidate_id for item in neural_ranked]
        cached = self.cache.get_many(vacancy_id, ids, "llm_score")

        candidates = self.store.get_candidates(i for i in ids if i not in cached)
        pending = [
            CandidateText(candidate_id=cid, text=candidates[cid].resume_text.strip())
            for cid in ids
            if cid not in cached and cid in candidates and (candidates[cid].resume_text or "").strip()
        ]

        fresh = await self._score_batches(vacancy_id, vacancy_text, pending) if pending else {}

        ranked: List[LLMPostRankedCandidate] = []
        for item in neural_ranked:
            score = cached.get(item.candidate_id, fresh.get(item.candidate_id))
            if score is None:
                continue
            ranked.append(LLMPostRankedCandidate(
                candidate_id=item.candidate_id,
                pre_score=item.pre_score,
                neural_rank_score=item.neural_rank_score,
                llm_score=score,
            ))

        logger.info(
            f"LLM post-rank scored {len(ranked)}/{len(neural_ranked)} candidates ({len(cached)} cached)",
            vacancy_id=vacancy_id,
        )
        return ranked
