"""
Matching pipeline orchestration.

Pre-Filter -> Pre-Score (top 50) -> Neural Rank (top 10) ->
LLM Post-Rank -> Fusion.
"""

import asyncio
from typing import List, Optional

from ..cache import ResultCache
from ..config import Settings
from ..errors import MatchingError
from ..logger import get_logger
from ..models import RankedCandidate
from ..providers.scorer import LanguageModelScorer
from ..query_expansion import QueryExpander
from ..storage import Store
from .fusion import fuse_scores
from .llm_rank import LLMPostRanker
from .neural_rank import NEURAL_RANK_LIMIT, NeuralRanker
from .prescore import PRE_SCORE_LIMIT, pre_score_candidates

logger = get_logger()


class MatchingPipeline:
    """Ranks candidates for a vacancy. Providers are injected."""

    def __init__(
        self,
        store: Store,
        scorer: LanguageModelScorer,
        cache: Optional[ResultCache] = None,
        expander: Optional[QueryExpander] = None,
        batch_size: int = 10,
        batch_delay: float = 1.0,
        max_concurrency: int = 5,
        timeout: Optional[float] = None,
    ):
        self.store = store
        self.cache = cache or ResultCache(store)
        self.expander = expander
        self.timeout = timeout
        self.neural_ranker = NeuralRanker(store, scorer, self.cache, max_concurrency=max_concurrency)
        self.llm_ranker = LLMPostRanker(
            store, scorer, self.cache, batch_size=batch_size, batch_delay=batch_delay
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: Store,
        scorer: LanguageModelScorer,
        expander: Optional[QueryExpander] = None,
    ) -> "MatchingPipeline":
        return cls(
            store,
            scorer,
            expander=expander,
            batch_size=settings.batch_size,
            batch_delay=settings.batch_delay,
            max_concurrency=settings.max_concurrency,
            timeout=settings.pipeline_timeout,
        )

    async def _enhanced_embedding(self, vacancy_id: str):
        if self.expander is None:
            return None
        try:
            expanded = await self.expander.get_or_expand(vacancy_id)
        except MatchingError as e:
            logger.warning("No enhanced query for vacancy", vacancy_id=vacancy_id, error=str(e))
            return None
        return expanded.enhanced_embedding

    async def _rank(self, vacancy_id: str) -> List[RankedCandidate]:
        enhanced = await self._enhanced_embedding(vacancy_id)

        pre_scored = pre_score_candidates(
            self.store, vacancy_id, limit=PRE_SCORE_LIMIT, enhanced_embedding=enhanced
        )
        if not pre_scored:
            logger.info("No eligible candidates", vacancy_id=vacancy_id)
            return []

        neural = await self.neural_ranker.rank(vacancy_id, pre_scored, limit=NEURAL_RANK_LIMIT)
        post_ranked = await self.llm_ranker.rank(vacancy_id, neural)
        return fuse_scores(vacancy_id, post_ranked, self.cache)

    async def rank(self, vacancy_id: str) -> List[RankedCandidate]:
        """
        Rank candidates for a vacancy.

        Returns:
            Ranked candidates with explanations, best first. Empty when no
            candidate is eligible or the run exceeded the pipeline timeout.

        Raises:
            NotFoundError: if the vacancy does not exist
            ValidationError: if the vacancy lacks embeddings or job text
        """
        logger.info("Ranking candidates", vacancy_id=vacancy_id)

        if self.timeout is None:
            ranked = await self._rank(vacancy_id)
        else:
            try:
                ranked = await asyncio.wait_for(self._rank(vacancy_id), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Ranking timed out after {self.timeout}s, returning insufficient results",
                    vacancy_id=vacancy_id,
                )
                logger.record_failure("pipeline", "TimeoutError")
                return []

        logger.info(f"Ranked {len(ranked)} candidates", vacancy_id=vacancy_id)
        return ranked
