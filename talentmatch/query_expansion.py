"""
Query expansion for vacancies.

A job description is rewritten into a structured query (normalized title,
alternate titles, responsibilities, skill groups, industry, keywords) by
the language model, with a deterministic heuristic as fallback. The
structured query is embedded into an "enhanced" vector and cached per
vacancy.
"""

import re
from typing import List, Optional

from .database import ExpandedQuery
from .errors import MatchingError, ParseError, ValidationError
from .logger import get_logger
from .models import ExpandedQueryData
from .providers.embeddings import EmbeddingProvider
from .providers.scorer import LanguageModelScorer
from .schema import normalize_expanded_query, validate_expanded_query
from .storage import Store

logger = get_logger()

TITLE_SYNONYMS = {
    "engineer": ("Software Engineer", ["Developer", "Programmer", "Coder"]),
    "developer": ("Software Engineer", ["Developer", "Programmer", "Coder"]),
    "manager": ("Manager", ["Lead", "Director", "Head"]),
    "designer": ("Designer", ["Design", "Creative"]),
    "analyst": ("Analyst", ["Analytics", "Data Analyst"]),
}

INDUSTRY_SYNONYMS = {
    "fintech": ("FinTech", ["financial technology", "payments", "banking tech"]),
    "edtech": ("EdTech", ["education technology", "learning platform", "e-learning"]),
    "software": ("Software / SaaS", ["saas", "tech", "technology"]),
    "saas": ("Software / SaaS", ["software", "tech", "technology"]),
}

MAX_KEYWORDS = 10
MAX_RESPONSIBILITIES = 5

_WORD_RE = re.compile(r"[a-z][a-z0-9+#.-]*")
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+|\n+")


def heuristic_expand(text: str) -> ExpandedQueryData:
    """Keyword/synonym expansion used when the language model is unavailable."""
    normalized = (text or "").lower()

    primary_title, alternate_titles = "Other", []
    for term, (title, alternates) in TITLE_SYNONYMS.items():
        if term in normalized:
            primary_title, alternate_titles = title, list(alternates)
            break

    industry, industry_terms = "Other", []
    for term, (name, synonyms) in INDUSTRY_SYNONYMS.items():
        if term in normalized:
            industry, industry_terms = name, list(synonyms)
            break

    keywords: List[str] = []
    for word in _WORD_RE.findall(normalized):
        word = word.rstrip(".-")
        if len(word) > 4 and word not in keywords:
            keywords.append(word)
        if len(keywords) >= MAX_KEYWORDS:
            break

    sentences = [s.strip() for s in _SENTENCE_RE.split(text or "") if s.strip()]

    return ExpandedQueryData(
        primary_title=primary_title,
        industry=industry,
        alternate_titles=alternate_titles,
        core_responsibilities=sentences[:MAX_RESPONSIBILITIES],
        skill_groups=[],
        expanded_keywords=keywords + [t for t in industry_terms if t not in keywords],
        source="heuristic",
    )


class QueryExpander:
    """Lazily expands vacancies and caches the result in the store."""

    def __init__(self, store: Store, scorer: LanguageModelScorer, embedder: EmbeddingProvider):
        self.store = store
        self.scorer = scorer
        self.embedder = embedder

    async def expand_text(self, text: str) -> ExpandedQueryData:
        """Model expansion with heuristic fallback on any provider or parse failure."""
        try:
            raw = await self.scorer.expand(text)
            errors = validate_expanded_query(raw)
            if errors:
                raise ParseError(f"Invalid expanded query: {'; '.join(errors)}")
            return ExpandedQueryData(source="llm", **normalize_expanded_query(raw))
        except MatchingError as e:
            logger.warning("Query expansion failed, using heuristic fallback", error=str(e))
            logger.record_failure("query_expansion", type(e).__name__)
            return heuristic_expand(text)

    async def _embed(self, vacancy_id: str, data: ExpandedQueryData) -> Optional[List[float]]:
        try:
            return await self.embedder.embed(data.embedding_text())
        except MatchingError as e:
            logger.warning("Enhanced embedding failed, storing query without vector", vacancy_id=vacancy_id, error=str(e))
            logger.record_failure("query_expansion", type(e).__name__)
            return None

    async def get_or_expand(self, vacancy_id: str, refresh: bool = False) -> ExpandedQuery:
        """
        Return the cached expanded query for a vacancy, creating it if needed.

        Raises:
            NotFoundError: if the vacancy does not exist
            ValidationError: if the vacancy has no job text
        """
        if not refresh:
            existing = self.store.get_expanded_query(vacancy_id)
            if existing is not None:
                return existing

        vacancy = self.store.get_vacancy(vacancy_id)
        text = (vacancy.job_text or "").strip()
        if not text:
            raise ValidationError(f"Vacancy {vacancy_id} has no job text")

        data = await self.expand_text(text)
        vector = await self._embed(vacancy_id, data)

        self.store.upsert_expanded_query(
            vacancy_id,
            primary_title=data.primary_title,
            alternate_titles=data.alternate_titles,
            core_responsibilities=data.core_responsibilities,
            skill_groups=data.skill_groups,
            industry=data.industry,
            expanded_keywords=data.expanded_keywords,
            enhanced_embedding=vector,
            source=data.source,
        )
        logger.info("Expanded query saved", vacancy_id=vacancy_id, source=data.source, has_vector=vector is not None)
        return self.store.get_expanded_query(vacancy_id)
