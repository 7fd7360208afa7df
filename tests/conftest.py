"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

import pytest

from talentmatch.database import Candidate, Vacancy
from talentmatch.errors import ScorerError, ValidationError
from talentmatch.models import BatchScore, CandidateText
from talentmatch.providers.embeddings import EmbeddingProvider
from talentmatch.providers.scorer import LanguageModelScorer
from talentmatch.storage import Store


class Clock:
    """Manually advanced clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeEmbedder(EmbeddingProvider):
    """Returns canned vectors; unknown text gets the default vector."""

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None, default=None, fail: bool = False):
        self.vectors = vectors or {}
        self.default = default if default is not None else [1.0, 0.0, 0.0]
        self.fail = fail
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty for embedding generation")
        self.calls.append(text)
        if self.fail:
            raise ScorerError("embedding service down")
        return list(self.vectors.get(text, self.default))


class FakeScorer(LanguageModelScorer):
    """
    Scripted scorer.

    pair_scores maps resume text to a score; resume texts in fail_pairs
    raise ScorerError. batch_handler receives the batch and returns either
    a list of BatchScore or raises.
    """

    def __init__(
        self,
        pair_scores: Optional[Dict[str, float]] = None,
        default_pair_score: float = 0.5,
        fail_pairs: Sequence[str] = (),
        batch_handler=None,
        expand_result: Any = None,
    ):
        self.pair_scores = pair_scores or {}
        self.default_pair_score = default_pair_score
        self.fail_pairs = set(fail_pairs)
        self.batch_handler = batch_handler
        self.expand_result = expand_result
        self.pair_calls: List[str] = []
        self.batch_calls: List[List[str]] = []
        self.expand_calls: List[str] = []

    async def score_pair(self, text_a: str, text_b: str) -> float:
        self.pair_calls.append(text_b)
        if text_b in self.fail_pairs:
            raise ScorerError(f"scoring failed for {text_b}")
        return self.pair_scores.get(text_b, self.default_pair_score)

    async def score_batch(self, anchor_text: str, candidates: Sequence[CandidateText], max_batch: int = 20):
        self.batch_calls.append([c.candidate_id for c in candidates])
        if self.batch_handler is not None:
            return self.batch_handler(list(candidates))
        return [
            BatchScore(candidate_id=c.candidate_id, llm_score=0.6, explanation=f"Good fit: {c.candidate_id}")
            for c in candidates
        ]

    async def expand(self, text: str) -> Dict[str, Any]:
        self.expand_calls.append(text)
        if isinstance(self.expand_result, Exception):
            raise self.expand_result
        return self.expand_result


@pytest.fixture
def store(tmp_path) -> Store:
    """Store backed by a temporary SQLite file."""
    return Store(tmp_path / "test.db")


@pytest.fixture
def add_vacancy(store):
    """Factory that persists a vacancy with sensible defaults."""
    def _add(vacancy_id: str = "v1", **overrides) -> Vacancy:
        fields = {
            "title": "Software Engineer",
            "location": "Berlin, Germany",
            "industry": "Software",
            "skills_required": ["python", "sql"],
            "job_text": "We need a backend software engineer who writes Python and SQL.",
            "meta_embedding": [1.0, 0.0, 0.0],
            "content_embedding": [0.0, 1.0, 0.0],
        }
        fields.update(overrides)
        return store.add_vacancy(Vacancy(id=vacancy_id, **fields))
    return _add


@pytest.fixture
def add_candidate(store):
    """Factory that persists a candidate that passes the default vacancy's filters."""
    def _add(candidate_id: str, **overrides) -> Candidate:
        fields = {
            "full_name": f"Candidate {candidate_id}",
            "general_title": "Software Engineer",
            "location": "Berlin, Germany",
            "industry": "Software",
            "skills": ["Python", "SQL"],
            "resume_text": f"Resume of {candidate_id}: backend engineer, Python, SQL.",
            "meta_embedding": [1.0, 0.0, 0.0],
            "content_embedding": [0.0, 1.0, 0.0],
        }
        fields.update(overrides)
        return store.add_candidate(Candidate(id=candidate_id, **fields))
    return _add


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_scorer() -> FakeScorer:
    return FakeScorer()


@pytest.fixture
def clock() -> Clock:
    return Clock(datetime(2024, 1, 1, 12, 0, 0))
