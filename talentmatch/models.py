"""
Transient result types passed between ranking layers.

Each layer returns new frozen objects; nothing is mutated in place.
"""

from dataclasses import asdict, dataclass, field
from typing import List, Optional, Tuple

EXPLANATION_UNAVAILABLE = "Explanation unavailable"


@dataclass(frozen=True)
class SoftPenalty:
    """Penalty applied to a candidate that only partially passed a filter."""

    value: float = 0.0
    reasons: Tuple[str, ...] = ()

    def apply(self, value: float, reason: str) -> "SoftPenalty":
        # Last write wins for the value, every reason is kept
        return SoftPenalty(value=value, reasons=self.reasons + (reason,))


@dataclass(frozen=True)
class FilteredCandidate:
    candidate_id: str
    soft_penalty: float = 0.0
    reasons: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PreScoreResult:
    candidate_id: str
    meta_similarity: float
    content_similarity: float
    pre_score: float
    enhanced_query_similarity: Optional[float] = None


@dataclass(frozen=True)
class NeuralRankedCandidate:
    candidate_id: str
    pre_score: float
    neural_rank_score: float


@dataclass(frozen=True)
class LLMPostRankedCandidate:
    candidate_id: str
    pre_score: float
    neural_rank_score: float
    llm_score: float


@dataclass(frozen=True)
class FinalScoredCandidate:
    candidate_id: str
    pre_score: float
    neural_rank_score: float
    llm_score: float
    final_score: float


@dataclass(frozen=True)
class RankedCandidate:
    """One row of the shortlist returned to callers."""

    candidate_id: str
    pre_score: float
    neural_rank_score: float
    llm_score: float
    final_score: float
    explanation: str = EXPLANATION_UNAVAILABLE

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CandidateText:
    """Candidate id plus resume text, as sent to batch scoring."""

    candidate_id: str
    text: str


@dataclass(frozen=True)
class BatchScore:
    candidate_id: str
    llm_score: float
    explanation: str = EXPLANATION_UNAVAILABLE


@dataclass(frozen=True)
class ClusteringSummary:
    cluster_count: int
    noise_count: int


@dataclass(frozen=True)
class SimilarVacancy:
    vacancy_id: str
    similarity: float


@dataclass
class ExpandedQueryData:
    """Structured expansion of a job description."""

    primary_title: str
    industry: str
    alternate_titles: List[str] = field(default_factory=list)
    core_responsibilities: List[str] = field(default_factory=list)
    skill_groups: List[str] = field(default_factory=list)
    expanded_keywords: List[str] = field(default_factory=list)
    source: str = "llm"

    def embedding_text(self) -> str:
        """Text that the enhanced embedding is computed from."""
        parts = [
            self.primary_title,
            " ".join(self.alternate_titles),
            " ".join(self.core_responsibilities),
            " ".join(self.skill_groups),
            self.industry,
            " ".join(self.expanded_keywords),
        ]
        return " ".join(part for part in parts if part)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BenchmarkMetrics:
    """Retrieval quality of one ranked list against a labelled shortlist."""

    precision_5: float
    precision_10: float
    recall_5: float
    recall_10: float
    ndcg_5: float
    ndcg_10: float
    mrr: float
    total_relevant_candidates: int
    total_retrieved_candidates: int

    def to_dict(self) -> dict:
        return asdict(self)
