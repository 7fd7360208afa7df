"""Candidate ranking layers and the pipeline that chains them."""

from .fusion import fuse_scores
from .llm_rank import LLMPostRanker
from .neural_rank import NeuralRanker
from .pipeline import MatchingPipeline
from .prefilter import filter_candidates
from .prescore import pre_score_candidates

__all__ = [
    "filter_candidates",
    "pre_score_candidates",
    "NeuralRanker",
    "LLMPostRanker",
    "fuse_scores",
    "MatchingPipeline",
]
