"""
talentmatch: candidate-to-vacancy matching and ranking.

Pre-filter, vector pre-score, neural rank, batched LLM post-rank and score
fusion, backed by a time-boxed result cache and a job clustering subsystem.
"""

__version__ = "0.1.0"
