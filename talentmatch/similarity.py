"""
String and vector similarity helpers shared by the filter, scoring and
clustering layers.
"""

import re
from typing import Iterable, List, Optional, Sequence

import numpy as np


def normalize_text(s: Optional[str]) -> str:
    if not s:
        return ""
    return " ".join(s.strip().lower().split())


def string_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Levenshtein similarity, 1 - distance / max(len). 1.0 for equal strings."""
    s1 = normalize_text(a)
    s2 = normalize_text(b)

    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            cost = 0 if c1 == c2 else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current

    return 1 - previous[-1] / max(len(s1), len(s2))


def skill_overlap(required: Sequence[str], offered: Sequence[str]) -> float:
    """
    Fraction of required skills matched by at least one offered skill.

    A match is case-insensitive substring containment in either direction.
    No required skills means a full match.
    """
    required_norm = [normalize_text(s) for s in required or [] if normalize_text(s)]
    if not required_norm:
        return 1.0
    offered_norm = [normalize_text(s) for s in offered or [] if normalize_text(s)]
    if not offered_norm:
        return 0.0

    matches = sum(
        1 for skill in required_norm
        if any(skill in cand or cand in skill for cand in offered_norm)
    )
    return matches / len(required_norm)


TECH_INDUSTRIES = ["edtech", "fintech", "healthtech", "medtech", "saas", "software", "tech"]
FINANCE_INDUSTRIES = ["fintech", "banking", "financial services", "finance", "insurance"]
HEALTH_INDUSTRIES = ["healthtech", "medtech", "healthcare", "pharmaceutical", "pharma", "biotech"]

INDUSTRY_GROUPS = [TECH_INDUSTRIES, FINANCE_INDUSTRIES, HEALTH_INDUSTRIES]


def industries_related(a: Optional[str], b: Optional[str]) -> bool:
    i1 = normalize_text(a)
    i2 = normalize_text(b)
    if i1 == i2:
        return True
    for group in INDUSTRY_GROUPS:
        if any(term in i1 for term in group) and any(term in i2 for term in group):
            return True
    return False


def titles_similar(a: Optional[str], b: Optional[str], threshold: float = 0.6) -> bool:
    t1 = normalize_text(a)
    t2 = normalize_text(b)
    if t1 == t2:
        return True
    if t1 and t2 and (t1 in t2 or t2 in t1):
        return True
    return string_similarity(t1, t2) >= threshold


CONTINENTS = {
    "north_america": ["usa", "united states", "canada", "mexico", "us", "ca", "mx"],
    "europe": [
        "uk", "united kingdom", "germany", "france", "spain", "italy",
        "netherlands", "poland", "sweden", "norway", "denmark", "finland",
    ],
    "asia": [
        "india", "china", "japan", "singapore", "south korea", "korea",
        "thailand", "vietnam", "philippines",
    ],
}


def _mentions(location: str, term: str) -> bool:
    # Whole-word match so "us" does not fire inside "australia"
    return re.search(rf"\b{re.escape(term)}\b", location) is not None


def continents_of(location: Optional[str]) -> set:
    loc = normalize_text(location)
    return {
        name for name, terms in CONTINENTS.items()
        if any(_mentions(loc, term) for term in terms)
    }


def same_continent(a: Optional[str], b: Optional[str]) -> bool:
    """True when both locations share a continent. Remote counts as everywhere."""
    l1 = normalize_text(a)
    l2 = normalize_text(b)
    if "remote" in l1 or "remote" in l2:
        return True
    return bool(continents_of(l1) & continents_of(l2))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"Vector dimensions differ: {a.shape} vs {b.shape}")
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, float(value)))


def cosine_distance_matrix(vectors: Iterable[Sequence[float]]) -> np.ndarray:
    """Pairwise 1 - cosine similarity. Zero vectors are at distance 1 from everything else."""
    matrix = np.asarray(list(vectors), dtype=float)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    safe = np.where(norms == 0, 1.0, norms)
    unit = matrix / safe
    similarity = np.clip(unit @ unit.T, -1.0, 1.0)
    zero = (norms[:, 0] == 0)
    similarity[zero, :] = 0.0
    similarity[:, zero] = 0.0
    distances = 1.0 - similarity
    np.fill_diagonal(distances, 0.0)
    return distances


def average_vectors(vectors: List[Optional[Sequence[float]]]) -> Optional[List[float]]:
    """Element-wise mean of the vectors that are present, or None if none are."""
    present = [v for v in vectors if v]
    if not present:
        return None
    return np.mean(np.asarray(present, dtype=float), axis=0).tolist()
