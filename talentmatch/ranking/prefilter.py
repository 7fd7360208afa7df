"""
Pre-Filter Engine.

Responsibilities:
- Exclude candidates that fail a hard filter (skills, industry, title,
  location, empty resume).
- Attach a soft penalty to candidates that only partially pass.

Non-Responsibilities:
- No similarity scoring.
- No persistence.
"""

from typing import List, Optional

from ..database import Candidate, Vacancy
from ..logger import get_logger
from ..models import FilteredCandidate, SoftPenalty
from ..similarity import (
    industries_related,
    normalize_text,
    same_continent,
    skill_overlap,
    string_similarity,
    titles_similar,
)
from ..storage import Store

logger = get_logger()

SOFT_PENALTY = 0.15
MIN_SKILL_OVERLAP = 0.6
MIN_LOCATION_SIMILARITY = 0.3


def evaluate_candidate(vacancy: Vacancy, candidate: Candidate) -> Optional[SoftPenalty]:
    """
    Apply the filters to one candidate.

    Returns:
        None if the candidate is excluded, otherwise its SoftPenalty
    """
    penalty = SoftPenalty()

    # Skills
    required = vacancy.skills_required or []
    if required:
        overlap = skill_overlap(required, candidate.skills or [])
        if overlap < MIN_SKILL_OVERLAP:
            return None
        if overlap < 1.0:
            penalty = penalty.apply(SOFT_PENALTY, f"partial skill overlap {overlap:.2f}")

    # Industry
    vacancy_industry = normalize_text(vacancy.industry)
    candidate_industry = normalize_text(candidate.industry)
    if vacancy_industry and candidate_industry and vacancy_industry != candidate_industry:
        if not industries_related(vacancy_industry, candidate_industry):
            return None
        penalty = penalty.apply(SOFT_PENALTY, "related industry")

    # Title
    vacancy_title = normalize_text(vacancy.title)
    candidate_title = normalize_text(candidate.general_title)
    if vacancy_title and candidate_title and vacancy_title != candidate_title:
        if not titles_similar(vacancy_title, candidate_title):
            return None
        penalty = penalty.apply(SOFT_PENALTY, "similar title")

    # Location
    vacancy_location = normalize_text(vacancy.location)
    candidate_location = normalize_text(candidate.location)
    is_remote = "remote" in vacancy_location
    if not is_remote and vacancy_location and candidate_location:
        if string_similarity(vacancy_location, candidate_location) < MIN_LOCATION_SIMILARITY:
            if not same_continent(vacancy_location, candidate_location):
                return None
            penalty = penalty.apply(SOFT_PENALTY, "same continent, different location")

    if not candidate.resume_text or not candidate.resume_text.strip():
        return None

    return penalty


def filter_candidates(store: Store, vacancy_id: str) -> List[FilteredCandidate]:
    """
    Return the candidates eligible for a vacancy with their soft penalties.

    Raises:
        NotFoundError: if the vacancy does not exist
    """
    vacancy = store.get_vacancy(vacancy_id)
    candidates = store.list_candidates()

    filtered: List[FilteredCandidate] = []
    for candidate in candidates:
        penalty = evaluate_candidate(vacancy, candidate)
        if penalty is None:
            continue
        if penalty.reasons:
            logger.debug(
                "Soft penalty applied",
                vacancy_id=vacancy_id,
                candidate_id=candidate.id,
                penalty=penalty.value,
                reasons=list(penalty.reasons),
            )
        filtered.append(FilteredCandidate(
            candidate_id=candidate.id,
            soft_penalty=penalty.value,
            reasons=penalty.reasons,
        ))

    logger.info(
        f"Pre-filter kept {len(filtered)}/{len(candidates)} candidates",
        vacancy_id=vacancy_id,
    )
    return filtered
