"""
Time-boxed result cache over the match_cache table.

Each cached field carries its own write time. A value older than its
field's TTL reads as absent. Cache writes are best-effort: store failures
are logged and swallowed so a ranking run never fails because of the
cache.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Optional

from .errors import StoreError
from .logger import get_logger
from .storage import Store

logger = get_logger()

SCORE_TTL = timedelta(days=7)
EXPLANATION_TTL = timedelta(days=30)

FIELD_TTLS = {
    "neural_rank_score": SCORE_TTL,
    "llm_score": SCORE_TTL,
    "final_score": SCORE_TTL,
    "explanation": EXPLANATION_TTL,
}

FIELD_TIMESTAMPS = {
    "neural_rank_score": "neural_rank_updated_at",
    "llm_score": "llm_updated_at",
    "final_score": "final_updated_at",
    "explanation": "explanation_updated_at",
}

# Written but never read back through a TTL
UNTIMED_FIELDS = {"pre_score"}

LONGEST_TTL = max(FIELD_TTLS.values())


class ResultCache:
    """Per-field TTL reads and upserts for (vacancy, candidate) results."""

    def __init__(self, store: Store, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    def is_fresh(self, field: str, written_at: Optional[datetime]) -> bool:
        if written_at is None:
            return False
        return self.clock() - written_at < FIELD_TTLS[field]

    def get(self, vacancy_id: str, candidate_id: str, field: str) -> Optional[Any]:
        return self.get_many(vacancy_id, [candidate_id], field).get(candidate_id)

    def get_many(
        self, vacancy_id: str, candidate_ids: Iterable[str], field: str
    ) -> Dict[str, Any]:
        """
        Fresh values of one field for several candidates.

        Args:
            vacancy_id: Vacancy the results belong to
            candidate_ids: Candidates to look up
            field: One of neural_rank_score, llm_score, final_score, explanation

        Returns:
            Mapping of candidate_id to value; stale or absent entries are omitted
        """
        if field not in FIELD_TTLS:
            raise ValueError(f"Field {field!r} has no TTL")

        ids = list(candidate_ids)
        try:
            entries = self.store.get_cache_entries(vacancy_id, ids)
        except StoreError as e:
            logger.warning("Cache read failed, treating as miss", vacancy_id=vacancy_id, field=field, error=str(e))
            entries = {}

        fresh = {}
        for candidate_id in ids:
            entry = entries.get(candidate_id)
            value = getattr(entry, field, None) if entry is not None else None
            written_at = getattr(entry, FIELD_TIMESTAMPS[field], None) if entry is not None else None
            if value is not None and self.is_fresh(field, written_at):
                fresh[candidate_id] = value
                logger.record_cache_hit(field)
            else:
                logger.record_cache_miss(field)
        return fresh

    def put(self, vacancy_id: str, candidate_id: str, **values) -> bool:
        """
        Upsert the given fields, stamping each with the current time.

        Returns:
            True if written, False if the store rejected the write
        """
        unknown = set(values) - set(FIELD_TTLS) - UNTIMED_FIELDS
        if unknown:
            raise ValueError(f"Unknown cache fields: {sorted(unknown)}")

        now = self.clock()
        columns = dict(values)
        for field in values:
            if field in FIELD_TIMESTAMPS:
                columns[FIELD_TIMESTAMPS[field]] = now

        try:
            self.store.upsert_cache(vacancy_id, candidate_id, **columns)
        except StoreError as e:
            logger.warning(
                "Cache write failed",
                vacancy_id=vacancy_id,
                candidate_id=candidate_id,
                fields=sorted(values),
                error=str(e),
            )
            return False
        return True
