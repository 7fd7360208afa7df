"""
Store repository over the SQLAlchemy models.

Responsibilities:
- Reads of vacancies and candidates for the ranking layers.
- Per-field upserts into the match cache.
- Cluster assignment / property persistence.
- Expanded query persistence.
- Benchmark ground truth and result rows.

Non-Responsibilities:
- No scoring, no TTL decisions (see cache.py).

Every SQLAlchemyError is wrapped in StoreError so callers only deal with
the talentmatch error taxonomy.
"""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .database import (
    BenchmarkJob,
    BenchmarkResult,
    Candidate,
    ClusterProperties,
    ExpandedQuery,
    JobCluster,
    MatchCache,
    NOISE_CLUSTER_ID,
    Vacancy,
    init_database,
)
from .errors import NotFoundError, StoreError

CACHE_FIELDS = {
    "pre_score",
    "neural_rank_score",
    "neural_rank_updated_at",
    "llm_score",
    "llm_updated_at",
    "explanation",
    "explanation_updated_at",
    "final_score",
    "final_updated_at",
}

EXPANDED_QUERY_FIELDS = {
    "primary_title",
    "alternate_titles",
    "core_responsibilities",
    "skill_groups",
    "industry",
    "expanded_keywords",
    "enhanced_embedding",
    "source",
}

VACANCY_EMBEDDING_FIELDS = {
    "meta_embedding",
    "content_embedding",
    "title_embedding",
    "description_embedding",
    "combined_embedding",
}


class Store:
    """Synchronous repository. Short transactions, one per call."""

    def __init__(self, db_path: Union[Path, str]):
        self.db_path = db_path
        try:
            self.engine = init_database(db_path)
        except SQLAlchemyError as e:
            raise StoreError(f"Could not initialize database at {db_path}: {e}") from e
        self._Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    @contextmanager
    def session_scope(self):
        """Provide a transactional scope around a series of operations."""
        session = self._Session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(str(e)) from e
        finally:
            session.close()

    def _upsert_insert(self, model):
        if self.engine.dialect.name == "postgresql":
            return pg_insert(model)
        return sqlite_insert(model)

    # Vacancies / candidates

    def add_vacancy(self, vacancy: Vacancy) -> Vacancy:
        with self.session_scope() as session:
            return session.merge(vacancy)

    def add_candidate(self, candidate: Candidate) -> Candidate:
        with self.session_scope() as session:
            return session.merge(candidate)

    def get_vacancy(self, vacancy_id: str) -> Vacancy:
        """
        Load a vacancy by id.

        Raises:
            NotFoundError: if the vacancy does not exist
        """
        with self.session_scope() as session:
            vacancy = session.get(Vacancy, vacancy_id)
        if vacancy is None:
            raise NotFoundError(f"Vacancy {vacancy_id} not found")
        return vacancy

    def get_candidate(self, candidate_id: str) -> Candidate:
        with self.session_scope() as session:
            candidate = session.get(Candidate, candidate_id)
        if candidate is None:
            raise NotFoundError(f"Candidate {candidate_id} not found")
        return candidate

    def list_candidates(self) -> List[Candidate]:
        with self.session_scope() as session:
            return session.query(Candidate).order_by(Candidate.id).all()

    def get_candidates(self, candidate_ids: Iterable[str]) -> Dict[str, Candidate]:
        """Bulk load candidates, keyed by id. Unknown ids are simply absent."""
        ids = list(candidate_ids)
        if not ids:
            return {}
        with self.session_scope() as session:
            rows = session.query(Candidate).filter(Candidate.id.in_(ids)).all()
        return {row.id: row for row in rows}

    def get_vacancies(self, vacancy_ids: Iterable[str]) -> Dict[str, Vacancy]:
        ids = list(vacancy_ids)
        if not ids:
            return {}
        with self.session_scope() as session:
            rows = session.query(Vacancy).filter(Vacancy.id.in_(ids)).all()
        return {row.id: row for row in rows}

    def vacancies_with_combined_embedding(self) -> List[Tuple[str, List[float]]]:
        """Return (vacancy_id, combined_embedding) for every vacancy that has one."""
        with self.session_scope() as session:
            rows = (
                session.query(Vacancy.id, Vacancy.combined_embedding)
                .filter(Vacancy.combined_embedding.isnot(None))
                .order_by(Vacancy.id)
                .all()
            )
        return [(vacancy_id, vector) for vacancy_id, vector in rows if vector]

    def vacancy_ids_without_combined_embedding(self) -> List[str]:
        with self.session_scope() as session:
            rows = (
                session.query(Vacancy.id)
                .filter(Vacancy.combined_embedding.is_(None))
                .order_by(Vacancy.id)
                .all()
            )
        return [row[0] for row in rows]

    def update_vacancy_embeddings(self, vacancy_id: str, **vectors) -> None:
        unknown = set(vectors) - VACANCY_EMBEDDING_FIELDS
        if unknown:
            raise ValueError(f"Unknown embedding fields: {sorted(unknown)}")
        with self.session_scope() as session:
            vacancy = session.get(Vacancy, vacancy_id)
            if vacancy is None:
                raise NotFoundError(f"Vacancy {vacancy_id} not found")
            for field, vector in vectors.items():
                setattr(vacancy, field, vector)

    # Match cache

    def get_cache_entry(self, vacancy_id: str, candidate_id: str) -> Optional[MatchCache]:
        with self.session_scope() as session:
            return session.get(MatchCache, (vacancy_id, candidate_id))

    def get_cache_entries(
        self, vacancy_id: str, candidate_ids: Iterable[str]
    ) -> Dict[str, MatchCache]:
        ids = list(candidate_ids)
        if not ids:
            return {}
        with self.session_scope() as session:
            rows = (
                session.query(MatchCache)
                .filter(MatchCache.vacancy_id == vacancy_id)
                .filter(MatchCache.candidate_id.in_(ids))
                .all()
            )
        return {row.candidate_id: row for row in rows}

    def upsert_cache(self, vacancy_id: str, candidate_id: str, **fields) -> None:
        """
        Insert or update one cache row, touching only the supplied columns.

        Args:
            vacancy_id: Vacancy half of the key
            candidate_id: Candidate half of the key
            **fields: Column values, e.g. llm_score=0.8, llm_updated_at=now
        """
        unknown = set(fields) - CACHE_FIELDS
        if unknown:
            raise ValueError(f"Unknown cache fields: {sorted(unknown)}")

        values = dict(fields)
        values["updated_at"] = datetime.now()

        stmt = self._upsert_insert(MatchCache).values(
            vacancy_id=vacancy_id, candidate_id=candidate_id, **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[MatchCache.vacancy_id, MatchCache.candidate_id],
            set_={name: stmt.excluded[name] for name in values},
        )
        with self.session_scope() as session:
            session.execute(stmt)

    def count_cache_entries(self) -> int:
        with self.session_scope() as session:
            return session.query(MatchCache).count()

    def delete_cache_older_than(self, cutoff: datetime) -> int:
        """Delete cache rows whose newest write predates cutoff. Returns rows removed."""
        with self.session_scope() as session:
            return (
                session.query(MatchCache)
                .filter(MatchCache.updated_at < cutoff)
                .delete(synchronize_session=False)
            )

    # Clusters

    def replace_cluster_assignments(self, assignments: Dict[str, int]) -> None:
        """Drop every prior assignment and property row, then write the new assignments."""
        now = datetime.now()
        with self.session_scope() as session:
            session.query(JobCluster).delete(synchronize_session=False)
            session.query(ClusterProperties).delete(synchronize_session=False)
            session.add_all(
                JobCluster(vacancy_id=vacancy_id, cluster_id=cluster_id, created_at=now)
                for vacancy_id, cluster_id in assignments.items()
            )

    def get_cluster_id(self, vacancy_id: str) -> Optional[int]:
        """Cluster of a vacancy, or None when unclustered or noise."""
        with self.session_scope() as session:
            row = session.get(JobCluster, vacancy_id)
        if row is None or row.cluster_id == NOISE_CLUSTER_ID:
            return None
        return row.cluster_id

    def get_cluster_members(self, cluster_id: int) -> List[str]:
        with self.session_scope() as session:
            rows = (
                session.query(JobCluster.vacancy_id)
                .filter(JobCluster.cluster_id == cluster_id)
                .order_by(JobCluster.vacancy_id)
                .all()
            )
        return [row[0] for row in rows]

    def count_noise_vacancies(self) -> int:
        with self.session_scope() as session:
            return (
                session.query(JobCluster)
                .filter(JobCluster.cluster_id == NOISE_CLUSTER_ID)
                .count()
            )

    def upsert_cluster_properties(
        self,
        cluster_id: int,
        representative_titles: List[str],
        representative_skills: List[str],
        representative_industries: List[str],
        job_count: int,
    ) -> None:
        with self.session_scope() as session:
            props = session.get(ClusterProperties, cluster_id)
            if props is None:
                props = ClusterProperties(cluster_id=cluster_id)
                session.add(props)
            props.representative_titles = representative_titles
            props.representative_skills = representative_skills
            props.representative_industries = representative_industries
            props.job_count = job_count
            props.updated_at = datetime.now()

    def get_cluster_properties(self, cluster_id: int) -> Optional[ClusterProperties]:
        with self.session_scope() as session:
            return session.get(ClusterProperties, cluster_id)

    # Expanded queries

    def get_expanded_query(self, vacancy_id: str) -> Optional[ExpandedQuery]:
        with self.session_scope() as session:
            return session.get(ExpandedQuery, vacancy_id)

    def upsert_expanded_query(self, vacancy_id: str, **fields) -> None:
        unknown = set(fields) - EXPANDED_QUERY_FIELDS
        if unknown:
            raise ValueError(f"Unknown expanded query fields: {sorted(unknown)}")
        with self.session_scope() as session:
            row = session.get(ExpandedQuery, vacancy_id)
            if row is None:
                row = ExpandedQuery(vacancy_id=vacancy_id)
                session.add(row)
            for field, value in fields.items():
                setattr(row, field, value)
            row.updated_at = datetime.now()

    # Benchmarks

    def set_benchmark_ground_truth(self, vacancy_id: str, candidate_ids: List[str]) -> None:
        with self.session_scope() as session:
            row = session.get(BenchmarkJob, vacancy_id)
            if row is None:
                row = BenchmarkJob(vacancy_id=vacancy_id)
                session.add(row)
            row.ground_truth_candidates = list(dict.fromkeys(candidate_ids))
            row.updated_at = datetime.now()

    def get_benchmark_ground_truth(self, vacancy_id: str) -> List[str]:
        """
        Relevant candidate ids labelled for a vacancy.

        Raises:
            NotFoundError: if no benchmark job exists for the vacancy
        """
        with self.session_scope() as session:
            row = session.get(BenchmarkJob, vacancy_id)
        if row is None:
            raise NotFoundError(
                f"Benchmark job not found for vacancy {vacancy_id}. Create one with benchmark-truth first."
            )
        return list(row.ground_truth_candidates or [])

    def list_benchmark_vacancy_ids(self) -> List[str]:
        with self.session_scope() as session:
            rows = (
                session.query(BenchmarkJob.vacancy_id)
                .order_by(BenchmarkJob.created_at, BenchmarkJob.vacancy_id)
                .all()
            )
        return [row[0] for row in rows]

    def add_benchmark_result(self, vacancy_id: str, version: str, **metrics) -> BenchmarkResult:
        with self.session_scope() as session:
            row = BenchmarkResult(vacancy_id=vacancy_id, version=version, **metrics)
            session.add(row)
        return row

    def list_benchmark_results(
        self, vacancy_id: Optional[str] = None, version: Optional[str] = None
    ) -> List[BenchmarkResult]:
        """Benchmark results, newest first, optionally filtered."""
        with self.session_scope() as session:
            query = session.query(BenchmarkResult)
            if vacancy_id is not None:
                query = query.filter(BenchmarkResult.vacancy_id == vacancy_id)
            if version is not None:
                query = query.filter(BenchmarkResult.version == version)
            return query.order_by(BenchmarkResult.created_at.desc(), BenchmarkResult.id.desc()).all()
