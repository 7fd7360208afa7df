"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for vacancies, candidates, the match cache,
job clusters, expanded queries and benchmark runs. Embedding vectors
are stored as JSON arrays of floats.
"""

from datetime import datetime
from pathlib import Path
from typing import Union

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()

NOISE_CLUSTER_ID = -1

# None persists as SQL NULL so "has no embedding" is filterable in queries
VECTOR = JSON(none_as_null=True)


class Vacancy(Base):
    """Job opening. Written by upstream collaborators, read by the pipeline."""

    __tablename__ = "vacancies"

    id = Column(String, primary_key=True)
    title = Column(String)
    location = Column(String)
    industry = Column(String)
    skills_required = Column(JSON, nullable=False, default=list)
    job_text = Column(Text)
    meta_embedding = Column(VECTOR)
    content_embedding = Column(VECTOR)
    title_embedding = Column(VECTOR)
    description_embedding = Column(VECTOR)
    combined_embedding = Column(VECTOR)  # average of title and description vectors
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class Candidate(Base):
    """Candidate profile. Read-only from the pipeline's perspective."""

    __tablename__ = "candidates"

    id = Column(String, primary_key=True)
    full_name = Column(String)
    general_title = Column(String)
    location = Column(String)
    industry = Column(String)
    skills = Column(JSON, nullable=False, default=list)
    resume_text = Column(Text)
    meta_embedding = Column(VECTOR)
    content_embedding = Column(VECTOR)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class MatchCache(Base):
    """Cached scores for a (vacancy, candidate) pair, one write time per field."""

    __tablename__ = "match_cache"

    vacancy_id = Column(String, primary_key=True)
    candidate_id = Column(String, primary_key=True)
    pre_score = Column(Float)
    neural_rank_score = Column(Float)
    neural_rank_updated_at = Column(DateTime)
    llm_score = Column(Float)
    llm_updated_at = Column(DateTime)
    explanation = Column(Text)
    explanation_updated_at = Column(DateTime)
    final_score = Column(Float)
    final_updated_at = Column(DateTime)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, index=True)


class JobCluster(Base):
    """Cluster assignment per vacancy. NOISE_CLUSTER_ID marks unclustered vacancies."""

    __tablename__ = "job_clusters"

    vacancy_id = Column(String, primary_key=True)
    cluster_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class ClusterProperties(Base):
    """Representative attributes of one cluster, recomputed on every clustering run."""

    __tablename__ = "cluster_properties"

    cluster_id = Column(Integer, primary_key=True)
    representative_titles = Column(JSON, nullable=False, default=list)  # top 3
    representative_skills = Column(JSON, nullable=False, default=list)  # top 5
    representative_industries = Column(JSON, nullable=False, default=list)  # top 3
    job_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class ExpandedQuery(Base):
    """Structured expansion of a vacancy description plus its enhanced embedding."""

    __tablename__ = "job_query_expanded"

    vacancy_id = Column(String, primary_key=True)
    primary_title = Column(String, nullable=False)
    alternate_titles = Column(JSON, nullable=False, default=list)
    core_responsibilities = Column(JSON, nullable=False, default=list)
    skill_groups = Column(JSON, nullable=False, default=list)
    industry = Column(String, nullable=False)
    expanded_keywords = Column(JSON, nullable=False, default=list)
    enhanced_embedding = Column(VECTOR)
    source = Column(String, nullable=False, default="llm")  # llm | heuristic
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class BenchmarkJob(Base):
    """Hand-labelled shortlist of relevant candidates for one vacancy."""

    __tablename__ = "benchmark_jobs"

    vacancy_id = Column(String, primary_key=True)
    ground_truth_candidates = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class BenchmarkResult(Base):
    """Retrieval metrics of one benchmark run against a BenchmarkJob."""

    __tablename__ = "matching_benchmark_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vacancy_id = Column(String, nullable=False, index=True)
    version = Column(String, nullable=False, index=True)
    precision_5 = Column(Float)
    precision_10 = Column(Float)
    recall_5 = Column(Float)
    recall_10 = Column(Float)
    ndcg_5 = Column(Float)
    ndcg_10 = Column(Float)
    mrr = Column(Float)
    total_relevant_candidates = Column(Integer)
    total_retrieved_candidates = Column(Integer)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON)
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)


def _database_url(db_path: Union[Path, str]) -> str:
    db_path = str(db_path)
    if "://" in db_path:
        return db_path
    return f"sqlite:///{db_path}"


def get_engine(db_path: Union[Path, str]) -> Engine:
    """
    Create an engine for a SQLite file path or a full database URL.

    Args:
        db_path: Path to SQLite database file, or a SQLAlchemy URL
    """
    return create_engine(_database_url(db_path))


def init_database(db_path: Union[Path, str]) -> Engine:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file

    Returns:
        The engine bound to the initialized database
    """
    if "://" not in str(db_path):
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    return engine
