"""
Tests for database.py - schema and connection management.
"""

from sqlalchemy import inspect
from sqlalchemy.orm import sessionmaker

from talentmatch.database import ExpandedQuery, Vacancy, init_database


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_database_file(self, tmp_path):
        """Test that init_database creates the database file."""
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_creates_tables(self, tmp_path):
        """Every pipeline table exists after init."""
        engine = init_database(tmp_path / "test.db")

        tables = set(inspect(engine).get_table_names())

        assert {
            "vacancies",
            "candidates",
            "match_cache",
            "job_clusters",
            "cluster_properties",
            "job_query_expanded",
            "benchmark_jobs",
            "matching_benchmark_results",
        } <= tables

    def test_init_creates_parent_directories(self, tmp_path):
        """Test that init_database creates parent directories if missing."""
        db_path = tmp_path / "nested" / "dir" / "test.db"
        assert not db_path.parent.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_is_idempotent(self, tmp_path):
        db_path = tmp_path / "test.db"
        init_database(db_path)
        init_database(db_path)


class TestModels:
    """Test column defaults and JSON vectors."""

    def test_vacancy_defaults(self, tmp_path):
        session = sessionmaker(bind=init_database(tmp_path / "test.db"))()

        session.add(Vacancy(id="v1", title="Software Engineer"))
        session.commit()
        vacancy = session.query(Vacancy).one()

        assert vacancy.skills_required == []
        assert vacancy.combined_embedding is None
        assert vacancy.created_at is not None
        session.close()

    def test_missing_vector_is_sql_null(self, tmp_path):
        """An unset embedding must be filterable with IS NULL."""
        session = sessionmaker(bind=init_database(tmp_path / "test.db"))()

        session.add(Vacancy(id="v1", combined_embedding=None))
        session.add(Vacancy(id="v2", combined_embedding=[0.5, 0.5]))
        session.commit()

        missing = session.query(Vacancy.id).filter(Vacancy.combined_embedding.is_(None)).all()

        assert [row[0] for row in missing] == ["v1"]
        session.close()

    def test_expanded_query_source_default(self, tmp_path):
        session = sessionmaker(bind=init_database(tmp_path / "test.db"))()

        session.add(ExpandedQuery(vacancy_id="v1", primary_title="Engineer", industry="Software"))
        session.commit()

        row = session.query(ExpandedQuery).one()
        assert row.source == "llm"
        assert row.alternate_titles == []
        session.close()
