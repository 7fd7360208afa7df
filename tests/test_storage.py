"""
Tests for the Store repository.
"""

from datetime import datetime, timedelta

import pytest

from talentmatch.database import NOISE_CLUSTER_ID, MatchCache
from talentmatch.errors import NotFoundError, StoreError


class TestVacanciesAndCandidates:
    """Test entity reads and writes."""

    def test_get_vacancy(self, store, add_vacancy):
        add_vacancy("v1", title="Data Engineer")
        assert store.get_vacancy("v1").title == "Data Engineer"

    def test_missing_vacancy(self, store):
        with pytest.raises(NotFoundError):
            store.get_vacancy("missing")

    def test_missing_candidate(self, store):
        with pytest.raises(NotFoundError):
            store.get_candidate("missing")

    def test_add_is_upsert(self, store, add_candidate):
        add_candidate("c1", general_title="Engineer")
        add_candidate("c1", general_title="Senior Engineer")

        assert [c.general_title for c in store.list_candidates()] == ["Senior Engineer"]

    def test_bulk_candidates_skip_unknown(self, store, add_candidate):
        add_candidate("c1")
        add_candidate("c2")

        assert set(store.get_candidates(["c1", "c2", "ghost"])) == {"c1", "c2"}
        assert store.get_candidates([]) == {}

    def test_embedding_queries(self, store, add_vacancy):
        add_vacancy("v1", combined_embedding=[1.0, 0.0])
        add_vacancy("v2")

        assert store.vacancies_with_combined_embedding() == [("v1", [1.0, 0.0])]
        assert store.vacancy_ids_without_combined_embedding() == ["v2"]

    def test_update_embeddings(self, store, add_vacancy):
        add_vacancy("v1")
        store.update_vacancy_embeddings("v1", combined_embedding=[0.2, 0.8])
        assert store.get_vacancy("v1").combined_embedding == [0.2, 0.8]

    def test_update_unknown_embedding_field(self, store, add_vacancy):
        add_vacancy("v1")
        with pytest.raises(ValueError):
            store.update_vacancy_embeddings("v1", resume_embedding=[1.0])


class TestMatchCacheRows:
    """Test partial cache upserts."""

    def test_upsert_touches_only_given_columns(self, store):
        store.upsert_cache("v1", "c1", neural_rank_score=0.7)
        store.upsert_cache("v1", "c1", llm_score=0.9, explanation="Strong")

        entry = store.get_cache_entry("v1", "c1")
        assert entry.neural_rank_score == 0.7
        assert entry.llm_score == 0.9
        assert entry.explanation == "Strong"
        assert store.count_cache_entries() == 1

    def test_upsert_unknown_field(self, store):
        with pytest.raises(ValueError):
            store.upsert_cache("v1", "c1", bonus=0.1)

    def test_entries_scoped_to_vacancy(self, store):
        store.upsert_cache("v1", "c1", pre_score=0.5)
        store.upsert_cache("v2", "c2", pre_score=0.5)

        assert set(store.get_cache_entries("v1", ["c1", "c2"])) == {"c1"}

    def test_delete_older_than(self, store):
        store.upsert_cache("v1", "c1", pre_score=0.5)
        store.upsert_cache("v1", "c2", pre_score=0.5)
        with store.session_scope() as session:
            session.query(MatchCache).filter(MatchCache.candidate_id == "c1").update(
                {"updated_at": datetime.now() - timedelta(days=40)}
            )

        removed = store.delete_cache_older_than(datetime.now() - timedelta(days=30))

        assert removed == 1
        assert store.get_cache_entry("v1", "c1") is None
        assert store.get_cache_entry("v1", "c2") is not None


class TestClusterRows:
    """Test cluster assignment storage."""

    def test_replace_assignments(self, store):
        store.replace_cluster_assignments({"v1": 0, "v2": 0, "v3": NOISE_CLUSTER_ID})
        store.upsert_cluster_properties(0, ["Engineer"], ["python"], ["Software"], job_count=2)

        assert store.get_cluster_members(0) == ["v1", "v2"]
        assert store.get_cluster_id("v3") is None
        assert store.count_noise_vacancies() == 1

        store.replace_cluster_assignments({"v4": 0})

        assert store.get_cluster_members(0) == ["v4"]
        assert store.get_cluster_id("v1") is None
        assert store.get_cluster_properties(0) is None


class TestExpandedQueryRows:
    """Test expanded query storage."""

    def test_upsert_and_update(self, store):
        store.upsert_expanded_query("v1", primary_title="Engineer", industry="Software")
        store.upsert_expanded_query("v1", enhanced_embedding=[0.1, 0.9])

        row = store.get_expanded_query("v1")
        assert row.primary_title == "Engineer"
        assert row.enhanced_embedding == [0.1, 0.9]

    def test_unknown_field(self, store):
        with pytest.raises(ValueError):
            store.upsert_expanded_query("v1", salary="high")


class TestBenchmarkRows:
    """Test ground truth and result persistence."""

    def test_ground_truth_replaced_and_deduplicated(self, store):
        store.set_benchmark_ground_truth("v1", ["c1", "c2"])
        store.set_benchmark_ground_truth("v1", ["c3", "c1", "c3"])

        assert store.get_benchmark_ground_truth("v1") == ["c3", "c1"]
        assert store.list_benchmark_vacancy_ids() == ["v1"]

    def test_missing_ground_truth(self, store):
        with pytest.raises(NotFoundError):
            store.get_benchmark_ground_truth("v1")

    def test_results_filtered_newest_first(self, store):
        store.add_benchmark_result("v1", "v1", mrr=0.5)
        store.add_benchmark_result("v1", "v2", mrr=1.0, details={"ground_truth_count": 2})
        store.add_benchmark_result("v2", "v2", mrr=0.25)

        assert [r.mrr for r in store.list_benchmark_results(vacancy_id="v1")] == [1.0, 0.5]
        assert [r.vacancy_id for r in store.list_benchmark_results(version="v2")] == ["v2", "v1"]
        assert store.list_benchmark_results(vacancy_id="v1", version="v2")[0].details == {"ground_truth_count": 2}


class TestSessionScope:
    """Test error wrapping."""

    def test_database_errors_become_store_errors(self, store):
        with pytest.raises(StoreError):
            # primary_title is NOT NULL
            store.upsert_expanded_query("v1", industry="Software")
