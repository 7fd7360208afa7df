"""
Tests for the pre-filter engine.
"""

import pytest

from talentmatch.errors import NotFoundError
from talentmatch.ranking.prefilter import SOFT_PENALTY, filter_candidates


def _by_id(filtered):
    return {f.candidate_id: f for f in filtered}


class TestSkillFilter:
    """Test required-skill coverage rules."""

    def test_full_match_no_penalty(self, store, add_vacancy, add_candidate):
        add_vacancy("v1")
        add_candidate("c1")

        result = _by_id(filter_candidates(store, "v1"))
        assert result["c1"].soft_penalty == 0.0
        assert result["c1"].reasons == ()

    def test_low_overlap_excluded(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", skills_required=["python", "sql", "docker", "aws", "go"])
        # 2/5 = 0.4
        add_candidate("c1", skills=["python", "sql"])

        assert filter_candidates(store, "v1") == []

    def test_seventy_percent_overlap_penalized(self, store, add_vacancy, add_candidate):
        required = [f"skill{i}" for i in range(10)]
        add_vacancy("v1", skills_required=required)
        add_candidate("c1", skills=required[:7])

        result = _by_id(filter_candidates(store, "v1"))
        assert result["c1"].soft_penalty == SOFT_PENALTY

    def test_sixty_percent_boundary_passes(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", skills_required=["a1", "b2", "c3", "d4", "e5"])
        add_candidate("c1", skills=["a1", "b2", "c3"])

        result = _by_id(filter_candidates(store, "v1"))
        assert result["c1"].soft_penalty == SOFT_PENALTY

    def test_no_required_skills_passes_everyone(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", skills_required=[])
        add_candidate("c1", skills=[])

        result = _by_id(filter_candidates(store, "v1"))
        assert result["c1"].soft_penalty == 0.0


class TestIndustryTitleLocation:
    """Test industry, title and location filters."""

    def test_related_industry_penalized(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", industry="SaaS")
        add_candidate("c1", industry="EdTech")

        result = _by_id(filter_candidates(store, "v1"))
        assert result["c1"].soft_penalty == SOFT_PENALTY
        assert "related industry" in result["c1"].reasons

    def test_unrelated_industry_excluded(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", industry="Banking")
        add_candidate("c1", industry="Retail")

        assert filter_candidates(store, "v1") == []

    def test_missing_industry_not_a_mismatch(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", industry=None)
        add_candidate("c1", industry="Retail")

        assert len(filter_candidates(store, "v1")) == 1

    def test_similar_title_penalized(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", title="Software Engineer")
        add_candidate("c1", general_title="Senior Software Engineer")

        result = _by_id(filter_candidates(store, "v1"))
        assert result["c1"].soft_penalty == SOFT_PENALTY

    def test_unrelated_title_excluded(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", title="Software Engineer")
        add_candidate("c1", general_title="Accountant")

        assert filter_candidates(store, "v1") == []

    def test_far_location_same_continent_penalized(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", location="Germany")
        add_candidate("c1", location="Poland")

        result = _by_id(filter_candidates(store, "v1"))
        assert result["c1"].soft_penalty == SOFT_PENALTY

    def test_far_location_other_continent_excluded(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", location="Germany")
        add_candidate("c1", location="Japan")

        assert filter_candidates(store, "v1") == []

    def test_remote_vacancy_skips_location(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", location="Remote")
        add_candidate("c1", location="Tokyo, Japan")

        result = _by_id(filter_candidates(store, "v1"))
        assert result["c1"].soft_penalty == 0.0

    def test_multiple_soft_reasons_single_penalty(self, store, add_vacancy, add_candidate):
        add_vacancy("v1", industry="SaaS", location="Germany")
        add_candidate("c1", industry="EdTech", location="Poland")

        result = _by_id(filter_candidates(store, "v1"))
        assert result["c1"].soft_penalty == SOFT_PENALTY
        assert len(result["c1"].reasons) == 2


class TestResumeAndErrors:
    """Test empty resume and missing vacancy handling."""

    @pytest.mark.parametrize("resume", [None, "", "   "])
    def test_empty_resume_excluded(self, store, add_vacancy, add_candidate, resume):
        add_vacancy("v1")
        add_candidate("c1", resume_text=resume)

        assert filter_candidates(store, "v1") == []

    def test_missing_vacancy_raises(self, store):
        with pytest.raises(NotFoundError):
            filter_candidates(store, "nope")

    def test_no_candidates(self, store, add_vacancy):
        add_vacancy("v1")
        assert filter_candidates(store, "v1") == []
