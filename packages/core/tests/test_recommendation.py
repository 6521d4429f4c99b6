"""Tests for the recommendation engine."""

import pytest

from lexdiff_core.diff import (
    Change,
    ChangeType,
    ImpactAssessment,
    MetadataTarget,
    PreconditionTarget,
    Severity,
    StatuteDiff,
    TitleTarget,
    diff,
)
from lexdiff_core.recommendation import (
    HISTORICAL_PATTERN_THRESHOLD,
    Category,
    Priority,
    Recommendation,
    analyze_and_recommend,
    filter_by_category,
    filter_by_priority,
    sort_by_priority,
)
from lexdiff_core.statute import Age, ComparisonOp, Effect, EffectType, Income, Statute

AGE_18 = Age(ComparisonOp.GREATER_OR_EQUAL, 18)
INCOME_50K = Income(ComparisonOp.LESS_OR_EQUAL, 50000)


def _make_statute(title="Law", effect_type=EffectType.GRANT, preconditions=(AGE_18,), discretion_logic=None):
    return Statute(
        id="law",
        title=title,
        effect=Effect(effect_type, "Benefit"),
        preconditions=preconditions,
        discretion_logic=discretion_logic,
    )


def _make_recommendation(priority=Priority.LOW, category=Category.CLARITY, title="t", confidence=0.5):
    return Recommendation(
        priority=priority,
        category=category,
        title=title,
        description="d",
        rationale="r",
        confidence=confidence,
    )


def _make_diff(*changes, impact=None):
    return StatuteDiff(statute_id="law", changes=changes, impact=impact or ImpactAssessment())


def _modified_title():
    return Change(ChangeType.MODIFIED, TitleTarget(), "Title was modified", "a", "b")


def _titles(recommendations):
    return [r.title for r in recommendations]


class TestRecommendationValue:
    @pytest.mark.parametrize("given,expected", [(1.7, 1.0), (-0.2, 0.0), (0.42, 0.42), (1, 1.0)])
    def test_confidence_clamped(self, given, expected):
        assert _make_recommendation(confidence=given).confidence == expected

    def test_immutable(self):
        rec = _make_recommendation()
        with pytest.raises(AttributeError):
            rec.title = "other"

    def test_priority_total_order(self):
        assert Priority.LOW < Priority.MEDIUM < Priority.HIGH < Priority.CRITICAL


class TestScenarios:
    def test_no_changes_no_recommendations(self):
        statute = _make_statute()
        assert analyze_and_recommend(diff(statute, statute), []) == []

    def test_all_preconditions_removed(self):
        old = _make_statute(preconditions=(AGE_18, INCOME_50K))
        new = _make_statute(preconditions=())
        recs = analyze_and_recommend(diff(old, new), [])

        removed = [r for r in recs if r.title == "Multiple preconditions removed"]
        assert len(removed) == 1
        assert removed[0].priority == Priority.HIGH
        assert removed[0].category == Category.POTENTIAL_ERROR
        assert removed[0].confidence == 0.85
        assert len(removed[0].related_changes) == 2

    def test_effect_changed_without_preconditions(self):
        recs = analyze_and_recommend(diff(_make_statute(), _make_statute(effect_type=EffectType.REVOKE)), [])

        assert len(recs) == 2
        breaking, pitfall = recs
        assert breaking.priority == Priority.HIGH
        assert breaking.category == Category.BEST_PRACTICE
        assert "breaking change" in breaking.title.lower()
        assert breaking.confidence == 0.95
        assert pitfall.priority == Priority.MEDIUM
        assert pitfall.category == Category.POTENTIAL_ERROR
        assert pitfall.title == "Effect changed without precondition review"
        assert pitfall.confidence == 0.75

    def test_effect_change_with_precondition_change_is_not_a_pitfall(self):
        old = _make_statute()
        new = _make_statute(effect_type=EffectType.REVOKE, preconditions=(INCOME_50K,))
        assert "Effect changed without precondition review" not in _titles(analyze_and_recommend(diff(old, new)))


class TestIncompleteChanges:
    def test_title_without_metadata(self):
        recs = analyze_and_recommend(diff(_make_statute(title="Old"), _make_statute(title="New")), [])
        assert len(recs) == 1
        assert recs[0].priority == Priority.MEDIUM
        assert recs[0].category == Category.BEST_PRACTICE
        assert recs[0].confidence == 0.8
        assert recs[0].related_changes == ("Title: Title was modified",)

    def test_title_with_metadata_change(self):
        d = _make_diff(_modified_title(), Change(ChangeType.MODIFIED, MetadataTarget("short_name"), "m", "a", "b"))
        assert analyze_and_recommend(d, []) == []


class TestConsistency:
    def _precondition_diff(self, count):
        changes = [
            Change(ChangeType.MODIFIED, PreconditionTarget(i), f"Precondition {i + 1} was modified")
            for i in range(count)
        ]
        return _make_diff(*changes)

    def test_more_than_three_precondition_changes(self):
        recs = analyze_and_recommend(self._precondition_diff(4), [])
        assert len(recs) == 1
        assert recs[0].priority == Priority.MEDIUM
        assert recs[0].category == Category.CLARITY
        assert recs[0].confidence == 0.7
        assert "4" in recs[0].description

    def test_exactly_three_is_fine(self):
        assert analyze_and_recommend(self._precondition_diff(3), []) == []

    def test_threshold_is_configurable(self):
        assert len(analyze_and_recommend(self._precondition_diff(2), [], consistency_threshold=1)) == 1


class TestBreakingChanges:
    def test_eligibility_and_discretion_both_fire(self):
        impact = ImpactAssessment(severity=Severity.MAJOR, affects_eligibility=True, discretion_changed=True)
        recs = analyze_and_recommend(_make_diff(impact=impact), [])
        assert [(r.priority, r.category) for r in recs] == [
            (Priority.HIGH, Category.BEST_PRACTICE),
            (Priority.HIGH, Category.COMPLIANCE),
        ]
        assert recs[1].confidence == 0.9

    def test_discretion_only(self):
        recs = analyze_and_recommend(diff(_make_statute(), _make_statute(discretion_logic="Officer decides")), [])
        assert _titles(recs) == ["Update decision-maker guidance"]
        assert recs[0].related_changes == ("Discretion Logic: Discretion logic was added",)


class TestHistoricalPatterns:
    def _history(self, modified_count):
        changes = [_modified_title() for _ in range(modified_count)]
        # Spread over several diffs; the frequency table spans all of them.
        return [_make_diff(*changes[:2]), _make_diff(*changes[2:])]

    def test_empty_history_emits_nothing(self):
        d = _make_diff(_modified_title(), Change(ChangeType.MODIFIED, MetadataTarget("k"), "m"))
        assert analyze_and_recommend(d, []) == []

    def test_frequent_type_emits_one_per_matching_change(self):
        d = _make_diff(
            _modified_title(),
            Change(ChangeType.MODIFIED, MetadataTarget("k"), "m"),
            Change(ChangeType.ADDED, MetadataTarget("j"), "a"),
        )
        recs = analyze_and_recommend(d, self._history(HISTORICAL_PATTERN_THRESHOLD + 1))
        patterns = [r for r in recs if r.priority == Priority.LOW]
        assert len(patterns) == 2
        assert all(r.category == Category.BEST_PRACTICE and r.confidence == 0.6 for r in patterns)
        assert "6 times" in patterns[0].description

    def test_threshold_is_strict(self):
        d = _make_diff(_modified_title(), Change(ChangeType.MODIFIED, MetadataTarget("k"), "m"))
        assert analyze_and_recommend(d, self._history(HISTORICAL_PATTERN_THRESHOLD)) == []

    def test_threshold_parameter(self):
        d = _make_diff(_modified_title(), Change(ChangeType.MODIFIED, MetadataTarget("k"), "m"))
        assert len(analyze_and_recommend(d, self._history(2), pattern_threshold=1)) == 2


class TestOrdering:
    def test_rule_groups_concatenate_in_fixed_order(self):
        old = _make_statute(title="Old", preconditions=(AGE_18, INCOME_50K, AGE_18, INCOME_50K, AGE_18))
        new = _make_statute(title="New", preconditions=(), effect_type=EffectType.REVOKE, discretion_logic="x")
        recs = analyze_and_recommend(diff(old, new), [])
        assert _titles(recs) == [
            "Update metadata to reflect title change",
            "Many precondition changes",
            "Document breaking change",
            "Update decision-maker guidance",
            "Multiple preconditions removed",
        ]

    def test_deterministic(self):
        old, new = _make_statute(title="a"), _make_statute(title="b", effect_type=EffectType.REVOKE)
        assert analyze_and_recommend(diff(old, new)) == analyze_and_recommend(diff(old, new))


class TestHelpers:
    def _sample(self):
        return [
            _make_recommendation(Priority.LOW, Category.CLARITY, "a"),
            _make_recommendation(Priority.HIGH, Category.COMPLIANCE, "b"),
            _make_recommendation(Priority.MEDIUM, Category.CLARITY, "c"),
            _make_recommendation(Priority.HIGH, Category.CLARITY, "d"),
            _make_recommendation(Priority.CRITICAL, Category.POTENTIAL_ERROR, "e"),
        ]

    def test_filter_by_priority_is_inclusive(self):
        assert _titles(filter_by_priority(self._sample(), Priority.HIGH)) == ["b", "d", "e"]

    def test_filter_by_category(self):
        assert _titles(filter_by_category(self._sample(), Category.CLARITY)) == ["a", "c", "d"]

    def test_sort_by_priority_is_stable(self):
        assert _titles(sort_by_priority(self._sample())) == ["e", "b", "d", "c", "a"]

    def test_helpers_do_not_mutate_input(self):
        sample = self._sample()
        sort_by_priority(sample)
        filter_by_priority(sample, Priority.CRITICAL)
        assert _titles(sample) == ["a", "b", "c", "d", "e"]
