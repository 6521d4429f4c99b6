"""Rule-based recommendations derived from a statute diff.

analyze_and_recommend() runs five independent rule groups over a StatuteDiff
and concatenates their findings in a fixed order:

    incomplete changes → consistency → breaking changes
        → historical patterns → common pitfalls

The order only exists so that output is reproducible; priority and category
carry the meaning. Callers narrow the result with filter_by_priority() /
filter_by_category() and order it with sort_by_priority(); none of these
helpers mutate their input.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, Sequence

from lexdiff_core.diff import (
    Change,
    ChangeType,
    DiscretionLogicTarget,
    EffectTarget,
    MetadataTarget,
    PreconditionTarget,
    StatuteDiff,
    TitleTarget,
    render_target,
)

logger = logging.getLogger(__name__)

# A change type seen more often than this across historical diffs is a pattern.
HISTORICAL_PATTERN_THRESHOLD = 5
# More precondition changes than this in one diff suggests a rewrite.
CONSISTENCY_CHANGE_THRESHOLD = 3


class Priority(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3


class Category(str, Enum):
    CONSISTENCY = "consistency"
    CLARITY = "clarity"
    COMPLIANCE = "compliance"
    BEST_PRACTICE = "best_practice"
    POTENTIAL_ERROR = "potential_error"
    PERFORMANCE = "performance"


@dataclass(frozen=True)
class Recommendation:
    """An advisory finding about a diff. Confidence is clamped to [0, 1]."""

    priority: Priority
    category: Category
    title: str
    description: str
    rationale: str
    suggested_action: str | None = None
    confidence: float = 1.0
    related_changes: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "confidence", min(1.0, max(0.0, float(self.confidence))))
        object.__setattr__(self, "related_changes", tuple(self.related_changes))


def _describe(change: Change) -> str:
    return f"{render_target(change.target)}: {change.description}"


def _detect_incomplete_changes(diff: StatuteDiff) -> list[Recommendation]:
    title_changes = [c for c in diff.changes if isinstance(c.target, TitleTarget)]
    has_metadata_change = any(isinstance(c.target, MetadataTarget) for c in diff.changes)
    if not title_changes or has_metadata_change:
        return []
    return [
        Recommendation(
            priority=Priority.MEDIUM,
            category=Category.BEST_PRACTICE,
            title="Update metadata to reflect title change",
            description="The statute title changed but none of its metadata did.",
            rationale="Metadata such as short names, citations and index keys usually follow the title.",
            suggested_action="Review the statute metadata and update entries derived from the old title.",
            confidence=0.8,
            related_changes=tuple(_describe(c) for c in title_changes),
        )
    ]


def _check_consistency(diff: StatuteDiff, threshold: int) -> list[Recommendation]:
    precondition_changes = [c for c in diff.changes if isinstance(c.target, PreconditionTarget)]
    if len(precondition_changes) <= threshold:
        return []
    return [
        Recommendation(
            priority=Priority.MEDIUM,
            category=Category.CLARITY,
            title="Many precondition changes",
            description=f"{len(precondition_changes)} precondition changes were made in a single revision.",
            rationale="Large eligibility rewrites are hard to review condition by condition.",
            suggested_action="Consider splitting the revision or adding a summary of the intended eligibility.",
            confidence=0.7,
            related_changes=tuple(_describe(c) for c in precondition_changes),
        )
    ]


def _flag_breaking_changes(diff: StatuteDiff) -> list[Recommendation]:
    impact = diff.impact
    results = []
    if impact.affects_outcome or impact.affects_eligibility:
        affected = [c for c in diff.changes if isinstance(c.target, (EffectTarget, PreconditionTarget))]
        results.append(
            Recommendation(
                priority=Priority.HIGH,
                category=Category.BEST_PRACTICE,
                title="Document breaking change",
                description="This revision changes who is eligible or what the statute grants.",
                rationale="People relying on the previous version need to know how their position changes.",
                suggested_action="Add a change note describing the old and new eligibility and outcome.",
                confidence=0.95,
                related_changes=tuple(_describe(c) for c in affected),
            )
        )
    if impact.discretion_changed:
        results.append(
            Recommendation(
                priority=Priority.HIGH,
                category=Category.COMPLIANCE,
                title="Update decision-maker guidance",
                description="The discretion logic of this statute changed.",
                rationale="Officials applying the statute need current guidance on when judgment is required.",
                suggested_action="Revise the guidance issued to decision makers before the change takes effect.",
                confidence=0.9,
                related_changes=tuple(
                    _describe(c) for c in diff.changes if isinstance(c.target, DiscretionLogicTarget)
                ),
            )
        )
    return results


def _match_historical_patterns(
    diff: StatuteDiff, historical: Sequence[StatuteDiff], threshold: int
) -> list[Recommendation]:
    if not historical:
        return []
    frequency = Counter(change.change_type for past in historical for change in past.changes)
    results = []
    for change in diff.changes:
        seen = frequency[change.change_type]
        if seen <= threshold:
            continue
        results.append(
            Recommendation(
                priority=Priority.LOW,
                category=Category.BEST_PRACTICE,
                title="Recurring change pattern",
                description=(
                    f"'{change.change_type.value}' changes occurred {seen} times in the history of this statute."
                ),
                rationale="Frequent changes of the same kind can indicate an unstable provision.",
                suggested_action="Check whether this provision should be restructured or parameterised.",
                confidence=0.6,
                related_changes=(_describe(change),),
            )
        )
    return results


def _check_common_pitfalls(diff: StatuteDiff) -> list[Recommendation]:
    results = []
    effect_changes = [c for c in diff.changes if isinstance(c.target, EffectTarget)]
    precondition_changes = [c for c in diff.changes if isinstance(c.target, PreconditionTarget)]
    removed = [c for c in precondition_changes if c.change_type == ChangeType.REMOVED]

    if effect_changes and not precondition_changes:
        results.append(
            Recommendation(
                priority=Priority.MEDIUM,
                category=Category.POTENTIAL_ERROR,
                title="Effect changed without precondition review",
                description="The effect changed while every precondition stayed the same.",
                rationale="A new outcome often calls for different eligibility conditions.",
                suggested_action="Confirm the existing preconditions still fit the new effect.",
                confidence=0.75,
                related_changes=tuple(_describe(c) for c in effect_changes),
            )
        )
    if len(removed) > 1:
        results.append(
            Recommendation(
                priority=Priority.HIGH,
                category=Category.POTENTIAL_ERROR,
                title="Multiple preconditions removed",
                description=f"{len(removed)} preconditions were removed in a single revision.",
                rationale="Removing several conditions at once can broaden eligibility far beyond the intent.",
                suggested_action="Verify that the broader eligibility is intended and budgeted for.",
                confidence=0.85,
                related_changes=tuple(_describe(c) for c in removed),
            )
        )
    return results


def analyze_and_recommend(
    diff: StatuteDiff,
    historical: Sequence[StatuteDiff] = (),
    pattern_threshold: int = HISTORICAL_PATTERN_THRESHOLD,
    consistency_threshold: int = CONSISTENCY_CHANGE_THRESHOLD,
) -> list[Recommendation]:
    """Return recommendations for a diff, optionally informed by past diffs of the same statute."""
    recommendations = [
        *_detect_incomplete_changes(diff),
        *_check_consistency(diff, consistency_threshold),
        *_flag_breaking_changes(diff),
        *_match_historical_patterns(diff, historical, pattern_threshold),
        *_check_common_pitfalls(diff),
    ]
    logger.debug("Statute %s: %d recommendation(s)", diff.statute_id, len(recommendations))
    return recommendations


def filter_by_priority(recommendations: Iterable[Recommendation], min_priority: Priority) -> list[Recommendation]:
    return [r for r in recommendations if r.priority >= min_priority]


def filter_by_category(recommendations: Iterable[Recommendation], category: Category) -> list[Recommendation]:
    return [r for r in recommendations if r.category == category]


def sort_by_priority(recommendations: Iterable[Recommendation]) -> list[Recommendation]:
    """Highest priority first; equal priorities keep their emission order."""
    return sorted(recommendations, key=lambda r: r.priority, reverse=True)
