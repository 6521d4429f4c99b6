"""End-to-end change analysis: diff → history lookup → recommendations → history save."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from lexdiff_core.diff import diff, has_breaking_changes
from lexdiff_core.recommendation import Priority, analyze_and_recommend, filter_by_priority
from lexdiff_core.report import print_diff, print_recommendations
from lexdiff_core.statute import load_statute

if TYPE_CHECKING:
    from lexdiff_core.diff import StatuteDiff
    from lexdiff_core.recommendation import Recommendation
    from lexdiff_core.statute import Statute

logger = logging.getLogger(__name__)


@dataclass
class AnalysisSummary:
    """Result of run_analysis: the diff, what to do about it, and how much history informed it."""

    diff: StatuteDiff
    recommendations: list[Recommendation] = field(default_factory=list)
    historical_diffs: int = 0
    breaking: bool = False
    analyzed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def run_analysis(old: Statute, new: Statute, config: dict, store=None, show: bool = False) -> AnalysisSummary:
    """Diff two statute versions and derive recommendations.

    ``store`` is any object with ``list_diffs(statute_id)`` and ``save(diff)``
    (see lexdiff_store). History is read before the new diff is saved, so a
    diff never counts towards its own historical patterns.

    Raises:
        IdMismatchError: if the two versions belong to different statutes.
    """
    result = diff(old, new, include_metadata=config.get("include_metadata", False))

    historical: list[StatuteDiff] = []
    if store is not None:
        historical = store.list_diffs(result.statute_id)
        logger.debug("Loaded %d historical diff(s) for %s", len(historical), result.statute_id)

    recommendations = analyze_and_recommend(
        result,
        historical,
        pattern_threshold=config.get("historical_pattern_threshold", 5),
        consistency_threshold=config.get("consistency_change_threshold", 3),
    )
    min_priority = Priority[str(config.get("min_priority", "low")).upper()]
    recommendations = filter_by_priority(recommendations, min_priority)

    if store is not None and result.changes:
        store.save(result)

    if show:
        print_diff(result)
        print_recommendations(recommendations)

    return AnalysisSummary(
        diff=result,
        recommendations=recommendations,
        historical_diffs=len(historical),
        breaking=has_breaking_changes(result),
    )


def run_analysis_files(old_path: str | Path, new_path: str | Path, config: dict, store=None, show: bool = False):
    """run_analysis() over two statute versions stored as YAML files."""
    return run_analysis(load_statute(old_path), load_statute(new_path), config, store=store, show=show)
