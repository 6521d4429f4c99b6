"""Statute diff engine and impact assessment.

diff() compares two versions of the same statute field by field, in a fixed
order (title, preconditions, effect, discretion logic), and returns an
immutable StatuteDiff. Each field step yields the changes it found plus the
impact updates they imply; the overall ImpactAssessment is a left fold of
those updates, so severity can only ever be raised.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from functools import reduce
from typing import TYPE_CHECKING, ClassVar, Sequence, Union

if TYPE_CHECKING:
    from lexdiff_core.statute import Condition, Statute

logger = logging.getLogger(__name__)


class DiffError(Exception):
    """Base class for diff failures."""


class IdMismatchError(DiffError):
    """Raised when asked to compare two statutes that are not versions of the same rule."""

    def __init__(self, old_id: str, new_id: str):
        self.old_id = old_id
        self.new_id = new_id
        super().__init__(f"Cannot compare statutes with different IDs: {old_id} vs {new_id}")


class ChangeType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    REORDERED = "reordered"


class Severity(IntEnum):
    """Ordered impact classification. Only ever raised, never lowered."""

    NONE = 0
    MINOR = 1  # typos, clarifications
    MODERATE = 2  # adjusted thresholds
    MAJOR = 3  # new requirements, different outcomes
    BREAKING = 4  # complete restructure

    def raise_to(self, candidate: Severity) -> Severity:
        return max(self, candidate)


@dataclass(frozen=True)
class TitleTarget:
    kind: ClassVar[str] = "Title"


@dataclass(frozen=True)
class PreconditionTarget:
    index: int
    kind: ClassVar[str] = "Precondition"


@dataclass(frozen=True)
class EffectTarget:
    kind: ClassVar[str] = "Effect"


@dataclass(frozen=True)
class DiscretionLogicTarget:
    kind: ClassVar[str] = "DiscretionLogic"


@dataclass(frozen=True)
class MetadataTarget:
    key: str
    kind: ClassVar[str] = "Metadata"


ChangeTarget = Union[TitleTarget, PreconditionTarget, EffectTarget, DiscretionLogicTarget, MetadataTarget]


def render_target(target: ChangeTarget) -> str:
    match target:
        case TitleTarget():
            return "Title"
        case PreconditionTarget(index=index):
            return f"Precondition #{index + 1}"
        case EffectTarget():
            return "Effect"
        case DiscretionLogicTarget():
            return "Discretion Logic"
        case MetadataTarget(key=key):
            return f"Metadata[{key}]"
    raise TypeError(f"Unknown change target: {target!r}")


def target_to_dict(target: ChangeTarget) -> dict:
    match target:
        case PreconditionTarget(index=index):
            return {"kind": target.kind, "index": index}
        case MetadataTarget(key=key):
            return {"kind": target.kind, "key": key}
        case TitleTarget() | EffectTarget() | DiscretionLogicTarget():
            return {"kind": target.kind}
    raise TypeError(f"Unknown change target: {target!r}")


def target_from_dict(data: dict) -> ChangeTarget:
    match data.get("kind"):
        case "Title":
            return TitleTarget()
        case "Precondition":
            return PreconditionTarget(index=int(data["index"]))
        case "Effect":
            return EffectTarget()
        case "DiscretionLogic":
            return DiscretionLogicTarget()
        case "Metadata":
            return MetadataTarget(key=str(data["key"]))
    raise ValueError(f"Unknown change target kind: {data.get('kind')!r}")


@dataclass(frozen=True)
class Change:
    """One atomic difference between two statute versions."""

    change_type: ChangeType
    target: ChangeTarget
    description: str
    old_value: str | None = None
    new_value: str | None = None


@dataclass(frozen=True)
class ImpactUpdate:
    """Partial impact implied by one discovered change."""

    severity: Severity = Severity.NONE
    affects_eligibility: bool = False
    affects_outcome: bool = False
    discretion_changed: bool = False
    note: str | None = None


@dataclass(frozen=True)
class ImpactAssessment:
    severity: Severity = Severity.NONE
    affects_eligibility: bool = False
    affects_outcome: bool = False
    discretion_changed: bool = False
    notes: tuple[str, ...] = ()

    def combine(self, update: ImpactUpdate) -> ImpactAssessment:
        """Fold one update in: severity by max, flags by OR, notes appended."""
        return ImpactAssessment(
            severity=self.severity.raise_to(update.severity),
            affects_eligibility=self.affects_eligibility or update.affects_eligibility,
            affects_outcome=self.affects_outcome or update.affects_outcome,
            discretion_changed=self.discretion_changed or update.discretion_changed,
            notes=self.notes + ((update.note,) if update.note else ()),
        )


@dataclass(frozen=True)
class VersionInfo:
    old_version: int | None = None
    new_version: int | None = None


@dataclass(frozen=True)
class StatuteDiff:
    statute_id: str
    changes: tuple[Change, ...] = ()
    impact: ImpactAssessment = field(default_factory=ImpactAssessment)
    version_info: VersionInfo | None = None

    def __post_init__(self):
        object.__setattr__(self, "changes", tuple(self.changes))

    def to_dict(self) -> dict:
        return {
            "statute_id": self.statute_id,
            "version_info": (
                {"old_version": self.version_info.old_version, "new_version": self.version_info.new_version}
                if self.version_info
                else None
            ),
            "changes": [
                {
                    "change_type": c.change_type.value,
                    "target": target_to_dict(c.target),
                    "description": c.description,
                    "old_value": c.old_value,
                    "new_value": c.new_value,
                }
                for c in self.changes
            ],
            "impact": {
                "severity": self.impact.severity.name.lower(),
                "affects_eligibility": self.impact.affects_eligibility,
                "affects_outcome": self.impact.affects_outcome,
                "discretion_changed": self.impact.discretion_changed,
                "notes": list(self.impact.notes),
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> StatuteDiff:
        impact = data.get("impact") or {}
        version_info = data.get("version_info")
        return cls(
            statute_id=data["statute_id"],
            version_info=VersionInfo(**version_info) if version_info else None,
            changes=tuple(
                Change(
                    change_type=ChangeType(c["change_type"]),
                    target=target_from_dict(c["target"]),
                    description=c.get("description", ""),
                    old_value=c.get("old_value"),
                    new_value=c.get("new_value"),
                )
                for c in data.get("changes", [])
            ),
            impact=ImpactAssessment(
                severity=Severity[str(impact.get("severity", "none")).upper()],
                affects_eligibility=bool(impact.get("affects_eligibility", False)),
                affects_outcome=bool(impact.get("affects_outcome", False)),
                discretion_changed=bool(impact.get("discretion_changed", False)),
                notes=tuple(impact.get("notes", [])),
            ),
        )


_Step = tuple[list[Change], list[ImpactUpdate]]


def _diff_title(old: Statute, new: Statute) -> _Step:
    if old.title == new.title:
        return [], []
    change = Change(ChangeType.MODIFIED, TitleTarget(), "Title was modified", old.title, new.title)
    return [change], [ImpactUpdate(severity=Severity.MINOR)]


def _diff_preconditions(old: Sequence[Condition], new: Sequence[Condition]) -> _Step:
    changes: list[Change] = []
    updates: list[ImpactUpdate] = []
    old_len, new_len = len(old), len(new)

    if new_len > old_len:
        for i in range(old_len, new_len):
            changes.append(
                Change(
                    ChangeType.ADDED,
                    PreconditionTarget(i),
                    f"New precondition added at position {i + 1}",
                    new_value=str(new[i]),
                )
            )
        updates.append(
            ImpactUpdate(severity=Severity.MAJOR, affects_eligibility=True, note="New eligibility conditions added")
        )
    elif old_len > new_len:
        for i in range(new_len, old_len):
            changes.append(
                Change(
                    ChangeType.REMOVED,
                    PreconditionTarget(i),
                    f"Precondition removed from position {i + 1}",
                    old_value=str(old[i]),
                )
            )
        updates.append(
            ImpactUpdate(severity=Severity.MAJOR, affects_eligibility=True, note="Eligibility conditions removed")
        )

    for i in range(min(old_len, new_len)):
        if old[i] != new[i]:
            changes.append(
                Change(
                    ChangeType.MODIFIED,
                    PreconditionTarget(i),
                    f"Precondition {i + 1} was modified",
                    str(old[i]),
                    str(new[i]),
                )
            )
            updates.append(ImpactUpdate(severity=Severity.MODERATE, affects_eligibility=True))

    return changes, updates


def _diff_effect(old: Statute, new: Statute) -> _Step:
    if old.effect == new.effect:
        return [], []
    change = Change(ChangeType.MODIFIED, EffectTarget(), "Effect was modified", str(old.effect), str(new.effect))
    update = ImpactUpdate(
        severity=Severity.MAJOR,
        affects_outcome=True,
        note="Outcome of statute application changed",
    )
    return [change], [update]


def _diff_discretion(old: Statute, new: Statute) -> _Step:
    match (old.discretion_logic, new.discretion_logic):
        case (None, None):
            return [], []
        case (None, logic):
            change = Change(
                ChangeType.ADDED, DiscretionLogicTarget(), "Discretion logic was added", new_value=str(logic)
            )
            update = ImpactUpdate(Severity.MAJOR, discretion_changed=True, note="Human judgment now required")
        case (logic, None):
            change = Change(
                ChangeType.REMOVED, DiscretionLogicTarget(), "Discretion logic was removed", old_value=str(logic)
            )
            update = ImpactUpdate(
                Severity.MAJOR,
                discretion_changed=True,
                note="Human judgment no longer required - now deterministic",
            )
        case (before, after) if before != after:
            change = Change(
                ChangeType.MODIFIED, DiscretionLogicTarget(), "Discretion logic was modified", str(before), str(after)
            )
            update = ImpactUpdate(Severity.MODERATE, discretion_changed=True)
        case _:
            return [], []
    return [change], [update]


def _diff_metadata(old: Statute, new: Statute) -> _Step:
    changes: list[Change] = []
    for key in sorted(set(old.metadata) | set(new.metadata)):
        before, after = old.metadata.get(key), new.metadata.get(key)
        if before == after:
            continue
        old_value = None if before is None else str(before)
        new_value = None if after is None else str(after)
        if before is None:
            change_type, verb = ChangeType.ADDED, "added"
        elif after is None:
            change_type, verb = ChangeType.REMOVED, "removed"
        else:
            change_type, verb = ChangeType.MODIFIED, "modified"
        changes.append(Change(change_type, MetadataTarget(key), f"Metadata '{key}' was {verb}", old_value, new_value))
    return changes, ([ImpactUpdate(severity=Severity.MINOR)] if changes else [])


def _check_ids(old: Statute, new: Statute) -> None:
    if old.id != new.id:
        raise IdMismatchError(old.id, new.id)


def diff(old: Statute, new: Statute, include_metadata: bool = False) -> StatuteDiff:
    """Compute the diff between two versions of the same statute.

    Changes are reported in a fixed field order: title, preconditions, effect,
    discretion logic (and metadata last, only when include_metadata is set).

    Raises:
        IdMismatchError: if ``old.id != new.id``.
    """
    _check_ids(old, new)

    steps = [
        _diff_title(old, new),
        _diff_preconditions(old.preconditions, new.preconditions),
        _diff_effect(old, new),
        _diff_discretion(old, new),
    ]
    if include_metadata:
        steps.append(_diff_metadata(old, new))

    changes = [change for step_changes, _ in steps for change in step_changes]
    updates = [update for _, step_updates in steps for update in step_updates]
    impact = reduce(ImpactAssessment.combine, updates, ImpactAssessment())

    logger.debug("Diffed statute %s: %d change(s), severity %s", old.id, len(changes), impact.severity.name)
    return StatuteDiff(statute_id=old.id, changes=tuple(changes), impact=impact)


def diff_preconditions_only(old: Statute, new: Statute) -> list[Change]:
    """Compare only the preconditions of two statute versions."""
    _check_ids(old, new)
    changes, _ = _diff_preconditions(old.preconditions, new.preconditions)
    return changes


def diff_effect_only(old: Statute, new: Statute) -> Change | None:
    """Compare only the effect of two statute versions."""
    _check_ids(old, new)
    changes, _ = _diff_effect(old, new)
    return changes[0] if changes else None


def diff_sequence(versions: Sequence[Statute]) -> list[StatuteDiff]:
    """Diff each version against the next: [v1→v2, v2→v3, ...].

    Unlike diff(), each result carries VersionInfo when either side has a version number.
    """
    results = []
    for old, new in zip(versions, versions[1:]):
        result = diff(old, new)
        if old.version is not None or new.version is not None:
            result = replace(result, version_info=VersionInfo(old.version, new.version))
        results.append(result)
    return results


def summarize(diff: StatuteDiff) -> str:
    lines = [
        f"Diff for statute '{diff.statute_id}'",
        f"Severity: {diff.impact.severity.name.lower()}",
        f"Changes: {len(diff.changes)}",
        "",
    ]
    for change in diff.changes:
        lines.append(f"  [{change.change_type.value}] {render_target(change.target)}: {change.description}")

    if diff.impact.notes:
        lines.append("")
        lines.append("Impact notes:")
        lines.extend(f"  - {note}" for note in diff.impact.notes)

    return "\n".join(lines) + "\n"


def filter_changes_by_type(diff: StatuteDiff, change_type: ChangeType) -> list[Change]:
    return [c for c in diff.changes if c.change_type == change_type]


def has_breaking_changes(diff: StatuteDiff) -> bool:
    """True for effect changes, discretion changes, or anything rated MAJOR and above."""
    return diff.impact.severity >= Severity.MAJOR or diff.impact.affects_outcome or diff.impact.discretion_changed


def count_changes_by_target(diff: StatuteDiff) -> dict[str, int]:
    return dict(Counter(change.target.kind for change in diff.changes))


@dataclass(frozen=True)
class DetailedSummary:
    statute_id: str
    overall_confidence: float
    change_count: int
    severity: Severity
    summary_text: str
    change_detection_confidence: float
    impact_assessment_confidence: float
    insights: tuple[str, ...] = ()


def detailed_summary(diff: StatuteDiff) -> DetailedSummary:
    """Summarize a diff with confidence scores and plain-language insights."""
    impact = diff.impact
    change_detection_confidence = 1.0 if not diff.changes else 0.95

    if impact.affects_outcome or impact.affects_eligibility or impact.discretion_changed:
        impact_assessment_confidence = 0.9
    elif impact.severity >= Severity.MODERATE:
        impact_assessment_confidence = 0.85
    elif impact.severity == Severity.MINOR:
        impact_assessment_confidence = 0.8
    else:
        impact_assessment_confidence = 0.95

    insights: list[str] = []
    if impact.affects_eligibility:
        insights.append("This change affects who is eligible for the statute's provisions.")
    if impact.affects_outcome:
        insights.append("This change modifies the outcome or effect of the statute.")
    if impact.discretion_changed:
        insights.append("Discretionary judgment requirements have been modified.")

    counts = Counter(c.change_type for c in diff.changes)
    if counts[ChangeType.ADDED]:
        insights.append(f"{counts[ChangeType.ADDED]} new element(s) added.")
    if counts[ChangeType.REMOVED]:
        insights.append(f"{counts[ChangeType.REMOVED]} element(s) removed.")
    if counts[ChangeType.MODIFIED]:
        insights.append(f"{counts[ChangeType.MODIFIED]} element(s) modified.")

    return DetailedSummary(
        statute_id=diff.statute_id,
        overall_confidence=(change_detection_confidence + impact_assessment_confidence) / 2,
        change_count=len(diff.changes),
        severity=impact.severity,
        summary_text=summarize(diff),
        change_detection_confidence=change_detection_confidence,
        impact_assessment_confidence=impact_assessment_confidence,
        insights=tuple(insights),
    )
