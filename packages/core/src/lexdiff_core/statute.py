"""Minimal statute document model consumed by the diff pipeline.

The pipeline only needs identity, structural equality and positional order
from a statute; it never evaluates a condition. These types exist so that
statute versions can be built in code or loaded from YAML files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

import yaml


class ComparisonOp(str, Enum):
    EQUAL = "=="
    NOT_EQUAL = "!="
    GREATER_THAN = ">"
    GREATER_OR_EQUAL = ">="
    LESS_THAN = "<"
    LESS_OR_EQUAL = "<="


class EffectType(str, Enum):
    GRANT = "GRANT"
    REVOKE = "REVOKE"
    OBLIGATION = "OBLIGATION"
    PROHIBITION = "PROHIBITION"
    MONETARY_TRANSFER = "MONETARY_TRANSFER"
    STATUS_CHANGE = "STATUS_CHANGE"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True)
class Age:
    operator: ComparisonOp
    value: int

    def __str__(self) -> str:
        return f"Age {self.operator.value} {self.value}"


@dataclass(frozen=True)
class Income:
    operator: ComparisonOp
    value: int

    def __str__(self) -> str:
        return f"Income {self.operator.value} {self.value}"


@dataclass(frozen=True)
class ResidencyDuration:
    operator: ComparisonOp
    months: int

    def __str__(self) -> str:
        return f"Residency {self.operator.value} {self.months} months"


@dataclass(frozen=True)
class HasAttribute:
    key: str

    def __str__(self) -> str:
        return f"HasAttribute({self.key})"


@dataclass(frozen=True)
class AttributeEquals:
    key: str
    value: str

    def __str__(self) -> str:
        return f"{self.key} == {self.value!r}"


Condition = Union[Age, Income, ResidencyDuration, HasAttribute, AttributeEquals]


@dataclass(frozen=True)
class Effect:
    """Legal consequence applied when every precondition holds."""

    effect_type: EffectType
    description: str
    parameters: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.effect_type.value}: {self.description}"


@dataclass(frozen=True)
class Statute:
    """One structured legal rule: If preconditions, Then effect, Else-If-Maybe discretion."""

    id: str
    title: str
    effect: Effect
    preconditions: tuple[Condition, ...] = ()
    discretion_logic: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    version: int | None = None

    def __post_init__(self):
        # Accept any sequence but store an immutable, ordered one.
        object.__setattr__(self, "preconditions", tuple(self.preconditions))


_CONDITION_KINDS = {
    "age": lambda d: Age(ComparisonOp(d["operator"]), int(d["value"])),
    "income": lambda d: Income(ComparisonOp(d["operator"]), int(d["value"])),
    "residency": lambda d: ResidencyDuration(ComparisonOp(d["operator"]), int(d["months"])),
    "has_attribute": lambda d: HasAttribute(str(d["key"])),
    "attribute_equals": lambda d: AttributeEquals(str(d["key"]), str(d["value"])),
}


def condition_from_dict(data: dict) -> Condition:
    kind = data.get("kind")
    builder = _CONDITION_KINDS.get(kind)
    if builder is None:
        raise ValueError(f"Unknown condition kind: {kind!r}. Choose one of {sorted(_CONDITION_KINDS)}.")
    try:
        return builder(data)
    except KeyError as e:
        raise ValueError(f"Condition of kind {kind!r} is missing key {e.args[0]!r}") from e


def _optional_str(value) -> str | None:
    return None if value is None else str(value)


def statute_from_dict(data: dict) -> Statute:
    """Build a Statute from a plain mapping (as produced by yaml.safe_load)."""
    for key in ("id", "title", "effect"):
        if key not in data:
            raise ValueError(f"Statute definition is missing required key {key!r}")

    effect_data = data["effect"]
    try:
        effect = Effect(
            effect_type=EffectType(str(effect_data["type"]).upper()),
            description=str(effect_data.get("description", "")),
            parameters={str(k): str(v) for k, v in (effect_data.get("parameters") or {}).items()},
        )
    except KeyError as e:
        raise ValueError(f"Effect definition is missing key {e.args[0]!r}") from e

    return Statute(
        id=str(data["id"]),
        title=str(data["title"]),
        effect=effect,
        preconditions=tuple(condition_from_dict(c) for c in data.get("preconditions") or []),
        discretion_logic=_optional_str(data.get("discretion_logic")),
        metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
        version=None if data.get("version") is None else int(data["version"]),
    )


def load_statute(path: str | Path) -> Statute:
    """Load a single statute version from a YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return statute_from_dict(data)
