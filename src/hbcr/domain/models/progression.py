from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Union


MIN_CLASS_LEVEL = 1
MAX_CLASS_LEVEL = 12
SLOT_LEVELS: tuple[int, ...] = (1, 2, 3, 4, 5, 6)

CHOICE_GRANT_TYPES: tuple[str, ...] = ("choice", "spell_choice", "subclass_pick")
SPELLCASTING_KINDS: tuple[str, ...] = ("prepared", "known", "pact", "half", "third", "none")


def _frozen_mapping(values: Mapping[Any, Any] | None) -> Mapping[Any, Any]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class FeatureGrant:
    id: str
    name: str
    text: str | None = None
    grant_type: str = field(default="feature", init=False)


@dataclass(frozen=True)
class ChoiceOption:
    id: str
    name: str


@dataclass(frozen=True)
class ChoiceGrant:
    """A decision point. ``grant_type`` is ``choice``, ``spell_choice`` or ``subclass_pick``."""

    id: str | None
    prompt: str
    count: int = 1
    options: tuple[ChoiceOption, ...] = ()
    rules: Mapping[str, Any] = field(default_factory=lambda: _frozen_mapping(None))
    grant_type: str = "choice"

    def __post_init__(self) -> None:
        if self.grant_type not in CHOICE_GRANT_TYPES:
            raise ValueError(f"Unsupported choice grant type: {self.grant_type}")
        object.__setattr__(self, "options", tuple(self.options))
        object.__setattr__(self, "rules", _frozen_mapping(self.rules))


@dataclass(frozen=True)
class FeatGateGrant:
    level: int
    grant_type: str = field(default="asi_or_feat_gate", init=False)


@dataclass(frozen=True)
class UnknownGrant:
    grant_type: str
    payload: Mapping[str, Any] = field(default_factory=lambda: _frozen_mapping(None))

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", _frozen_mapping(self.payload))


Grant = Union[FeatureGrant, ChoiceGrant, FeatGateGrant, UnknownGrant]


@dataclass(frozen=True)
class SubclassPick:
    pick_level: int
    options: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", tuple(self.options))


@dataclass(frozen=True)
class Spellcasting:
    """Per-class spellcasting tables keyed by class level.

    ``slots_by_level`` rows list slot counts for slot levels 1..6. Pact slots live in
    their own pair of tables and refresh on a short rest.
    """

    kind: str = "none"
    ability: str | None = None
    slots_by_level: Mapping[int, tuple[int, ...]] | None = None
    cantrips_known_by_level: Mapping[int, int] | None = None
    spells_known_by_level: Mapping[int, int] | None = None
    pact_slots_by_level: Mapping[int, int] | None = None
    pact_slot_level_by_level: Mapping[int, int] | None = None

    def __post_init__(self) -> None:
        if self.slots_by_level is not None:
            rows = {int(level): tuple(int(value or 0) for value in row) for level, row in self.slots_by_level.items()}
            object.__setattr__(self, "slots_by_level", MappingProxyType(rows))
        for name in (
            "cantrips_known_by_level",
            "spells_known_by_level",
            "pact_slots_by_level",
            "pact_slot_level_by_level",
        ):
            table = getattr(self, name)
            if table is not None:
                object.__setattr__(self, name, MappingProxyType({int(k): int(v or 0) for k, v in table.items()}))


@dataclass(frozen=True)
class ClassProgression:
    class_id: str
    display_name: str
    levels: Mapping[int, tuple[Grant, ...]] = field(default_factory=lambda: _frozen_mapping(None))
    subclass: SubclassPick | None = None
    spellcasting: Spellcasting | None = None

    def __post_init__(self) -> None:
        frozen = {int(level): tuple(grants) for level, grants in (self.levels or {}).items()}
        object.__setattr__(self, "levels", MappingProxyType(frozen))

    def grants_at(self, level: int) -> tuple[Grant, ...]:
        return self.levels.get(int(level), ())


@dataclass(frozen=True)
class SubclassDefinition:
    """Subclass feature names keyed by ordinal (``"1st"`` .. ``"12th"``)."""

    id: str
    name: str
    levels: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: _frozen_mapping(None))

    def __post_init__(self) -> None:
        frozen = {str(ordinal): tuple(names or ()) for ordinal, names in (self.levels or {}).items()}
        object.__setattr__(self, "levels", MappingProxyType(frozen))


SubclassCatalog = Mapping[str, Mapping[str, SubclassDefinition]]
