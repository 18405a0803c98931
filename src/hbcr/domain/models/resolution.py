from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from hbcr.domain.models.progression import SLOT_LEVELS, ChoiceOption, FeatureGrant


Selection = Any


def empty_slot_row() -> dict[int, int]:
    return {slot_level: 0 for slot_level in SLOT_LEVELS}


@dataclass(frozen=True)
class ClassEntry:
    class_id: str
    level: int
    subclass_id: str | None = None


@dataclass(frozen=True)
class ResolveInput:
    classes: tuple[ClassEntry, ...] = ()
    selections: Mapping[str, Selection] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "classes", tuple(self.classes))
        object.__setattr__(self, "selections", MappingProxyType(dict(self.selections or {})))


@dataclass(frozen=True)
class PendingChoice:
    id: str
    grant_type: str
    class_id: str
    subclass_id: str | None
    level: int
    prompt: str
    count: int
    remaining: int
    options: tuple[ChoiceOption, ...] = ()
    rules: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.grant_type,
            "classId": self.class_id,
            "subclassId": self.subclass_id,
            "level": self.level,
            "prompt": self.prompt,
            "count": self.count,
            "remaining": self.remaining,
            "options": [{"id": option.id, "name": option.name} for option in self.options],
            "rules": dict(self.rules),
        }


@dataclass(frozen=True)
class SpellSlotPools:
    long_rest: Mapping[int, int] = field(default_factory=lambda: MappingProxyType(empty_slot_row()))
    short_rest: Mapping[int, int] = field(default_factory=lambda: MappingProxyType(empty_slot_row()))

    def __post_init__(self) -> None:
        object.__setattr__(self, "long_rest", MappingProxyType(dict(self.long_rest)))
        object.__setattr__(self, "short_rest", MappingProxyType(dict(self.short_rest)))

    def to_dict(self) -> dict[str, dict[int, int]]:
        return {"longRest": dict(self.long_rest), "shortRest": dict(self.short_rest)}


@dataclass(frozen=True)
class PactSlots:
    slots: int
    slot_level: int


@dataclass(frozen=True)
class SpellcastingSummary:
    kind: str
    ability: str | None = None
    cantrips_known: int | None = None
    spells_known: int | None = None
    long_rest_slots: tuple[int, ...] | None = None
    pact_slots: PactSlots | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "ability": self.ability}
        if self.cantrips_known is not None:
            payload["cantripsKnown"] = self.cantrips_known
        if self.spells_known is not None:
            payload["spellsKnown"] = self.spells_known
        if self.long_rest_slots is not None:
            payload["longRestSlots"] = list(self.long_rest_slots)
        if self.pact_slots is not None:
            payload["pactSlots"] = {"slots": self.pact_slots.slots, "slotLevel": self.pact_slots.slot_level}
        return payload


@dataclass(frozen=True)
class PerClassSummary:
    class_id: str
    level: int
    subclass_id: str | None = None
    display_name: str | None = None
    applied_count: int = 0
    pending_choices: tuple[PendingChoice, ...] = ()
    spell_slots: SpellSlotPools | None = None
    spellcasting: SpellcastingSummary | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {
                "classId": self.class_id,
                "level": self.level,
                "subclassId": self.subclass_id,
                "error": self.error,
            }
        return {
            "classId": self.class_id,
            "level": self.level,
            "subclassId": self.subclass_id,
            "displayName": self.display_name,
            "appliedCount": self.applied_count,
            "pendingChoices": [pending.to_dict() for pending in self.pending_choices],
            "spellSlots": self.spell_slots.to_dict() if self.spell_slots is not None else None,
            "spellcasting": self.spellcasting.to_dict() if self.spellcasting is not None else None,
        }


@dataclass(frozen=True)
class ResolveOutput:
    total_level: int
    features: tuple[FeatureGrant, ...] = ()
    pending_choices: tuple[PendingChoice, ...] = ()
    spell_slots: SpellSlotPools = field(default_factory=SpellSlotPools)
    per_class: tuple[PerClassSummary, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalLevel": self.total_level,
            "features": [_feature_to_dict(feature) for feature in self.features],
            "pendingChoices": [pending.to_dict() for pending in self.pending_choices],
            "spellSlots": self.spell_slots.to_dict(),
            "perClass": [summary.to_dict() for summary in self.per_class],
        }


def _feature_to_dict(feature: FeatureGrant) -> dict[str, Any]:
    payload = {"type": "feature", "id": feature.id, "name": feature.name}
    if feature.text is not None:
        payload["text"] = feature.text
    return payload


def selection_size(selection: Selection) -> int | None:
    """Length of a list-like selection, ``None`` for scalars."""

    if isinstance(selection, Sequence) and not isinstance(selection, (str, bytes)):
        return len(selection)
    if isinstance(selection, (set, frozenset)):
        return len(selection)
    return None


def has_selection(selection: Selection) -> bool:
    """Whether anything was recorded; empty lists and mappings still count as recorded."""

    if selection is None or isinstance(selection, bool):
        return bool(selection)
    if isinstance(selection, (str, int, float)):
        return bool(selection) and selection == selection
    return True
