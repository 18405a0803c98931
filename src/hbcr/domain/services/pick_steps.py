from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from hbcr.domain.models.pick_step import (
    LIST_RESTRICTION_ANY,
    LIST_RESTRICTION_CLASS,
    OWNER_TYPE_CLASS,
    OWNER_TYPE_SUBCLASS,
    PickQuota,
    PickStep,
)
from hbcr.domain.models.progression import ClassProgression


_LOGGER = logging.getLogger(__name__)

KIND_ORDER: tuple[str, ...] = (
    "cantrips",
    "spells",
    "metamagic",
    "smites",
    "frontierBallistics",
    "optimizationMatrix",
    "sabotageMatrix",
    "manoeuvres",
    "combatTechniques",
    "elementalFletchings",
    "wildshapes",
    "dragonAncestor",
    "passives",
    "feats",
)

STEP_LABELS: dict[str, str] = {
    "cantrips": "Cantrips",
    "spells": "Spells",
    "spellsAnyList": "Spells (Any List)",
    "feats": "Feats",
    "featOrCrossPassives": "Feat / Cross Passives",
    "classPassives": "Class Passives",
    "passives": "Passives",
    "arcaneThreads": "Arcane Threads",
    "metamagic": "Metamagic",
    "manoeuvres": "Manoeuvres",
    "smites": "Smites",
    "wildshapes": "Wildshapes",
    "frontierBallistics": "Frontier Ballistics",
    "dragonAncestor": "Dragon Ancestor",
    "pactBinding": "Pact Binding",
    "steelforgedFlourishes": "Steelforged Flourishes",
    "combatTechniques": "Combat Techniques",
    "elementalFletchings": "Elemental Fletchings",
    "gatheredSwarm": "Gathered Swarm",
    "optimizationMatrix": "Optimization Matrix",
    "sabotageMatrix": "Sabotage Matrix",
}

_PICK_TYPE_ALIASES: dict[str, tuple[str, ...]] = {
    "cantrips": ("cantrip", "cantrips"),
    "spells": ("spell", "spells"),
    "frontierBallistics": ("frontier_ballistics", "frontierballistics"),
    "smites": ("smite", "smites"),
    "metamagic": ("metamagic", "metamagics"),
    "passives": ("passive", "passives"),
    "feats": ("feat", "feats"),
    "manoeuvres": ("manoeuvre", "manoeuvres", "maneuver", "maneuvers"),
    "combatTechniques": ("combat_technique", "combat_techniques"),
    "elementalFletchings": ("elemental_fletching", "elemental_fletchings", "fletching", "fletchings"),
    "optimizationMatrix": ("optimization_matrix", "optimization_matrices"),
    "sabotageMatrix": ("sabotage_matrix", "sabotage_matrices"),
    "wildshapes": ("wildshape", "wildshapes", "wild_shape", "wild_shapes"),
    "dragonAncestor": ("dragon_ancestor", "draconic_ancestry"),
}
_KIND_BY_PICK_TYPE: dict[str, str] = {
    alias: kind for kind, aliases in _PICK_TYPE_ALIASES.items() for alias in aliases
}
_SEPARATOR_PATTERN = re.compile(r"[\s\-]+")

# Subclass-only casters (Eldritch Knight, Arcane Trickster, ...) are driven by quota rows alone.
CLASS_WIDE_SPELLCASTERS: frozenset[str] = frozenset(
    {"artificer", "bard", "cleric", "druid", "paladin", "ranger", "sorcerer", "warlock", "wizard"}
)


def canonical_pick_kind(pick_type: object) -> str | None:
    """Map a raw Choices pick type (``"Wild Shape"``, ``"cantrip"``, ...) to a step kind."""

    key = _SEPARATOR_PATTERN.sub("_", str(pick_type if pick_type is not None else "").strip().lower())
    return _KIND_BY_PICK_TYPE.get(key)


def step_label(kind: str) -> str:
    return STEP_LABELS.get(kind, kind)


def _kind_rank(kind: str) -> int:
    try:
        return KIND_ORDER.index(kind)
    except ValueError:
        return len(KIND_ORDER)


class ChoiceIndex:
    """Quota rows indexed by ``(owner_type, owner_id, level)``."""

    def __init__(self, quotas: Iterable[PickQuota] = ()) -> None:
        self._by_owner_level: dict[tuple[str, str, int], tuple[PickQuota, ...]] = {}
        grouped: dict[tuple[str, str, int], list[PickQuota]] = {}
        for quota in quotas:
            grouped.setdefault(self._key(quota.owner_type, quota.owner_id, quota.level), []).append(quota)
        for key, rows in grouped.items():
            self._by_owner_level[key] = tuple(rows)

    @classmethod
    def from_rows(cls, rows: Iterable[PickQuota]) -> "ChoiceIndex":
        return cls(rows)

    @staticmethod
    def _key(owner_type: object, owner_id: object, level: int) -> tuple[str, str, int]:
        return (
            str(owner_type or "").strip().lower(),
            str(owner_id or "").strip().lower(),
            int(level),
        )

    def quotas_for(self, owner_type: str, owner_id: str | None, level: int) -> tuple[PickQuota, ...]:
        if not str(owner_id or "").strip():
            return ()
        return self._by_owner_level.get(self._key(owner_type, owner_id, level), ())

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._by_owner_level.values())


@dataclass
class _StepAccumulator:
    need: int = 0
    owner_type: str | None = None
    owner_id: str | None = None
    list_restriction: str | None = None

    def add(self, quota: PickQuota) -> None:
        self.need += max(0, int(quota.count or 0))

        if self.owner_type != OWNER_TYPE_SUBCLASS:
            if quota.owner_type == OWNER_TYPE_SUBCLASS:
                self.owner_type = OWNER_TYPE_SUBCLASS
                self.owner_id = quota.owner_id or None
            elif self.owner_type is None:
                self.owner_type = quota.owner_type or None
                self.owner_id = quota.owner_id or None

        restriction = str(quota.list_restriction or "").strip().lower()
        if restriction == LIST_RESTRICTION_ANY:
            self.list_restriction = LIST_RESTRICTION_ANY
        elif self.list_restriction is None:
            self.list_restriction = restriction or None


def spellcasting_delta(
    class_progressions: Mapping[str, ClassProgression],
    class_id: str,
    class_level: int,
    field_name: str,
) -> int | None:
    """Level-over-level growth of a known-count table, floored at 0."""

    progression = class_progressions.get(class_id)
    spellcasting = progression.spellcasting if progression is not None else None
    table = getattr(spellcasting, field_name, None) if spellcasting is not None else None
    if table is None:
        return None
    now = int(table.get(int(class_level), 0) or 0)
    previous = int(table.get(max(0, int(class_level) - 1), 0) or 0)
    return max(0, now - previous)


def resolve_build_steps(
    class_id: str | None,
    subclass_id: str | None,
    class_level: int,
    *,
    choice_index: ChoiceIndex,
    class_progressions: Mapping[str, ClassProgression] | None = None,
) -> list[PickStep]:
    cid = str(class_id or "").strip().lower()
    sid = str(subclass_id or "").strip()
    try:
        level = int(class_level)
    except (TypeError, ValueError):
        return []
    if not cid:
        return []

    quotas = list(choice_index.quotas_for(OWNER_TYPE_CLASS, cid, level))
    if sid:
        quotas.extend(choice_index.quotas_for(OWNER_TYPE_SUBCLASS, sid, level))

    accumulated: dict[str, _StepAccumulator] = {}
    for quota in quotas:
        kind = canonical_pick_kind(quota.pick_type)
        if kind is None:
            _LOGGER.debug("Dropping unrecognized pick type %r for %s level %s", quota.pick_type, cid, level)
            continue
        accumulated.setdefault(kind, _StepAccumulator()).add(quota)

    if cid in CLASS_WIDE_SPELLCASTERS:
        progressions = class_progressions or {}
        fallbacks = (
            ("cantrips", "cantrips_known_by_level", LIST_RESTRICTION_ANY),
            ("spells", "spells_known_by_level", LIST_RESTRICTION_CLASS),
        )
        for kind, field_name, restriction in fallbacks:
            if kind in accumulated:
                continue
            need = spellcasting_delta(progressions, cid, level, field_name)
            if need:
                accumulated[kind] = _StepAccumulator(need=need, list_restriction=restriction)

    steps = [
        PickStep(
            kind=kind,
            label=step_label(kind),
            need=meta.need,
            owner_type=meta.owner_type,
            owner_id=meta.owner_id,
            list_restriction=meta.list_restriction,
        )
        for kind, meta in accumulated.items()
    ]
    steps.sort(key=lambda step: _kind_rank(step.kind))
    return steps
