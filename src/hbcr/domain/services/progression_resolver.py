"""Resolve a multiclass build into features, pending choices and spell slots.

Each class entry replays its level table from 1 up to its recorded level. Spell slots
are earned per class and then added together; pact slots form a separate short-rest pool.
Nothing here performs I/O or keeps state between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from hbcr.domain.models.progression import (
    MAX_CLASS_LEVEL,
    SLOT_LEVELS,
    ChoiceGrant,
    ClassProgression,
    FeatGateGrant,
    FeatureGrant,
    Grant,
    Spellcasting,
    SubclassCatalog,
    SubclassDefinition,
    UnknownGrant,
)
from hbcr.domain.models.resolution import (
    ClassEntry,
    PactSlots,
    PendingChoice,
    PerClassSummary,
    ResolveInput,
    ResolveOutput,
    Selection,
    SpellcastingSummary,
    SpellSlotPools,
    empty_slot_row,
    has_selection,
    selection_size,
)
from hbcr.domain.services.subclass_grafting import with_subclass


_LOGGER = logging.getLogger(__name__)

FEAT_GATE_PROMPT = "Feat or Ability Score Improvement"


@dataclass(frozen=True)
class ProgressionData:
    class_progressions: Mapping[str, ClassProgression] = field(default_factory=lambda: MappingProxyType({}))
    subclass_catalog: SubclassCatalog = field(default_factory=lambda: MappingProxyType({}))


def clamp_level(value: object) -> int:
    try:
        level = int(value or 0)
    except (TypeError, ValueError):
        level = 0
    return max(0, min(MAX_CLASS_LEVEL, level))


def is_choice_satisfied(grant: ChoiceGrant | None, selection: Selection) -> bool:
    if grant is None:
        return True
    if grant.grant_type == "subclass_pick":
        return has_selection(selection)
    count = int(grant.count or 1)
    size = selection_size(selection)
    if size is not None:
        return size >= count
    if selection is None:
        return False
    # A scalar selection only fills single-pick grants.
    return count <= 1


def remaining_count(grant: ChoiceGrant, selection: Selection) -> int:
    count = int(grant.count or 1)
    size = selection_size(selection)
    if size is not None:
        return max(0, count - size)
    if selection is None:
        return count
    return 0


def summarize_spellcasting(spellcasting: Spellcasting, class_level: int) -> SpellcastingSummary:
    cantrips_known = None
    if spellcasting.cantrips_known_by_level is not None:
        cantrips_known = int(spellcasting.cantrips_known_by_level.get(class_level, 0))

    spells_known = None
    if spellcasting.spells_known_by_level is not None:
        spells_known = int(spellcasting.spells_known_by_level.get(class_level, 0))

    long_rest_slots = None
    if spellcasting.slots_by_level is not None and class_level in spellcasting.slots_by_level:
        long_rest_slots = tuple(spellcasting.slots_by_level[class_level])

    pact_slots = None
    if spellcasting.pact_slots_by_level is not None and spellcasting.pact_slot_level_by_level is not None:
        pact_slots = PactSlots(
            slots=int(spellcasting.pact_slots_by_level.get(class_level, 0)),
            slot_level=int(spellcasting.pact_slot_level_by_level.get(class_level, 0)),
        )

    return SpellcastingSummary(
        kind=spellcasting.kind,
        ability=spellcasting.ability,
        cantrips_known=cantrips_known,
        spells_known=spells_known,
        long_rest_slots=long_rest_slots,
        pact_slots=pact_slots,
    )


def _lookup_subclass(data: ProgressionData, entry: ClassEntry) -> SubclassDefinition | None:
    if not entry.subclass_id:
        return None
    subclasses = data.subclass_catalog.get(entry.class_id)
    if not subclasses:
        return None
    return subclasses.get(entry.subclass_id)


def _class_slots(spellcasting: Spellcasting | None, class_level: int) -> tuple[dict[int, int], dict[int, int]]:
    long_rest = empty_slot_row()
    short_rest = empty_slot_row()
    if spellcasting is None:
        return long_rest, short_rest

    if spellcasting.slots_by_level is not None:
        row = spellcasting.slots_by_level.get(class_level) or ()
        for index, value in enumerate(row):
            slot_level = index + 1
            if slot_level not in long_rest:
                continue
            long_rest[slot_level] += max(0, int(value or 0))

    if spellcasting.pact_slots_by_level is not None and spellcasting.pact_slot_level_by_level is not None:
        pact_count = int(spellcasting.pact_slots_by_level.get(class_level, 0) or 0)
        pact_level = int(spellcasting.pact_slot_level_by_level.get(class_level, 0) or 0)
        if pact_count > 0 and pact_level in short_rest:
            short_rest[pact_level] += pact_count

    return long_rest, short_rest


def _pending_for_choice(
    entry: ClassEntry,
    level: int,
    grant: ChoiceGrant,
    choice_id: str,
    selection: Selection,
) -> PendingChoice:
    return PendingChoice(
        id=choice_id,
        grant_type=grant.grant_type,
        class_id=entry.class_id,
        subclass_id=entry.subclass_id,
        level=level,
        prompt=grant.prompt,
        count=int(grant.count or 1),
        remaining=remaining_count(grant, selection),
        options=grant.options,
        rules=grant.rules,
    )


def _pending_for_gate(entry: ClassEntry, level: int, choice_id: str) -> PendingChoice:
    return PendingChoice(
        id=choice_id,
        grant_type="asi_or_feat_gate",
        class_id=entry.class_id,
        subclass_id=entry.subclass_id,
        level=level,
        prompt=FEAT_GATE_PROMPT,
        count=1,
        remaining=1,
    )


def resolve_progression(resolve_input: ResolveInput, data: ProgressionData) -> ResolveOutput:
    selections = resolve_input.selections
    entries = [
        ClassEntry(
            class_id=entry.class_id,
            level=clamp_level(entry.level),
            subclass_id=entry.subclass_id or None,
        )
        for entry in resolve_input.classes
    ]

    features: dict[str, FeatureGrant] = {}
    pending_choices: list[PendingChoice] = []
    long_rest = empty_slot_row()
    short_rest = empty_slot_row()
    per_class: list[PerClassSummary] = []

    for entry in entries:
        base = data.class_progressions.get(entry.class_id)
        if base is None:
            _LOGGER.debug("No progression table for class %r", entry.class_id)
            per_class.append(
                PerClassSummary(
                    class_id=entry.class_id,
                    level=entry.level,
                    subclass_id=entry.subclass_id,
                    error=f'Missing progression for classId="{entry.class_id}"',
                )
            )
            continue

        progression = with_subclass(base, _lookup_subclass(data, entry))
        applied_count = 0
        class_pending: list[PendingChoice] = []

        for level in range(1, entry.level + 1):
            for grant in progression.grants_at(level):
                applied_count += 1
                pending = _apply_grant(entry, level, grant, applied_count, selections, features)
                if pending is not None:
                    pending_choices.append(pending)
                    class_pending.append(pending)

        class_long, class_short = _class_slots(progression.spellcasting, entry.level)
        for slot_level in SLOT_LEVELS:
            long_rest[slot_level] += class_long[slot_level]
            short_rest[slot_level] += class_short[slot_level]

        per_class.append(
            PerClassSummary(
                class_id=entry.class_id,
                level=entry.level,
                subclass_id=entry.subclass_id,
                display_name=progression.display_name,
                applied_count=applied_count,
                pending_choices=tuple(class_pending),
                spell_slots=SpellSlotPools(long_rest=class_long, short_rest=class_short),
                spellcasting=(
                    summarize_spellcasting(progression.spellcasting, entry.level)
                    if progression.spellcasting is not None
                    else None
                ),
            )
        )

    return ResolveOutput(
        total_level=sum(entry.level for entry in entries),
        features=tuple(features.values()),
        pending_choices=tuple(pending_choices),
        spell_slots=SpellSlotPools(long_rest=long_rest, short_rest=short_rest),
        per_class=tuple(per_class),
    )


def _apply_grant(
    entry: ClassEntry,
    level: int,
    grant: Grant,
    position: int,
    selections: Mapping[str, Selection],
    features: dict[str, FeatureGrant],
) -> PendingChoice | None:
    if isinstance(grant, FeatureGrant):
        features[grant.id] = grant
        return None

    if isinstance(grant, ChoiceGrant):
        choice_id = grant.id or f"{entry.class_id}.choice.{level}.{position}"
        selection = selections.get(choice_id)
        if is_choice_satisfied(grant, selection):
            return None
        return _pending_for_choice(entry, level, grant, choice_id, selection)

    if isinstance(grant, FeatGateGrant):
        choice_id = f"{entry.class_id}.feat_gate.{level}"
        if has_selection(selections.get(choice_id)):
            return None
        return _pending_for_gate(entry, level, choice_id)

    if isinstance(grant, UnknownGrant):
        _LOGGER.debug("Ignoring unrecognized grant type %r at %s level %s", grant.grant_type, entry.class_id, level)
        return None

    raise TypeError(f"Unhandled grant variant: {type(grant).__name__}")
