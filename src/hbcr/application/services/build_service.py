from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from hbcr.application.services.table_loader import LevelingTableLoader
from hbcr.domain.models.pick_step import OWNER_TYPE_CLASS, OWNER_TYPE_SUBCLASS, PickRequirement, PickStep
from hbcr.domain.models.resolution import PendingChoice, ResolveInput, ResolveOutput, selection_size
from hbcr.domain.services.build_timeline import (
    TimelineEntry,
    class_entries_from_timeline,
    walk_timeline,
)
from hbcr.domain.services.pick_steps import canonical_pick_kind, resolve_build_steps, step_label
from hbcr.domain.services.progression_resolver import ProgressionData, resolve_progression
from hbcr.domain.services.spell_lists import resolve_list_restriction


_LOGGER = logging.getLogger(__name__)

SOURCE_EMBEDDED = "embedded"
SOURCE_QUOTA = "quota"

SPELL_PICK_KINDS = frozenset({"cantrips", "spells"})

_KIND_BY_GRANT_TYPE = {
    "asi_or_feat_gate": "feats",
    "spell_choice": "spells",
    "subclass_pick": "subclass",
}

Timeline = Iterable[TimelineEntry | Mapping[str, Any]]


def embedded_kind(pending: PendingChoice) -> str:
    rules_kind = pending.rules.get("kind") if pending.rules else None
    if rules_kind:
        return canonical_pick_kind(rules_kind) or str(rules_kind)
    return _KIND_BY_GRANT_TYPE.get(pending.grant_type, "choice")


def spell_list_id(
    kind: str,
    class_id: str,
    owner_type: str | None,
    owner_id: str | None,
    list_restriction: str | None,
) -> int | None:
    """Spell list a cantrip or spell pick draws from; steps without an owner fall back to the class."""

    if kind not in SPELL_PICK_KINDS:
        return None
    return resolve_list_restriction(owner_type or OWNER_TYPE_CLASS, owner_id or class_id, list_restriction)


def picked_count(picks: Mapping[str, Any], kind: str) -> int:
    size = selection_size(picks.get(kind))
    if size is not None:
        return size
    if kind == "feats" and picks.get("feat"):
        return 1
    return 0


class BuildService:
    """Resolves builds against tables supplied by a ``LevelingTableLoader``."""

    def __init__(self, loader: LevelingTableLoader) -> None:
        self._loader = loader

    def _progression_data(self, class_ids: Iterable[str]) -> ProgressionData:
        return ProgressionData(
            class_progressions=self._loader.load_class_progressions(class_ids),
            subclass_catalog=self._loader.load_subclass_catalog(),
        )

    def resolve(self, resolve_input: ResolveInput) -> ResolveOutput:
        data = self._progression_data(entry.class_id for entry in resolve_input.classes)
        return resolve_progression(resolve_input, data)

    def resolve_timeline(self, timeline: Timeline, selections: Mapping[str, Any] | None = None) -> ResolveOutput:
        entries = class_entries_from_timeline(list(timeline))
        return self.resolve(ResolveInput(classes=entries, selections=selections or {}))

    def build_steps(self, class_id: str, subclass_id: str | None, class_level: int) -> list[PickStep]:
        return resolve_build_steps(
            class_id,
            subclass_id,
            class_level,
            choice_index=self._loader.load_choice_index(),
            class_progressions=self._loader.load_class_progressions([class_id]),
        )

    def pick_requirements(
        self,
        timeline: Timeline,
        selections: Mapping[str, Any] | None = None,
    ) -> list[PickRequirement]:
        """Outstanding picks from embedded choice grants and from the quota table, in one list."""

        walked = walk_timeline(list(timeline))
        output = self.resolve_timeline([level.entry for level in walked], selections)
        requirements = [self._from_pending(pending) for pending in output.pending_choices]

        for level in walked:
            for step in self.build_steps(level.class_id, level.subclass_id, level.class_level):
                requirements.append(
                    PickRequirement(
                        source=SOURCE_QUOTA,
                        kind=step.kind,
                        level=level.class_level,
                        class_id=level.class_id,
                        need=step.need,
                        remaining=max(0, step.need - picked_count(level.entry.picks, step.kind)),
                        owner_type=step.owner_type,
                        owner_id=step.owner_id,
                        list_restriction=step.list_restriction,
                        label=step.label,
                        list_id=spell_list_id(
                            step.kind, level.class_id, step.owner_type, step.owner_id, step.list_restriction
                        ),
                    )
                )
        _LOGGER.debug("Collected %d pick requirements for %d timeline levels", len(requirements), len(walked))
        return requirements

    @staticmethod
    def _from_pending(pending: PendingChoice) -> PickRequirement:
        kind = embedded_kind(pending)
        owner_type, owner_id = OWNER_TYPE_CLASS, pending.class_id
        if pending.subclass_id and pending.id.startswith(f"{pending.class_id}.{pending.subclass_id}."):
            owner_type, owner_id = OWNER_TYPE_SUBCLASS, pending.subclass_id
        return PickRequirement(
            source=SOURCE_EMBEDDED,
            kind=kind,
            level=pending.level,
            class_id=pending.class_id,
            need=pending.count,
            remaining=pending.remaining,
            owner_type=owner_type,
            owner_id=owner_id,
            choice_id=pending.id,
            label=pending.prompt or step_label(kind),
            list_id=spell_list_id(kind, pending.class_id, owner_type, owner_id, None),
        )
