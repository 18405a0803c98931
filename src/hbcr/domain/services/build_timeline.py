from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from hbcr.domain.models.progression import MAX_CLASS_LEVEL
from hbcr.domain.models.resolution import ClassEntry


@dataclass(frozen=True)
class TimelineEntry:
    """One character level of a build: which class was taken and what was picked."""

    class_id: str | None
    subclass_id: str | None = None
    picks: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "picks", MappingProxyType(dict(self.picks or {})))

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "TimelineEntry":
        payload = payload or {}
        class_id = str(payload.get("classId") or payload.get("class_id") or "").strip() or None
        subclass_id = str(payload.get("subclassId") or payload.get("subclass_id") or "").strip() or None
        picks = payload.get("picks")
        return cls(class_id=class_id, subclass_id=subclass_id, picks=picks if isinstance(picks, Mapping) else {})


@dataclass(frozen=True)
class TimelineLevel:
    character_level: int
    class_id: str
    class_level: int
    subclass_id: str | None
    entry: TimelineEntry


def _entries(timeline: Iterable[TimelineEntry | Mapping[str, Any]]) -> list[TimelineEntry]:
    entries: list[TimelineEntry] = []
    for raw in timeline:
        entries.append(raw if isinstance(raw, TimelineEntry) else TimelineEntry.from_dict(raw))
        if len(entries) >= MAX_CLASS_LEVEL:
            break
    return entries


def walk_timeline(timeline: Iterable[TimelineEntry | Mapping[str, Any]]) -> list[TimelineLevel]:
    """Per character level: the class taken, its class level so far, and its subclass so far."""

    class_levels: dict[str, int] = {}
    subclasses: dict[str, str] = {}
    walked: list[TimelineLevel] = []
    for index, entry in enumerate(_entries(timeline)):
        if not entry.class_id:
            continue
        class_levels[entry.class_id] = class_levels.get(entry.class_id, 0) + 1
        if entry.subclass_id:
            subclasses[entry.class_id] = entry.subclass_id
        walked.append(
            TimelineLevel(
                character_level=index + 1,
                class_id=entry.class_id,
                class_level=class_levels[entry.class_id],
                subclass_id=subclasses.get(entry.class_id),
                entry=entry,
            )
        )
    return walked


def class_entries_from_timeline(timeline: Iterable[TimelineEntry | Mapping[str, Any]]) -> tuple[ClassEntry, ...]:
    """Fold per-level entries into one entry per class, in first-appearance order."""

    folded: dict[str, ClassEntry] = {}
    for level in walk_timeline(timeline):
        folded[level.class_id] = ClassEntry(
            class_id=level.class_id,
            level=level.class_level,
            subclass_id=level.subclass_id,
        )
    return tuple(folded.values())
