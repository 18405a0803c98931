from __future__ import annotations

import logging
import re

from hbcr.domain.models.progression import (
    MAX_CLASS_LEVEL,
    MIN_CLASS_LEVEL,
    ChoiceGrant,
    ClassProgression,
    FeatGateGrant,
    FeatureGrant,
    Grant,
    SubclassDefinition,
)


_LOGGER = logging.getLogger(__name__)

FEAT_SELECTION_NAME = "feat selection"
_ORDINAL_PATTERN = re.compile(r"^(\d+)")
_PASSIVE_SELECTION_PATTERN = re.compile(r"^passive selection\s*\((\d+)\)\s*$", re.IGNORECASE)
_QUOTES_PATTERN = re.compile(r"['\"]")
_NON_ALNUM_PATTERN = re.compile(r"[^a-z0-9]+")


def ordinal_to_int(ordinal: object) -> int | None:
    """``"1st"`` -> 1, ``"10th"`` -> 10; anything without a leading number -> None."""

    match = _ORDINAL_PATTERN.match(str(ordinal if ordinal is not None else "").strip())
    return int(match.group(1)) if match else None


def slugify(value: object) -> str:
    lowered = str(value if value is not None else "").strip().lower()
    without_quotes = _QUOTES_PATTERN.sub("", lowered)
    return _NON_ALNUM_PATTERN.sub("_", without_quotes).strip("_")


def subclass_grant_for_name(class_id: str, subclass_id: str, level: int, raw_name: object) -> Grant | None:
    name = str(raw_name if raw_name is not None else "").strip()
    if not name:
        return None

    if name.lower() == FEAT_SELECTION_NAME:
        return FeatGateGrant(level=level)

    passive_match = _PASSIVE_SELECTION_PATTERN.match(name)
    if passive_match:
        return ChoiceGrant(
            id=f"{class_id}.{subclass_id}.passive_selection.{level}",
            prompt="Passive Selection",
            count=int(passive_match.group(1)),
            options=(),
            rules={"kind": "passive"},
        )

    return FeatureGrant(id=f"{class_id}.{subclass_id}.{slugify(name)}", name=name)


def with_subclass(base: ClassProgression, subclass: SubclassDefinition | None) -> ClassProgression:
    """Graft a subclass's per-level feature names onto ``base``.

    Subclass grants are appended after the base grants of the same level. ``base`` is
    returned untouched when there is no subclass.
    """

    if subclass is None:
        return base

    levels = dict(base.levels)
    for ordinal, feature_names in subclass.levels.items():
        level = ordinal_to_int(ordinal)
        if level is None or level < MIN_CLASS_LEVEL or level > MAX_CLASS_LEVEL:
            _LOGGER.debug("Skipping subclass level key %r for %s.%s", ordinal, base.class_id, subclass.id)
            continue

        grants = list(levels.get(level, ()))
        for raw_name in feature_names:
            grant = subclass_grant_for_name(base.class_id, subclass.id, level, raw_name)
            if grant is not None:
                grants.append(grant)
        levels[level] = tuple(grants)

    return ClassProgression(
        class_id=base.class_id,
        display_name=base.display_name,
        levels=levels,
        subclass=base.subclass,
        spellcasting=base.spellcasting,
    )
