"""Turn loosely shaped sheet/JSON rows into canonical engine records.

Exported sheets spell the same column several ways (``ownerId``, ``OwnerId``,
``owner_id``) and store JSON, booleans and numbers as strings. Everything past this
module sees one record shape.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from hbcr.domain.models.pick_step import PickQuota
from hbcr.domain.models.progression import (
    CHOICE_GRANT_TYPES,
    MAX_CLASS_LEVEL,
    MIN_CLASS_LEVEL,
    ChoiceGrant,
    ChoiceOption,
    ClassProgression,
    FeatGateGrant,
    FeatureGrant,
    Grant,
    Spellcasting,
    SubclassDefinition,
    SubclassPick,
    UnknownGrant,
)


_LOGGER = logging.getLogger(__name__)

_NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")

OWNER_TYPE_KEYS = ("ownerType", "OwnerType", "owner_type")
OWNER_ID_KEYS = ("ownerId", "OwnerId", "owner_id")
LEVEL_KEYS = ("level", "Level")
PICK_TYPE_KEYS = ("pickType", "PickType", "pick_type")
COUNT_KEYS = ("count", "Count")
LIST_OVERRIDE_KEYS = ("listOverride", "ListOverride", "list_override")
CLASS_ID_KEYS = ("id", "classId", "class_id")
SUBCLASS_ID_KEYS = ("id", "subclassId", "subclass_id")


def parse_cell(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return value

    if (text.startswith("{") and text.endswith("}")) or (text.startswith("[") and text.endswith("]")):
        try:
            return json.loads(text)
        except ValueError:
            pass

    if text == "TRUE":
        return True
    if text == "FALSE":
        return False

    if _NUMBER_PATTERN.match(text):
        number = float(text)
        return int(number) if number.is_integer() and "." not in text else number

    return value


def normalize_row(row: Mapping[str, Any] | None) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in (row or {}).items():
        name = str(key or "").strip()
        if not name:
            continue
        normalized[name] = parse_cell(value)
    return normalized


def pick(row: Mapping[str, Any], keys: Iterable[str], default: Any = None) -> Any:
    """First non-blank value among ``keys``."""

    for key in keys:
        value = row.get(key)
        if value is not None and str(value).strip() != "":
            return value
    return default


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return int(number)


def unwrap_rows(payload: Any, *keys: str) -> list[dict[str, Any]]:
    if isinstance(payload, Mapping):
        rows: Any = []
        for key in keys:
            candidate = payload.get(key)
            if candidate:
                rows = candidate
                break
    elif isinstance(payload, list):
        rows = payload
    else:
        rows = []
    return [row for row in rows if isinstance(row, Mapping)]


def quota_from_row(row: Mapping[str, Any]) -> PickQuota | None:
    normalized = normalize_row(row)
    owner_type = str(pick(normalized, OWNER_TYPE_KEYS, "") or "").strip().lower()
    owner_id = str(pick(normalized, OWNER_ID_KEYS, "") or "").strip()
    pick_type = str(pick(normalized, PICK_TYPE_KEYS, "") or "").strip().lower()
    level = _to_int(pick(normalized, LEVEL_KEYS))
    count = _to_int(pick(normalized, COUNT_KEYS, 0))
    if not owner_type or not owner_id or not pick_type or level is None or count is None:
        return None

    list_override = str(pick(normalized, LIST_OVERRIDE_KEYS, "") or "").strip().lower()
    return PickQuota(
        owner_type=owner_type,
        owner_id=owner_id,
        level=level,
        pick_type=pick_type,
        count=count,
        list_restriction=list_override or None,
    )


def quotas_from_payload(payload: Any) -> list[PickQuota]:
    quotas: list[PickQuota] = []
    for row in unwrap_rows(payload, "choices", "rows"):
        quota = quota_from_row(row)
        if quota is None:
            _LOGGER.debug("Dropping incomplete choice row: %r", row)
            continue
        quotas.append(quota)
    return quotas


def _level_key(value: Any, *, minimum: int = MIN_CLASS_LEVEL) -> int | None:
    level = _to_int(parse_cell(value))
    if level is None or level < minimum or level > MAX_CLASS_LEVEL:
        return None
    return level


def _level_table(table: Any) -> dict[int, int] | None:
    if not isinstance(table, Mapping):
        return None
    parsed: dict[int, int] = {}
    for key, value in table.items():
        level = _level_key(key, minimum=0)
        count = _to_int(parse_cell(value))
        if level is None or count is None:
            continue
        parsed[level] = count
    return parsed


def _slot_rows(table: Any) -> dict[int, tuple[int, ...]] | None:
    if not isinstance(table, Mapping):
        return None
    parsed: dict[int, tuple[int, ...]] = {}
    for key, row in table.items():
        level = _level_key(key)
        row = parse_cell(row)
        if level is None or not isinstance(row, list):
            continue
        parsed[level] = tuple(max(0, _to_int(value) or 0) for value in row)
    return parsed


def spellcasting_from_dict(payload: Any) -> Spellcasting | None:
    if not isinstance(payload, Mapping):
        return None
    return Spellcasting(
        kind=str(payload.get("kind") or "none").strip().lower(),
        ability=(str(payload["ability"]).strip().lower() if payload.get("ability") else None),
        slots_by_level=_slot_rows(payload.get("slotsByLevel")),
        cantrips_known_by_level=_level_table(payload.get("cantripsKnownByLevel")),
        spells_known_by_level=_level_table(payload.get("spellsKnownByLevel")),
        pact_slots_by_level=_level_table(payload.get("pactSlotsByLevel")),
        pact_slot_level_by_level=_level_table(payload.get("pactSlotLevelByLevel")),
    )


def _options_from_list(options: Any) -> tuple[ChoiceOption, ...]:
    parsed: list[ChoiceOption] = []
    for option in options or ():
        if isinstance(option, Mapping):
            option_id = str(option.get("id") or "").strip()
            if option_id:
                parsed.append(ChoiceOption(id=option_id, name=str(option.get("name") or option_id)))
        elif option is not None and str(option).strip():
            parsed.append(ChoiceOption(id=str(option).strip(), name=str(option).strip()))
    return tuple(parsed)


def grant_from_dict(payload: Mapping[str, Any], *, level: int) -> Grant:
    grant_type = str(payload.get("type") or "").strip()
    if grant_type == "feature":
        name = str(payload.get("name") or payload.get("id") or "")
        return FeatureGrant(
            id=str(payload.get("id") or ""),
            name=name,
            text=(str(payload["text"]) if payload.get("text") is not None else None),
        )
    if grant_type in CHOICE_GRANT_TYPES:
        count = _to_int(payload.get("count"))
        rules = payload.get("rules")
        return ChoiceGrant(
            id=(str(payload["id"]) if payload.get("id") else None),
            prompt=str(payload.get("prompt") or payload.get("name") or ""),
            count=count if count is not None else 1,
            options=_options_from_list(payload.get("options")),
            rules=rules if isinstance(rules, Mapping) else {},
            grant_type=grant_type,
        )
    if grant_type == "asi_or_feat_gate":
        gate_level = _to_int(payload.get("level"))
        return FeatGateGrant(level=gate_level if gate_level is not None else level)
    return UnknownGrant(grant_type=grant_type, payload=dict(payload))


def class_progression_from_dict(payload: Mapping[str, Any]) -> ClassProgression:
    class_id = str(pick(payload, CLASS_ID_KEYS, "") or "").strip()
    if not class_id:
        raise ValueError("Class progression is missing a classId")

    levels: dict[int, tuple[Grant, ...]] = {}
    raw_levels = payload.get("levels")
    for key, grants in (raw_levels.items() if isinstance(raw_levels, Mapping) else ()):
        level = _level_key(key)
        if level is None:
            _LOGGER.debug("Skipping level key %r in %s progression", key, class_id)
            continue
        levels[level] = tuple(
            grant_from_dict(grant, level=level) for grant in (grants or ()) if isinstance(grant, Mapping)
        )

    subclass = None
    raw_subclass = payload.get("subclass")
    if isinstance(raw_subclass, Mapping):
        pick_level = _to_int(raw_subclass.get("pickLevel"))
        subclass = SubclassPick(
            pick_level=pick_level if pick_level is not None else 3,
            options=tuple(str(option) for option in raw_subclass.get("options") or ()),
        )

    return ClassProgression(
        class_id=class_id,
        display_name=str(payload.get("displayName") or payload.get("name") or class_id),
        levels=levels,
        subclass=subclass,
        spellcasting=spellcasting_from_dict(payload.get("spellcasting")),
    )


def subclass_from_dict(payload: Mapping[str, Any]) -> SubclassDefinition | None:
    subclass_id = str(pick(payload, SUBCLASS_ID_KEYS, "") or "").strip()
    if not subclass_id:
        return None
    raw_levels = payload.get("levels")
    levels: dict[str, tuple[str, ...]] = {}
    for ordinal, names in (raw_levels.items() if isinstance(raw_levels, Mapping) else ()):
        names = parse_cell(names)
        if isinstance(names, str):
            names = [names]
        levels[str(ordinal)] = tuple(str(name) for name in names or () if name is not None)
    return SubclassDefinition(
        id=subclass_id,
        name=str(payload.get("name") or subclass_id),
        levels=levels,
    )


def subclass_catalog_from_dict(payload: Any) -> dict[str, dict[str, SubclassDefinition]]:
    catalog: dict[str, dict[str, SubclassDefinition]] = {}
    for class_row in unwrap_rows(payload, "classes"):
        class_id = str(pick(class_row, CLASS_ID_KEYS, "") or "").strip()
        if not class_id:
            continue
        subclasses: dict[str, SubclassDefinition] = {}
        for subclass_row in class_row.get("subclasses") or ():
            if not isinstance(subclass_row, Mapping):
                continue
            definition = subclass_from_dict(subclass_row)
            if definition is not None:
                subclasses[definition.id] = definition
        catalog[class_id] = subclasses
    return catalog
