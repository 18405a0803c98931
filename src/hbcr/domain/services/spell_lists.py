from __future__ import annotations

from hbcr.domain.models.pick_step import LIST_RESTRICTION_ANY, OWNER_TYPE_CLASS, OWNER_TYPE_SUBCLASS


UNRESTRICTED_LIST_ID = 0

CLASS_SPELL_LIST_IDS: dict[str, int] = {
    "cleric": 1,
    "paladin": 1,
    "druid": 2,
    "ranger": 2,
    "sorcerer": 3,
    "warlock": 4,
    "wizard": 5,
}

SUBCLASS_SPELL_LIST_IDS: tuple[tuple[str, int], ...] = (
    ("wild_soul", 3),
    ("eldritch_knight", 4),
    ("arcane_trickster", 5),
)


def _normalize(value: object) -> str:
    return str(value if value is not None else "").strip().lower()


def is_always_unrestricted(owner_type: object, owner_id: object) -> bool:
    owner_type = _normalize(owner_type)
    owner_id = _normalize(owner_id)
    if owner_type == OWNER_TYPE_CLASS and owner_id == "bard":
        return True
    if owner_type == OWNER_TYPE_SUBCLASS:
        if "artificer_arcanist" in owner_id or "way_of_the_arcane" in owner_id:
            return True
        if "monk" in owner_id and "arcane" in owner_id:
            return True
    return False


def resolve_list_restriction(owner_type: object, owner_id: object, list_restriction: object = None) -> int | None:
    """Spell list id a pick draws from; 0 means every list, None means unknown owner."""

    if _normalize(list_restriction) == LIST_RESTRICTION_ANY:
        return UNRESTRICTED_LIST_ID
    if is_always_unrestricted(owner_type, owner_id):
        return UNRESTRICTED_LIST_ID

    owner_type = _normalize(owner_type)
    owner_id = _normalize(owner_id)
    if owner_type == OWNER_TYPE_CLASS:
        return CLASS_SPELL_LIST_IDS.get(owner_id)
    if owner_type == OWNER_TYPE_SUBCLASS:
        for marker, list_id in SUBCLASS_SPELL_LIST_IDS:
            if marker in owner_id:
                return list_id
    return None
