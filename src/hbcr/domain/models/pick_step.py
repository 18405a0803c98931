from __future__ import annotations

from dataclasses import dataclass


OWNER_TYPE_CLASS = "class"
OWNER_TYPE_SUBCLASS = "subclass"
LIST_RESTRICTION_ANY = "any"
LIST_RESTRICTION_CLASS = "class"


@dataclass(frozen=True)
class PickQuota:
    """One normalized row of the Choices table."""

    owner_type: str
    owner_id: str
    level: int
    pick_type: str
    count: int
    list_restriction: str | None = None


@dataclass(frozen=True)
class PickStep:
    kind: str
    label: str
    need: int
    owner_type: str | None = None
    owner_id: str | None = None
    list_restriction: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "label": self.label,
            "need": self.need,
            "ownerType": self.owner_type,
            "ownerId": self.owner_id,
            "listRestriction": self.list_restriction,
        }


@dataclass(frozen=True)
class PickRequirement:
    source: str
    kind: str
    level: int
    class_id: str
    need: int
    remaining: int
    owner_type: str | None = None
    owner_id: str | None = None
    list_restriction: str | None = None
    choice_id: str | None = None
    label: str = ""
    list_id: int | None = None
