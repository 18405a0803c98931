from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from hbcr.application.services.table_cache import TableCache
from hbcr.domain.models.progression import ClassProgression, SubclassCatalog
from hbcr.domain.services.pick_steps import ChoiceIndex
from hbcr.infrastructure.row_normalization import (
    class_progression_from_dict,
    quotas_from_payload,
    subclass_catalog_from_dict,
)


_LOGGER = logging.getLogger(__name__)

SUBCLASS_CATALOG_KEY = "subclass_catalog"
CHOICE_INDEX_KEY = "choice_index"


def _class_key(class_id: str) -> str:
    return f"class_progression:{class_id}"


class LevelingTableLoader:
    """Loads and parses leveling tables through a table client, memoized in ``cache``."""

    def __init__(self, table_client, cache: TableCache | None = None) -> None:
        self._client = table_client
        self.cache = cache if cache is not None else TableCache()

    def _load_class(self, class_id: str) -> ClassProgression:
        payload = self._client.get_class_progression(class_id)
        return class_progression_from_dict({"classId": class_id, **payload})

    def load_class_progression(self, class_id: str) -> ClassProgression | None:
        key = _class_key(class_id)
        try:
            return self.cache.get_or_load(key, lambda: self._load_class(class_id))
        except (FileNotFoundError, KeyError, ValueError) as exc:
            _LOGGER.warning(
                "Class progression unavailable for %s",
                class_id,
                extra={"class_id": class_id, "error": str(exc)},
            )
        except Exception:
            _LOGGER.exception("Failed to load class progression for %s", class_id, extra={"class_id": class_id})
        return None

    def load_class_progressions(self, class_ids: Iterable[str]) -> Mapping[str, ClassProgression]:
        """Tables for ``class_ids``; classes that fail to load are left out."""

        loaded: dict[str, ClassProgression] = {}
        for class_id in class_ids:
            if not class_id or class_id in loaded:
                continue
            progression = self.load_class_progression(class_id)
            if progression is not None:
                loaded[class_id] = progression
        return MappingProxyType(loaded)

    def load_subclass_catalog(self) -> SubclassCatalog:
        def _load() -> SubclassCatalog:
            catalog = subclass_catalog_from_dict(self._client.get_classes_full())
            return MappingProxyType(
                {class_id: MappingProxyType(subclasses) for class_id, subclasses in catalog.items()}
            )

        return self.cache.get_or_load(SUBCLASS_CATALOG_KEY, _load)

    def load_choice_index(self) -> ChoiceIndex:
        return self.cache.get_or_load(
            CHOICE_INDEX_KEY,
            lambda: ChoiceIndex.from_rows(quotas_from_payload(self._client.get_choices())),
        )

    def reload(self) -> None:
        self.cache.invalidate()
