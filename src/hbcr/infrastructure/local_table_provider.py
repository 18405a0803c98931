import json
import re
from pathlib import Path


CLASSES_FULL_FILENAME = "classes.full.json"
CHOICES_FILENAME = "choices.json"
CLASS_PROGRESSION_DIRNAME = "class_progression"

_CLASS_ID_PATTERN = re.compile(r"^[a-z0-9_\-]+$")


def normalize_class_id(class_id: str) -> str:
    value = str(class_id or "").strip().lower()
    if not _CLASS_ID_PATTERN.match(value):
        raise ValueError(f"Invalid class id: {class_id!r}")
    return value


class LocalTableProvider:
    """Reads leveling tables from an exported data directory."""

    def __init__(self, root_dir: str | Path) -> None:
        self.root_dir = Path(root_dir)

    def _read_json(self, path: Path):
        if not path.exists():
            raise FileNotFoundError(f"Local table not found: {path}")
        return json.loads(path.read_text(encoding="utf-8"))

    def get_class_progression(self, class_id: str) -> dict:
        normalized = normalize_class_id(class_id)
        payload = self._read_json(self.root_dir / CLASS_PROGRESSION_DIRNAME / f"{normalized}.json")
        if not isinstance(payload, dict):
            raise ValueError(f"Class progression for {normalized} is not an object")
        return payload

    def get_classes_full(self) -> dict:
        payload = self._read_json(self.root_dir / CLASSES_FULL_FILENAME)
        if isinstance(payload, list):
            return {"classes": payload}
        return payload if isinstance(payload, dict) else {"classes": []}

    def get_choices(self) -> dict:
        payload = self._read_json(self.root_dir / CHOICES_FILENAME)
        if isinstance(payload, list):
            return {"choices": payload}
        return payload if isinstance(payload, dict) else {"choices": []}

    def close(self) -> None:
        return None
