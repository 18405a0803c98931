import httpx

from hbcr.infrastructure.local_table_provider import (
    CHOICES_FILENAME,
    CLASS_PROGRESSION_DIRNAME,
    CLASSES_FULL_FILENAME,
    normalize_class_id,
)


class RemoteTableClient:
    """Reads the same table bundle layout as ``LocalTableProvider`` from a web root."""

    DATA_PREFIX = "/data"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        retries: int = 2,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not str(base_url or "").strip():
            raise ValueError("base_url is required for the remote table client")
        self.client = http_client or httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=httpx.HTTPTransport(retries=max(0, int(retries))),
        )

    def _get(self, path: str, table_key: str | None = None) -> dict:
        response = self.client.get(f"{self.DATA_PREFIX}/{path}", headers={"Accept": "application/json"})
        if response.status_code == 404:
            raise FileNotFoundError(f"Remote table not found: {path}")
        response.raise_for_status()
        payload = response.json()
        if isinstance(payload, list) and table_key:
            return {table_key: payload}
        if not isinstance(payload, dict):
            raise ValueError(f"Table {path} is not a JSON object")
        return payload

    def get_class_progression(self, class_id: str) -> dict:
        normalized = normalize_class_id(class_id)
        return self._get(f"{CLASS_PROGRESSION_DIRNAME}/{normalized}.json")

    def get_classes_full(self) -> dict:
        return self._get(CLASSES_FULL_FILENAME, "classes")

    def get_choices(self) -> dict:
        return self._get(CHOICES_FILENAME, "choices")

    def close(self) -> None:
        self.client.close()
