import os

from hbcr.infrastructure.local_table_provider import LocalTableProvider
from hbcr.infrastructure.remote_table_client import RemoteTableClient


def create_table_client() -> LocalTableProvider | RemoteTableClient:
    base_url = os.getenv("HBCR_DATA_URL", "").strip()
    if base_url:
        timeout = float(os.getenv("HBCR_CONTENT_TIMEOUT_S", "10"))
        retries = int(os.getenv("HBCR_CONTENT_RETRIES", "2"))
        return RemoteTableClient(base_url=base_url, timeout=timeout, retries=retries)
    return LocalTableProvider(root_dir=os.getenv("HBCR_DATA_DIR", "data"))
