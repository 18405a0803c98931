import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture(autouse=True)
def disable_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("time.sleep", lambda *_args, **_kwargs: None)


@pytest.fixture(autouse=True)
def local_content_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("HBCR_DATA_URL", raising=False)
    monkeypatch.setenv("HBCR_CONTENT_RETRIES", "0")
    monkeypatch.setenv("HBCR_CONTENT_TIMEOUT_S", "0.05")


@pytest.fixture(autouse=True)
def block_external_http(monkeypatch: pytest.MonkeyPatch) -> None:
    import httpx

    def _deny_external_http(self, method, url, *args, **kwargs):
        candidate = str(self._merge_url(url))
        if isinstance(self._transport, httpx.MockTransport):
            return _original_request(self, method, url, *args, **kwargs)
        if candidate.startswith(("http://127.0.0.1", "http://localhost", "https://127.0.0.1", "https://localhost")):
            return _original_request(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP disabled during tests: {candidate}")

    _original_request = httpx.Client.request
    monkeypatch.setattr(httpx.Client, "request", _deny_external_http)
