import json
from typing import Any, Callable, Dict, List, Optional

import pytest
import requests

from chainlens.abi import AbiCodec
from chainlens.signatures import build_default_database


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, text: Optional[str] = None) -> None:
        self._payload = payload
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        if self._payload is None and self.text:
            return json.loads(self.text)
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for requests.Session; ``handler`` maps a request to a FakeResponse."""

    def __init__(self, handler: Callable[..., FakeResponse]) -> None:
        self.handler = handler
        self.headers: Dict[str, str] = {}
        self.requests: List[Dict[str, Any]] = []
        self.closed = False

    def post(self, url: str, json: Any = None, timeout: Any = None) -> FakeResponse:
        self.requests.append({"url": url, "json": json, "timeout": timeout})
        return self.handler(url=url, json=json)

    def get(self, url: str, params: Any = None, timeout: Any = None) -> FakeResponse:
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        return self.handler(url=url, params=params)

    def close(self) -> None:
        self.closed = True


def rpc_result(result: Any) -> Callable[..., FakeResponse]:
    def handler(url: str, json: Any = None, **_: Any) -> FakeResponse:
        return FakeResponse({"jsonrpc": "2.0", "id": json["id"], "result": result})

    return handler


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def signatures():
    return build_default_database()


@pytest.fixture(scope="session")
def codec(signatures):
    return AbiCodec(signatures)


@pytest.fixture
def clock():
    return FakeClock()
