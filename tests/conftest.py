from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Dict, List, Optional, Union

import aiohttp
import pytest

Outcome = Union[str, bytes, int, BaseException]


class FakeHttp:
    """Stands in for ``aiohttp`` inside a secdigest module.

    ``responses`` maps a URL to a document (``str`` or raw ``bytes``), an HTTP
    status code, or an exception instance raised when the request is entered.
    """

    def __init__(self, responses: Dict[str, Outcome]):
        self.responses = responses
        self.calls: List[str] = []
        self.headers: List[Optional[Dict[str, str]]] = []
        self.active = 0
        self.max_active = 0
        self.connector_kwargs: Dict = {}

    def session(self) -> "FakeSession":
        return FakeSession(self)


class FakeResponse:
    def __init__(self, http: FakeHttp, url: str):
        self._http = http
        self._url = url
        self.status = 200

    async def __aenter__(self) -> "FakeResponse":
        self._http.calls.append(self._url)
        self._http.active += 1
        self._http.max_active = max(self._http.max_active, self._http.active)
        try:
            await asyncio.sleep(0)
            outcome = self._http.responses[self._url]
            if isinstance(outcome, BaseException):
                raise outcome
        except BaseException:
            self._http.active -= 1
            raise
        if isinstance(outcome, int):
            self.status = outcome
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self._http.active -= 1

    async def read(self) -> bytes:
        outcome = self._http.responses[self._url]
        if isinstance(outcome, bytes):
            return outcome
        return outcome.encode("utf-8") if isinstance(outcome, str) else b""

    async def text(self) -> str:
        return (await self.read()).decode("utf-8")


class FakeSession:
    def __init__(self, http: FakeHttp):
        self._http = http

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    def get(self, url: str, headers=None, timeout=None) -> FakeResponse:
        self._http.headers.append(headers)
        return FakeResponse(self._http, url)


@pytest.fixture
def fake_http(monkeypatch: pytest.MonkeyPatch):
    """Install a :class:`FakeHttp` built from a response mapping.

    Patches ``secdigest.fetcher`` unless another module is named.
    """

    def _install(responses: Dict[str, Outcome], module: str = "secdigest.fetcher") -> FakeHttp:
        http = FakeHttp(responses)

        def _connector(**kwargs):
            http.connector_kwargs = kwargs
            return SimpleNamespace(**kwargs)

        monkeypatch.setattr(
            f"{module}.aiohttp",
            SimpleNamespace(
                TCPConnector=_connector,
                ClientSession=lambda connector=None: http.session(),
                ClientTimeout=lambda **kwargs: SimpleNamespace(**kwargs),
                ClientError=aiohttp.ClientError,
            ),
        )
        return http

    return _install


def rss_document(*items: str, title: str = "Feed") -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel>'
        f"<title>{title}</title><link>https://example.com/</link>"
        "<description>Test feed</description>"
        + "".join(items)
        + "</channel></rss>"
    )


def rss_item(title: str, link: str, description: str = "", pub_date: Optional[str] = None) -> str:
    date = f"<pubDate>{pub_date}</pubDate>" if pub_date else ""
    return (
        f"<item><title>{title}</title><link>{link}</link>"
        f"<description><![CDATA[{description}]]></description>{date}</item>"
    )
