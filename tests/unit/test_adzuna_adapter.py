"""Tests for AdzunaAdapter using httpx.MockTransport (no network)."""

from collections.abc import Callable

import httpx
import pytest

from jobcache.core.config import APP_ID_ENV, APP_KEY_ENV, BASE_URL_ENV, ProviderConfig
from jobcache.core.errors import ConfigurationError, ProviderError
from jobcache.platforms.adzuna.adapter import AdzunaAdapter
from jobcache.platforms.base import ProviderQuery

CONFIG = ProviderConfig(app_id="id", app_key="key", base_url="https://api.example.com/v1/api")


def _adapter(
    handler: Callable[[httpx.Request], httpx.Response],
    config: ProviderConfig = CONFIG,
) -> AdzunaAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AdzunaAdapter(config, client=client)


def _query(**kw: object) -> ProviderQuery:
    defaults: dict[str, object] = {"keyword": "frontend developer", "region": "ca", "page": 2}
    defaults.update(kw)
    return ProviderQuery(**defaults)  # type: ignore[arg-type]


class TestConfiguration:
    def test_provider_id(self) -> None:
        assert _adapter(lambda r: httpx.Response(200)).provider_id == "adzuna"

    def test_ensure_configured_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (APP_ID_ENV, APP_KEY_ENV, BASE_URL_ENV):
            monkeypatch.delenv(name, raising=False)
        adapter = _adapter(lambda r: httpx.Response(200), ProviderConfig())
        with pytest.raises(ConfigurationError):
            adapter.ensure_configured()

    def test_resolve_region_uses_default(self) -> None:
        adapter = _adapter(lambda r: httpx.Response(200), CONFIG.model_copy(update={"default_region": "au"}))
        assert adapter.resolve_region("Sydney") == "au"
        assert adapter.resolve_region("London") == "gb"


class TestSearch:
    async def test_success(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={
                "count": 42,
                "results": [
                    {"id": 1, "title": "Frontend Developer", "company": {"display_name": "Acme"}},
                    {"id": 2, "title": "React Developer"},
                ],
            })

        page = await _adapter(handler).search(_query())

        assert page.total_count == 42
        assert [lst.id for lst in page.listings] == ["1", "2"]
        assert page.listings[0].company == "Acme"

        assert len(seen) == 1
        url = seen[0].url
        assert url.path == "/v1/api/jobs/ca/search/2"
        assert url.params["what"] == "frontend developer"
        assert url.params["app_id"] == "id"

    async def test_http_error_status(self) -> None:
        adapter = _adapter(lambda r: httpx.Response(401, text="unauthorized"))
        with pytest.raises(ProviderError) as exc_info:
            await adapter.search(_query())
        assert exc_info.value.status_code == 401

    async def test_server_error(self) -> None:
        adapter = _adapter(lambda r: httpx.Response(503))
        with pytest.raises(ProviderError):
            await adapter.search(_query())

    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError) as exc_info:
            await _adapter(handler).search(_query())
        assert exc_info.value.status_code is None

    async def test_non_json_body(self) -> None:
        adapter = _adapter(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(ProviderError):
            await adapter.search(_query())

    async def test_non_object_json(self) -> None:
        page = await _adapter(lambda r: httpx.Response(200, json=[1, 2])).search(_query())
        assert page.listings == []
        assert page.total_count == 0

    async def test_provider_error_has_generic_user_message(self) -> None:
        adapter = _adapter(lambda r: httpx.Response(500))
        with pytest.raises(ProviderError) as exc_info:
            await adapter.search(_query())
        assert "500" not in exc_info.value.user_message
