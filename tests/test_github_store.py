from __future__ import annotations

import asyncio
import base64
import json

import httpx
import pytest

from story_relay.config.schema import AppConfigRoot
from story_relay.content.github import GitHubContentStore
from story_relay.content.store import VersionToken
from story_relay.domain.errors import ConflictError, NotFoundError, UpstreamError


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _store(handler, requests: list[httpx.Request] | None = None) -> GitHubContentStore:
    def _record(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return GitHubContentStore(owner="oola", token="t0ken", client=client)


def test_read_decodes_content_and_returns_sha() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        # GitHub wraps base64 at 60 columns.
        encoded = _b64("# Título\n\nSome text.")
        wrapped = "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60))
        return httpx.Response(200, json={"type": "file", "encoding": "base64", "content": wrapped, "sha": "abc123"})

    async def _run() -> None:
        store = _store(handler, requests)
        snapshot = await store.read("oola-stories-english", "story-1-title.md")
        assert snapshot.content == "# Título\n\nSome text."
        assert snapshot.version == VersionToken("abc123")

    asyncio.run(_run())

    request = requests[0]
    assert request.method == "GET"
    assert request.url.path == "/repos/oola/oola-stories-english/contents/story-1-title.md"
    assert request.headers["Authorization"] == "Bearer t0ken"
    assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"


def test_read_missing_file_raises_not_found() -> None:
    async def _run() -> None:
        store = _store(lambda request: httpx.Response(404, json={"message": "Not Found"}))
        with pytest.raises(NotFoundError):
            await store.read("repo", "missing.md")

    asyncio.run(_run())


def test_create_sends_base64_content_and_returns_sha() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json={"content": {"sha": "new-sha"}})

    async def _run() -> None:
        store = _store(handler, requests)
        version = await store.create("repo", "story-2-x.md", "hello", "Initial commit: x")
        assert version.value == "new-sha"

    asyncio.run(_run())

    body = json.loads(requests[0].content)
    assert requests[0].method == "PUT"
    assert body["message"] == "Initial commit: x"
    assert base64.b64decode(body["content"]).decode("utf-8") == "hello"
    assert "sha" not in body


def test_update_sends_expected_version() -> None:
    requests: list[httpx.Request] = []

    async def _run() -> None:
        store = _store(lambda request: httpx.Response(200, json={"content": {"sha": "v2"}}), requests)
        version = await store.update("repo", "f.md", "body", "msg", VersionToken("v1"))
        assert version == VersionToken("v2")

    asyncio.run(_run())

    assert json.loads(requests[0].content)["sha"] == "v1"


def test_update_with_stale_version_raises_conflict() -> None:
    async def _run() -> None:
        store = _store(lambda request: httpx.Response(409, json={"message": "f.md does not match v1"}))
        with pytest.raises(ConflictError):
            await store.update("repo", "f.md", "body", "msg", VersionToken("v1"))

    asyncio.run(_run())


@pytest.mark.parametrize("status_code", [401, 422, 500, 503])
def test_unexpected_status_raises_upstream(status_code: int) -> None:
    async def _run() -> None:
        store = _store(lambda request: httpx.Response(status_code, text="boom"))
        with pytest.raises(UpstreamError):
            await store.update("repo", "f.md", "body", "msg", VersionToken("v1"))
        with pytest.raises(UpstreamError):
            await store.create("repo", "f.md", "body", "msg")

    asyncio.run(_run())


def test_timeout_raises_upstream() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async def _run() -> None:
        store = _store(handler)
        with pytest.raises(UpstreamError):
            await store.read("repo", "f.md")

    asyncio.run(_run())


def test_container_exists() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/repos/oola/present":
            return httpx.Response(200, json={"name": "present"})
        if request.url.path == "/repos/oola/absent":
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(500)

    async def _run() -> None:
        store = _store(handler)
        assert await store.container_exists("present") is True
        assert await store.container_exists("absent") is False
        with pytest.raises(UpstreamError):
            await store.container_exists("broken")

    asyncio.run(_run())


def test_from_config_requires_owner_and_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    config = AppConfigRoot()

    with pytest.raises(ValueError):
        GitHubContentStore.from_config(config)

    config.content_store.owner = "oola"
    with pytest.raises(ValueError):
        GitHubContentStore.from_config(config)

    monkeypatch.setenv("GITHUB_TOKEN", "t0ken")
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    store = GitHubContentStore.from_config(config, client=client)
    assert store.owner == "oola"
    assert store.headers["Authorization"] == "Bearer t0ken"
