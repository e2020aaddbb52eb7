from __future__ import annotations

import base64
import os
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from story_relay.config.schema import AppConfigRoot
from story_relay.content.store import ContentSnapshot, VersionToken
from story_relay.domain.errors import ConflictError, NotFoundError, UpstreamError


def _encode(content: str) -> str:
    return base64.b64encode(content.encode("utf-8")).decode("ascii")


def _decode(payload: str) -> str:
    # GitHub wraps base64 bodies at 60 columns; b64decode drops the newlines.
    return base64.b64decode(payload).decode("utf-8")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text[:200]


def _written_version(response: httpx.Response) -> VersionToken:
    try:
        sha = response.json()["content"]["sha"]
    except (ValueError, KeyError, TypeError) as exc:
        raise UpstreamError("GitHub write response did not include a content sha") from exc
    return VersionToken(str(sha))


class GitHubContentStore:
    """ContentStore over the GitHub repository contents API.

    One repository per container; ``owner`` is the account holding them. The
    blob ``sha`` is used as the version token.
    """

    def __init__(
        self,
        *,
        owner: str,
        token: str | None = None,
        base_url: str = "https://api.github.com",
        api_version: str = "2022-11-28",
        timeout_s: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.owner = owner
        self.base_url = base_url.rstrip("/")
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": api_version,
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s))

    @classmethod
    def from_config(cls, config: AppConfigRoot, client: httpx.AsyncClient | None = None) -> "GitHubContentStore":
        settings = config.content_store
        if not settings.owner:
            raise ValueError("content_store.owner is required (or set STORY_RELAY_GITHUB_OWNER)")

        token = None
        if settings.token_env:
            token = os.getenv(settings.token_env)
            if not token:
                raise ValueError(f"Missing required GitHub token env: {settings.token_env}")

        return cls(
            owner=settings.owner,
            token=token,
            base_url=settings.base_url,
            api_version=settings.api_version,
            timeout_s=settings.timeout_s,
            client=client,
        )

    async def __aenter__(self) -> "GitHubContentStore":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _repo_url(self, container: str) -> str:
        return f"{self.base_url}/repos/{quote(self.owner, safe='')}/{quote(container, safe='')}"

    def _contents_url(self, container: str, path: str) -> str:
        return f"{self._repo_url(container)}/contents/{quote(path.lstrip('/'))}"

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, headers=self.headers, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("GitHub {} {} timed out", method, url)
            raise UpstreamError(f"GitHub request timed out: {method} {url}") from exc
        except httpx.HTTPError as exc:
            logger.warning("GitHub {} {} failed: {}", method, url, exc)
            raise UpstreamError(f"GitHub request failed: {method} {url}: {exc}") from exc

    async def create(self, container: str, path: str, content: str, message: str) -> VersionToken:
        response = await self._send(
            "PUT",
            self._contents_url(container, path),
            json={"message": message, "content": _encode(content)},
        )
        if response.status_code not in (200, 201):
            raise UpstreamError(
                f"GitHub create {container}/{path} failed: HTTP {response.status_code}: {_error_message(response)}"
            )
        version = _written_version(response)
        logger.debug("Created {}/{} at {}", container, path, version)
        return version

    async def read(self, container: str, path: str) -> ContentSnapshot:
        response = await self._send("GET", self._contents_url(container, path))
        if response.status_code == 404:
            raise NotFoundError(f"{container}/{path} not found")
        if response.status_code != 200:
            raise UpstreamError(
                f"GitHub read {container}/{path} failed: HTTP {response.status_code}: {_error_message(response)}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(f"GitHub read {container}/{path} returned invalid JSON") from exc
        if not isinstance(payload, dict) or payload.get("type", "file") != "file":
            raise UpstreamError(f"{container}/{path} is not a file")
        if payload.get("encoding") != "base64" or "sha" not in payload:
            raise UpstreamError(f"GitHub read {container}/{path} returned no inline base64 content")

        try:
            content = _decode(str(payload.get("content") or ""))
        except ValueError as exc:
            raise UpstreamError(f"GitHub read {container}/{path} returned undecodable content") from exc
        return ContentSnapshot(content=content, version=VersionToken(str(payload["sha"])))

    async def update(
        self,
        container: str,
        path: str,
        content: str,
        message: str,
        expected_version: VersionToken,
    ) -> VersionToken:
        response = await self._send(
            "PUT",
            self._contents_url(container, path),
            json={"message": message, "content": _encode(content), "sha": expected_version.value},
        )
        if response.status_code == 409:
            raise ConflictError(
                f"{container}/{path} changed since version {expected_version}: {_error_message(response)}"
            )
        if response.status_code != 200:
            raise UpstreamError(
                f"GitHub update {container}/{path} failed: HTTP {response.status_code}: {_error_message(response)}"
            )
        version = _written_version(response)
        logger.debug("Updated {}/{} {} -> {}", container, path, expected_version, version)
        return version

    async def container_exists(self, container: str) -> bool:
        response = await self._send("GET", self._repo_url(container))
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise UpstreamError(
            f"GitHub repository lookup {container} failed: HTTP {response.status_code}: {_error_message(response)}"
        )
