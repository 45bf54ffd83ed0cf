"""Remote content store adapter over the GitHub REST API."""

from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Protocol, Union
from urllib.parse import quote

import httpx

from ..models.vault import CommitInfo, ContentObject, RateLimitInfo, StoredContent
from .config import AppConfig
from .errors import (
    ConflictError,
    NotFoundError,
    RateLimitedError,
    RemoteStoreError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

Encoding = Literal["utf-8", "base64"]
IGNORED_SEGMENTS = {"node_modules"}


class ContentStore(Protocol):
    """Path-addressed, versioned object store holding one vault."""

    @property
    def rate_limit(self) -> Optional[RateLimitInfo]: ...

    def list_tree(self) -> List[ContentObject]: ...

    def read(self, path: str) -> StoredContent: ...

    def write(
        self,
        path: str,
        content: Union[str, bytes],
        expected_hash: Optional[str] = None,
        *,
        encoding: Encoding = "utf-8",
        message: Optional[str] = None,
    ) -> str: ...

    def delete(self, path: str, expected_hash: str, *, message: Optional[str] = None) -> None: ...

    def history(self, path: str, limit: int = 20) -> List[CommitInfo]: ...


def _is_ignored(path: str) -> bool:
    return any(
        segment.startswith(".") or segment in IGNORED_SEGMENTS for segment in path.split("/")
    )


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class GitHubContentStore:
    """ContentStore backed by a GitHub repository branch."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        *,
        branch: str = "main",
        root_path: str = "",
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not token:
            raise UnauthorizedError("GitHub credential required")
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.root_path = root_path.strip("/")
        self._owns_client = client is None
        self.client = client or httpx.Client(base_url=api_url, timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self._rate_limit: Optional[RateLimitInfo] = None

    @classmethod
    def from_config(
        cls, config: AppConfig, token: str, *, client: Optional[httpx.Client] = None
    ) -> "GitHubContentStore":
        if not config.vault_configured:
            raise NotFoundError("Vault repository is not configured")
        return cls(
            config.repo_owner or "",
            config.repo_name or "",
            token,
            branch=config.branch,
            root_path=config.root_path,
            api_url=config.github_api_url,
            timeout=config.request_timeout,
            client=client,
        )

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "GitHubContentStore":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def rate_limit(self) -> Optional[RateLimitInfo]:
        return self._rate_limit

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    @property
    def _repo_url(self) -> str:
        return f"/repos/{quote(self.owner, safe='')}/{quote(self.repo, safe='')}"

    def _repo_path(self, path: str) -> str:
        cleaned = path.strip("/")
        return f"{self.root_path}/{cleaned}" if self.root_path else cleaned

    def _contents_url(self, path: str) -> str:
        return f"{self._repo_url}/contents/{quote(self._repo_path(path), safe='/')}"

    def _record_rate_limit(self, response: httpx.Response) -> None:
        headers = response.headers
        if "x-ratelimit-remaining" not in headers:
            return
        try:
            self._rate_limit = RateLimitInfo(
                limit=int(headers.get("x-ratelimit-limit", 0)),
                remaining=int(headers.get("x-ratelimit-remaining", 0)),
                reset=int(headers.get("x-ratelimit-reset", 0)),
                used=int(headers.get("x-ratelimit-used", 0)),
            )
        except ValueError:
            logger.warning("Ignoring malformed rate limit headers: %s", dict(headers))

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            response = self.client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise RemoteStoreError(f"GitHub request timed out: {method} {url}") from exc
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"GitHub request failed: {exc}") from exc

        self._record_rate_limit(response)
        if response.is_success:
            return response

        message = self._error_message(response)
        status_code = response.status_code
        rate_limited = self._rate_limit is not None and self._rate_limit.remaining == 0
        if status_code == 429 or (status_code == 403 and rate_limited):
            raise RateLimitedError(
                f"GitHub rate limit exceeded: {message}", rate_limit=self._rate_limit
            )
        if status_code in (401, 403):
            raise UnauthorizedError(f"GitHub rejected the credential: {message}")
        if status_code == 404:
            raise NotFoundError(f"Not found: {url}")
        if status_code == 409:
            raise ConflictError(message)
        raise RemoteStoreError(
            f"GitHub API error {status_code}: {message}", detail={"status": status_code}
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text[:200] or response.reason_phrase
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return response.reason_phrase

    # ------------------------------------------------------------------
    # ContentStore operations
    # ------------------------------------------------------------------

    def list_tree(self) -> List[ContentObject]:
        """Full recursive listing of the vault at the branch head."""
        ref = self._request(
            "GET", f"{self._repo_url}/git/ref/heads/{quote(self.branch, safe='/')}"
        ).json()
        head_sha = ref["object"]["sha"]

        tree = self._request(
            "GET", f"{self._repo_url}/git/trees/{head_sha}", params={"recursive": "1"}
        ).json()
        if tree.get("truncated"):
            logger.info(
                "Recursive tree truncated, walking sub-trees",
                extra={"owner": self.owner, "repo": self.repo, "branch": self.branch},
            )
            items = self._walk_tree(head_sha)
        else:
            items = tree.get("tree", [])

        return self._to_objects(items)

    def _walk_tree(self, root_sha: str) -> List[Dict[str, Any]]:
        """Collect a tree level by level when the recursive listing is truncated."""
        items: List[Dict[str, Any]] = []
        pending = [(root_sha, "")]
        while pending:
            sha, prefix = pending.pop()
            level = self._request("GET", f"{self._repo_url}/git/trees/{sha}").json()
            for item in level.get("tree", []):
                full_path = f"{prefix}{item['path']}"
                if _is_ignored(full_path):
                    continue
                items.append({**item, "path": full_path})
                if item.get("type") == "tree":
                    pending.append((item["sha"], f"{full_path}/"))
        return items

    def _to_objects(self, items: List[Dict[str, Any]]) -> List[ContentObject]:
        root_prefix = f"{self.root_path}/" if self.root_path else ""
        objects: List[ContentObject] = []
        for item in items:
            path = item.get("path") or ""
            kind = item.get("type")
            if not path or kind not in ("blob", "tree"):
                continue
            if root_prefix:
                if not path.startswith(root_prefix):
                    continue
                path = path[len(root_prefix):]
            if _is_ignored(path):
                continue
            objects.append(
                ContentObject(
                    path=path,
                    name=path.rsplit("/", 1)[-1],
                    kind="dir" if kind == "tree" else "file",
                    content_hash=item.get("sha") if kind == "blob" else None,
                    size=item.get("size"),
                )
            )
        return objects

    def read(self, path: str) -> StoredContent:
        response = self._request("GET", self._contents_url(path), params={"ref": self.branch})
        data = response.json()
        if isinstance(data, list) or data.get("type") != "file":
            raise NotFoundError(f"Not a file: {path}")

        sha = data["sha"]
        size = int(data.get("size") or 0)
        encoded = data.get("content") or ""
        if encoded and data.get("encoding") == "base64":
            raw = self._decode_base64(encoded, path)
        elif size == 0:
            raw = b""
        else:
            # Above the inline payload limit the contents API omits the body.
            raw = self._fetch_large_object(path, sha, data.get("download_url"))

        return StoredContent(path=path, content=raw, content_hash=sha, size=size or len(raw))

    def _fetch_large_object(self, path: str, sha: str, download_url: Optional[str]) -> bytes:
        logger.info("Fetching large object by blob address", extra={"path": path, "sha": sha})
        try:
            blob = self._request("GET", f"{self._repo_url}/git/blobs/{sha}").json()
        except (NotFoundError, RemoteStoreError):
            if not download_url:
                raise
            blob = None

        if blob and blob.get("content") and blob.get("encoding") == "base64":
            return self._decode_base64(blob["content"], path)
        if blob and blob.get("encoding") == "utf-8":
            return str(blob.get("content") or "").encode("utf-8")
        if download_url:
            return self._request("GET", download_url).content
        raise RemoteStoreError(f"No content available for {path}")

    @staticmethod
    def _decode_base64(encoded: str, path: str) -> bytes:
        try:
            return base64.b64decode("".join(encoded.split()))
        except (binascii.Error, ValueError) as exc:
            raise RemoteStoreError(f"Invalid base64 payload for {path}") from exc

    def write(
        self,
        path: str,
        content: Union[str, bytes],
        expected_hash: Optional[str] = None,
        *,
        encoding: Encoding = "utf-8",
        message: Optional[str] = None,
    ) -> str:
        """
        Create or update a file.

        Without ``expected_hash`` the write is a create and fails with
        ConflictError if the path already exists.
        """
        if isinstance(content, bytes):
            payload = base64.b64encode(content).decode("ascii")
        elif encoding == "base64":
            payload = "".join(content.split())
        else:
            payload = base64.b64encode(content.encode("utf-8")).decode("ascii")

        body: Dict[str, Any] = {
            "message": message or (f"Update {path}" if expected_hash else f"Create {path}"),
            "content": payload,
            "branch": self.branch,
        }
        if expected_hash:
            body["sha"] = expected_hash

        try:
            response = self._request("PUT", self._contents_url(path), json=body)
        except RemoteStoreError as exc:
            if exc.detail.get("status") == 422:
                raise ConflictError(
                    f"{path} already exists or the supplied hash is stale"
                ) from exc
            raise

        new_sha = (response.json().get("content") or {}).get("sha")
        if not new_sha:
            raise RemoteStoreError(f"GitHub did not return a hash for {path}")
        logger.info("File written", extra={"path": path, "sha": new_sha})
        return new_sha

    def delete(self, path: str, expected_hash: str, *, message: Optional[str] = None) -> None:
        body = {
            "message": message or f"Delete {path}",
            "sha": expected_hash,
            "branch": self.branch,
        }
        try:
            self._request("DELETE", self._contents_url(path), json=body)
        except RemoteStoreError as exc:
            if exc.detail.get("status") == 422:
                raise ConflictError(f"Stale hash for {path}") from exc
            raise
        logger.info("File deleted", extra={"path": path})

    def history(self, path: str, limit: int = 20) -> List[CommitInfo]:
        response = self._request(
            "GET",
            f"{self._repo_url}/commits",
            params={"path": self._repo_path(path), "sha": self.branch, "per_page": limit},
        )
        history: List[CommitInfo] = []
        for commit in response.json():
            details = commit.get("commit") or {}
            author = details.get("author") or {}
            committer = details.get("committer") or {}
            history.append(
                CommitInfo(
                    sha=commit["sha"],
                    message=details.get("message", ""),
                    date=_parse_datetime(author.get("date") or committer.get("date")),
                    author=author.get("name") or (commit.get("author") or {}).get("login") or "Unknown",
                )
            )
        return history


__all__ = ["ContentStore", "GitHubContentStore", "Encoding"]
