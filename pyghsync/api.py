"""API client for the GitHub repository contents API."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any
from urllib.parse import quote

import httpx

from .config import config
from .exceptions import (
    AuthenticationError,
    ConfigError,
    InvalidResponseError,
    PermissionDeniedError,
    RateLimitError,
    RemoteConflictError,
    RemoteError,
    RemoteNotFoundError,
    TransportError,
)
from .models import RemoteFileHandle
from .utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    decode_content,
    encode_content,
)

logger = logging.getLogger(__name__)


class GitHubClient:
    """Async client for the parts of the GitHub API the mirror needs."""

    def __init__(
        self,
        token: str | None = None,
        username: str | None = None,
        api_url: str | None = None,
        branch: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize GitHub API client.

        Args:
            token: Personal access token (uses config if not provided)
            username: Account owning the repositories (uses config if not provided)
            api_url: Optional API URL (uses config if not provided)
            branch: Branch files are committed to (uses config if not provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (uses config if not provided)
            transport: Optional httpx transport, used by tests
        """
        self.token = token or config.token
        self.username = username or config.username
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.branch = branch or config.branch
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout if timeout is not None else config.timeout
        self._transport = transport

        if not self.token:
            raise ConfigError(
                "GitHub token not configured. Please set GITHUB_TOKEN "
                "or run 'ghsync init'."
            )
        if not self.username:
            raise ConfigError(
                "GitHub username not configured. Please set GITHUB_USERNAME "
                "or run 'ghsync init'."
            )

        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": "2022-11-28",
                },
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Jitter of +/- 25% avoids synchronized retries
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract the API's error message from a response body, if any."""
        try:
            data = response.json()
        except ValueError:
            return ""
        if isinstance(data, dict):
            return str(data.get("message") or "")
        return ""

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[Exception, bool]:
        """Handle HTTP errors and determine if retry should occur.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code
        message = self._error_message(e.response)

        if status_code == 401:
            raise AuthenticationError("Invalid or expired GitHub token") from e
        elif status_code == 403 and e.response.headers.get(
            "X-RateLimit-Remaining"
        ) == "0":
            error = RateLimitError("Rate limit exceeded - please try again later")
            return (error, attempt < self.max_retries)
        elif status_code == 403:
            raise PermissionDeniedError(
                f"Access forbidden - check token scopes"
                f"{': ' + message if message else ''}"
            ) from e
        elif status_code == 404:
            raise RemoteNotFoundError("Resource not found") from e
        elif status_code == 409 or (status_code == 422 and "sha" in message.lower()):
            raise RemoteConflictError(
                f"Version conflict{': ' + message if message else ''}"
            ) from e
        elif status_code == 429:
            error = RateLimitError("Rate limit exceeded - please try again later")
            return (error, attempt < self.max_retries)
        else:
            error_msg = f"API request failed with status {status_code}"
            if message:
                error_msg = f"{error_msg}: {message}"
            error = RemoteError(error_msg)
            # Retry on 5xx server errors
            should_retry = 500 <= status_code < 600 and attempt < self.max_retries
            return (error, should_retry)

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            RemoteError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()

                if response.content:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise InvalidResponseError(
                            "Invalid JSON response from server"
                        ) from e
                return {}

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error

                if should_retry:
                    retry_after = e.response.headers.get("Retry-After")
                    rate_limited = isinstance(error, RateLimitError)
                    if rate_limited and retry_after and retry_after.isdigit():
                        delay = float(retry_after)
                    else:
                        delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        f"{method} {endpoint} failed ({error}), "
                        f"retrying in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise error from e
            except RemoteError:
                raise
            except httpx.RequestError as e:
                error = TransportError(f"Network error: {e}")
                last_exception = error
                if attempt < self.max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        f"{method} {endpoint} failed ({e}), retrying in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise RemoteError("Request failed after all retry attempts")

    def _contents_endpoint(self, repo: str, path: str) -> str:
        return f"/repos/{self.username}/{repo}/contents/{quote(path, safe='/')}"

    # =========================
    # Repository Operations
    # =========================

    async def get_authenticated_user(self) -> dict[str, Any]:
        """Get the account the token belongs to.

        Returns:
            User object from the API (``login``, ``name``, ...)
        """
        result: dict[str, Any] = await self._request("GET", "/user")
        return result

    async def repo_exists(self, repo: str) -> bool:
        """Check whether a repository exists for the configured user.

        Args:
            repo: Repository name

        Returns:
            True if the repository exists and is accessible
        """
        try:
            await self._request("GET", f"/repos/{self.username}/{repo}")
        except RemoteNotFoundError:
            return False
        return True

    async def create_repo(self, repo: str, private: bool = True) -> None:
        """Create a repository owned by the authenticated user.

        Args:
            repo: Repository name
            private: Whether the repository is private

        Raises:
            RemoteError: If GitHub rejects the request
        """
        await self._request(
            "POST", "/user/repos", json={"name": repo, "private": private}
        )
        logger.info(f"Created repository {self.username}/{repo}")

    # =========================
    # Content Operations
    # =========================

    async def get_file(self, repo: str, path: str) -> RemoteFileHandle:
        """Fetch a file's current version token and content.

        A missing file is not an error; it yields a handle whose
        ``version_token`` is None. A directory yields a handle with
        ``is_directory`` set.

        Args:
            repo: Repository name
            path: Path of the file inside the repository

        Returns:
            RemoteFileHandle for the path
        """
        try:
            data = await self._request(
                "GET",
                self._contents_endpoint(repo, path),
                params={"ref": self.branch},
            )
        except RemoteNotFoundError:
            return RemoteFileHandle(path=path)

        if isinstance(data, list):
            return RemoteFileHandle(path=path, is_directory=True)
        if not isinstance(data, dict) or "sha" not in data:
            raise InvalidResponseError(f"'{path}' is not a file in {repo}")

        return RemoteFileHandle(
            path=path,
            version_token=data["sha"],
            content=decode_content(data.get("content")),
        )

    async def put_file(
        self,
        repo: str,
        path: str,
        content: str,
        message: str,
        version_token: str | None = None,
    ) -> str:
        """Create or update a file.

        Args:
            repo: Repository name
            path: Path of the file inside the repository
            content: New file text
            message: Commit message
            version_token: Token of the version being replaced, if any

        Returns:
            Version token of the written file

        Raises:
            RemoteConflictError: If ``version_token`` is stale
        """
        payload: dict[str, Any] = {
            "message": message,
            "content": encode_content(content),
            "branch": self.branch,
        }
        if version_token:
            payload["sha"] = version_token

        data = await self._request(
            "PUT", self._contents_endpoint(repo, path), json=payload
        )
        try:
            return str(data["content"]["sha"])
        except (KeyError, TypeError) as e:
            raise InvalidResponseError(f"Missing content sha for '{path}'") from e

    async def delete_file(
        self, repo: str, path: str, version_token: str, message: str
    ) -> None:
        """Delete a file.

        Args:
            repo: Repository name
            path: Path of the file inside the repository
            version_token: Token of the version being deleted
            message: Commit message

        Raises:
            RemoteConflictError: If ``version_token`` is stale
        """
        await self._request(
            "DELETE",
            self._contents_endpoint(repo, path),
            json={"message": message, "sha": version_token, "branch": self.branch},
        )
