"""Unit tests for the GitHub API client."""

import base64
import json

import httpx
import pytest

from pyghsync.api import GitHubClient
from pyghsync.exceptions import (
    AuthenticationError,
    ConfigError,
    PermissionDeniedError,
    RemoteConflictError,
    RemoteError,
    TransportError,
)


def make_client(handler, **kwargs):
    return GitHubClient(
        token="test_token",
        username="octo",
        api_url="https://api.example.test",
        retry_delay=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestGitHubClientInit:
    """Tests for GitHubClient initialization."""

    def test_init_with_credentials(self):
        client = GitHubClient(token="t", username="octo", api_url="https://x/")
        assert client.token == "t"
        assert client.username == "octo"
        assert client.api_url == "https://x"
        assert client.branch == "main"

    def test_init_without_token_raises_error(self, monkeypatch):
        monkeypatch.setattr("pyghsync.api.config._file_values", {})
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        with pytest.raises(ConfigError, match="token not configured"):
            GitHubClient(token=None, username="octo")

    def test_init_without_username_raises_error(self, monkeypatch):
        monkeypatch.setattr("pyghsync.api.config._file_values", {})
        monkeypatch.delenv("GITHUB_USERNAME", raising=False)
        with pytest.raises(ConfigError, match="username not configured"):
            GitHubClient(token="t", username=None)

    @pytest.mark.asyncio
    async def test_authorization_header_sent(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"login": "octo"})

        async with make_client(handler) as client:
            await client.get_authenticated_user()

        assert seen["auth"] == "Bearer test_token"


class TestRepositoryOperations:
    """Tests for repo_exists and create_repo."""

    @pytest.mark.asyncio
    async def test_repo_exists(self):
        def handler(request):
            assert request.url.path == "/repos/octo/notes"
            return httpx.Response(200, json={"name": "notes"})

        async with make_client(handler) as client:
            assert await client.repo_exists("notes") is True

    @pytest.mark.asyncio
    async def test_repo_missing(self):
        async with make_client(lambda r: httpx.Response(404, json={})) as client:
            assert await client.repo_exists("notes") is False

    @pytest.mark.asyncio
    async def test_create_repo_payload(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"name": "notes"})

        async with make_client(handler) as client:
            await client.create_repo("notes", private=True)

        assert seen == {
            "method": "POST",
            "path": "/user/repos",
            "body": {"name": "notes", "private": True},
        }

    @pytest.mark.asyncio
    async def test_create_repo_failure_raises(self):
        def handler(request):
            return httpx.Response(
                422, json={"message": "name already exists on this account"}
            )

        async with make_client(handler) as client:
            with pytest.raises(RemoteError, match="already exists"):
                await client.create_repo("notes")


class TestContentOperations:
    """Tests for get_file, put_file and delete_file."""

    @pytest.mark.asyncio
    async def test_get_file_decodes_content(self):
        encoded = base64.b64encode(b"hello world").decode()
        wrapped = encoded[:6] + "\n" + encoded[6:]

        def handler(request):
            assert request.url.path == "/repos/octo/notes/contents/dir/a.txt"
            assert request.url.params["ref"] == "main"
            return httpx.Response(200, json={"sha": "abc123", "content": wrapped})

        async with make_client(handler) as client:
            handle = await client.get_file("notes", "dir/a.txt")

        assert handle.version_token == "abc123"
        assert handle.content == "hello world"
        assert handle.exists

    @pytest.mark.asyncio
    async def test_get_missing_file_is_not_an_error(self):
        async with make_client(lambda r: httpx.Response(404, json={})) as client:
            handle = await client.get_file("notes", "a.txt")

        assert handle.version_token is None
        assert handle.content is None
        assert not handle.exists

    @pytest.mark.asyncio
    async def test_get_directory_returns_directory_handle(self):
        def handler(request):
            return httpx.Response(
                200, json=[{"type": "file", "path": "sub/a.txt", "sha": "s1"}]
            )

        async with make_client(handler) as client:
            handle = await client.get_file("notes", "sub")

        assert handle.is_directory
        assert not handle.exists

    @pytest.mark.asyncio
    async def test_put_file_sends_token_and_encoded_content(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"content": {"sha": "new456"}})

        async with make_client(handler, branch="sync") as client:
            token = await client.put_file(
                "notes", "a.txt", "hello", "Automated commit", version_token="old123"
            )

        assert token == "new456"
        assert seen["method"] == "PUT"
        assert seen["body"] == {
            "message": "Automated commit",
            "content": base64.b64encode(b"hello").decode(),
            "branch": "sync",
            "sha": "old123",
        }

    @pytest.mark.asyncio
    async def test_put_new_file_omits_token(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"content": {"sha": "s"}})

        async with make_client(handler) as client:
            await client.put_file("notes", "a.txt", "x", "m")

        assert "sha" not in seen["body"]

    @pytest.mark.asyncio
    async def test_put_conflict_409(self):
        def handler(request):
            return httpx.Response(409, json={"message": "a.txt does not match old"})

        async with make_client(handler) as client:
            with pytest.raises(RemoteConflictError):
                await client.put_file("notes", "a.txt", "x", "m", version_token="old")

    @pytest.mark.asyncio
    async def test_put_conflict_422_missing_sha(self):
        def handler(request):
            return httpx.Response(
                422, json={"message": 'Invalid request.\n\n"sha" wasn\'t supplied.'}
            )

        async with make_client(handler) as client:
            with pytest.raises(RemoteConflictError):
                await client.put_file("notes", "a.txt", "x", "m")

    @pytest.mark.asyncio
    async def test_delete_file(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"commit": {}})

        async with make_client(handler) as client:
            await client.delete_file("notes", "a.txt", "abc", "remove")

        assert seen["method"] == "DELETE"
        assert seen["body"] == {"message": "remove", "sha": "abc", "branch": "main"}


class TestErrorHandling:
    """Tests for status mapping and retries."""

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        async with make_client(lambda r: httpx.Response(401, json={})) as client:
            with pytest.raises(AuthenticationError):
                await client.repo_exists("notes")

    @pytest.mark.asyncio
    async def test_forbidden(self):
        async with make_client(lambda r: httpx.Response(403, json={})) as client:
            with pytest.raises(PermissionDeniedError):
                await client.get_file("notes", "a.txt")

    @pytest.mark.asyncio
    async def test_server_error_retried_then_succeeds(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            if len(attempts) < 3:
                return httpx.Response(502, json={"message": "Bad gateway"})
            return httpx.Response(200, json={"name": "notes"})

        async with make_client(handler) as client:
            assert await client.repo_exists("notes") is True

        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_server_error_exhausts_retries(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            return httpx.Response(500, json={})

        async with make_client(handler, max_retries=2) as client:
            with pytest.raises(RemoteError, match="status 500"):
                await client.repo_exists("notes")

        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_network_error_becomes_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler, max_retries=1) as client:
            with pytest.raises(TransportError, match="Network error"):
                await client.get_file("notes", "a.txt")

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            return httpx.Response(400, json={"message": "Problems parsing JSON"})

        async with make_client(handler) as client:
            with pytest.raises(RemoteError, match="Problems parsing JSON"):
                await client.put_file("notes", "a.txt", "x", "m")

        assert len(attempts) == 1
