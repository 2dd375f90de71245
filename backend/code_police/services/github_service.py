"""GitHub REST API client and webhook signature verification."""

import hashlib
import hmac
import logging
import os
import secrets
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from code_police.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class CommitFile:
    """File touched by a commit."""

    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    patch: str | None = None


@dataclass
class CommitAuthor:
    """Git author of a commit."""

    name: str
    email: str | None


@dataclass
class Commit:
    """Commit metadata with its changed files."""

    sha: str
    message: str
    author: CommitAuthor
    files: list[CommitFile]


@dataclass
class DependentFile:
    """File that references the file under analysis."""

    path: str
    snippet: str


def generate_webhook_secret() -> str:
    """Generate a 32-byte hex webhook secret."""
    return secrets.token_hex(32)


class GitHubService:
    """Service for GitHub API operations on behalf of a user.

    Every call takes the user's OAuth access token; nothing is cached
    between calls.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.api_base = settings.github_api_base.rstrip("/")
        self.timeout = settings.github_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_base,
            timeout=self.timeout,
            transport=self.transport,
        )

    @staticmethod
    def _headers(access_token: str, accept: str = "application/vnd.github+json") -> dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": accept,
            "X-GitHub-Api-Version": "2022-11-28",
        }

    # =========================================================================
    # Commits and Contents
    # =========================================================================

    async def fetch_commit(self, access_token: str, owner: str, repo: str, ref: str) -> Commit:
        """Get commit metadata and changed files.

        Args:
            access_token: User's OAuth access token
            owner: Repository owner
            repo: Repository name
            ref: Commit SHA or branch name

        Returns:
            Commit with its file list
        """
        async with self._client() as client:
            response = await client.get(
                f"/repos/{owner}/{repo}/commits/{quote(ref, safe='')}",
                headers=self._headers(access_token),
            )
            response.raise_for_status()
            data = response.json()

        commit = data.get("commit", {})
        author = commit.get("author") or {}
        return Commit(
            sha=data["sha"],
            message=commit.get("message", ""),
            author=CommitAuthor(name=author.get("name", "unknown"), email=author.get("email")),
            files=[
                CommitFile(
                    filename=f["filename"],
                    status=f.get("status", "modified"),
                    additions=f.get("additions", 0),
                    deletions=f.get("deletions", 0),
                    patch=f.get("patch"),
                )
                for f in data.get("files", [])
            ],
        )

    async def get_file_content(
        self,
        access_token: str,
        owner: str,
        repo: str,
        path: str,
        ref: str | None = None,
    ) -> str:
        """Get raw file content at a ref.

        Args:
            access_token: User's OAuth access token
            owner: Repository owner
            repo: Repository name
            path: File path
            ref: Optional commit/branch reference

        Returns:
            File content as string
        """
        params = {"ref": ref} if ref else None
        async with self._client() as client:
            response = await client.get(
                f"/repos/{owner}/{repo}/contents/{quote(path)}",
                params=params,
                headers=self._headers(access_token, accept="application/vnd.github.raw"),
            )
            response.raise_for_status()
            return response.text

    async def find_dependent_files(
        self,
        access_token: str,
        owner: str,
        repo: str,
        path: str,
        limit: int | None = None,
    ) -> list[DependentFile]:
        """Search the repository for files that mention this file's module name.

        Code search is rate limited aggressively, so callers treat this as
        optional context.
        """
        limit = settings.dependent_files_limit if limit is None else limit
        stem = os.path.splitext(os.path.basename(path))[0]
        if not stem or limit <= 0:
            return []

        async with self._client() as client:
            response = await client.get(
                "/search/code",
                params={"q": f'"{stem}" repo:{owner}/{repo}', "per_page": limit + 1},
                headers=self._headers(access_token, accept="application/vnd.github.text-match+json"),
            )
            response.raise_for_status()
            items = response.json().get("items", [])

        dependents = []
        for item in items:
            if item.get("path") == path:
                continue
            matches = item.get("text_matches") or []
            snippet = matches[0].get("fragment", "") if matches else ""
            dependents.append(DependentFile(path=item["path"], snippet=snippet))
            if len(dependents) >= limit:
                break
        return dependents

    # =========================================================================
    # Webhooks
    # =========================================================================

    async def create_webhook(
        self,
        access_token: str,
        owner: str,
        repo: str,
        webhook_url: str,
        secret: str,
    ) -> int:
        """Create a push/pull_request webhook and return its id."""
        async with self._client() as client:
            response = await client.post(
                f"/repos/{owner}/{repo}/hooks",
                json={
                    "name": "web",
                    "active": True,
                    "events": ["push", "pull_request"],
                    "config": {
                        "url": webhook_url,
                        "content_type": "json",
                        "secret": secret,
                        "insecure_ssl": "0",
                    },
                },
                headers=self._headers(access_token),
            )
            response.raise_for_status()
            return response.json()["id"]

    async def delete_webhook(self, access_token: str, owner: str, repo: str, webhook_id: int) -> None:
        """Delete a webhook. A hook that is already gone counts as deleted."""
        async with self._client() as client:
            response = await client.delete(
                f"/repos/{owner}/{repo}/hooks/{webhook_id}",
                headers=self._headers(access_token),
            )
            if response.status_code == 404:
                return
            response.raise_for_status()

    # =========================================================================
    # Comments
    # =========================================================================

    async def post_issue_comment(
        self,
        access_token: str,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> dict[str, Any]:
        """Post a comment on an issue or pull request."""
        async with self._client() as client:
            response = await client.post(
                f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
                json={"body": body},
                headers=self._headers(access_token),
            )
            response.raise_for_status()
            return response.json()

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @staticmethod
    def verify_webhook_signature(payload: bytes, signature: str, secret: str) -> bool:
        """Verify a GitHub webhook signature.

        Uses constant-time comparison to prevent timing attacks.

        Args:
            payload: Raw request body, exactly as received
            signature: X-Hub-Signature-256 header value
            secret: Webhook secret of the project

        Returns:
            True if signature is valid
        """
        if not secret or not signature or not signature.startswith("sha256="):
            return False

        expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()

        # Header values arrive latin-1 decoded; compare as bytes
        return hmac.compare_digest(f"sha256={expected}".encode(), signature.encode("utf-8", "surrogateescape"))

    @classmethod
    def authenticate_delivery(cls, payload: bytes, signature: str | None, secret: str | None) -> bool:
        """Decide whether a delivery may be processed.

        A project with a secret requires a matching signature. A project
        without one only accepts unsigned deliveries.
        """
        if secret:
            return cls.verify_webhook_signature(payload, signature or "", secret)
        return not signature
