"""GitHub API client for triage reads and moderation actions.

This module provides an async wrapper around the GitHub API for:
- Reading repository context (README, pinned issues, PR file changes)
- Creating comments on issues and pull requests
- Adding labels
- Closing and locking issues and pull requests

Requests are issued once. Failed calls raise GitHubAPIError and are not
retried; the action layer records them as partial failures.
"""

import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from src.triage.github.models import FileChange, PinnedIssue


logger = logging.getLogger(__name__)


PINNED_ISSUES_QUERY = """
query($owner: String!, $name: String!, $first: Int!) {
  repository(owner: $owner, name: $name) {
    pinnedIssues(first: $first) {
      nodes {
        issue {
          number
          title
          body
        }
      }
    }
  }
}
"""


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response.
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class GitHubClient:
    """Async GitHub API client.

    Supports both github.com and GitHub Enterprise Server (pass the
    Enterprise REST root, e.g. https://ghe.example.com/api/v3).

    Attributes:
        token: GitHub API token (PAT or GitHub App token).
        base_url: Base URL for the GitHub REST API.
        timeout: Request timeout in seconds.

    Example:
        >>> client = GitHubClient(token="ghp_xxx")
        >>> async with client:
        ...     await client.create_comment("owner", "repo", 123, "Hello!")
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
            )
        return self._client

    @property
    def graphql_url(self) -> str:
        """GraphQL endpoint matching the REST base URL."""
        if self.base_url.endswith("/api/v3"):
            return self.base_url[: -len("/v3")] + "/graphql"
        return f"{self.base_url}/graphql"

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "triage-gate/1.0",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(
        self,
        exc_type: Any,
        exc_val: Any,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make a single HTTP request.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH).
            path: API path or absolute URL.
            json_data: Optional JSON body for the request.
            params: Optional query parameters.

        Returns:
            The HTTP response from GitHub.

        Raises:
            GitHubAPIError: On transport failure or a 4xx/5xx response.
        """
        try:
            response = await self.client.request(
                method=method,
                url=path,
                json=json_data,
                params=params,
            )
        except httpx.RequestError as e:
            logger.error(
                "GitHub API request error",
                extra={"path": path, "method": method, "error": str(e)},
            )
            raise GitHubAPIError(
                message=f"Request failed: {e}",
                request_url=f"{self.base_url}{path}",
            ) from e

        if response.status_code >= 400:
            error_body = response.text
            logger.error(
                "GitHub API error",
                extra={
                    "status_code": response.status_code,
                    "path": path,
                    "method": method,
                    "response_body": error_body[:500],
                },
            )
            raise GitHubAPIError(
                message=f"GitHub API error: {response.status_code}",
                status_code=response.status_code,
                response_body=error_body,
                request_url=str(response.url),
            )

        return response

    # -------------------------------------------------------------------------
    # Repository context
    # -------------------------------------------------------------------------
    async def get_readme(self, owner: str, repo: str) -> Optional[str]:
        """Fetch and decode the repository README.

        Returns:
            README text, or None when the repository has no README.

        Raises:
            GitHubAPIError: If the request fails for another reason.
        """
        try:
            response = await self._request(
                method="GET", path=f"/repos/{owner}/{repo}/readme"
            )
        except GitHubAPIError as e:
            if e.status_code == 404:
                logger.debug(
                    "Repository has no README",
                    extra={"owner": owner, "repo": repo},
                )
                return None
            raise

        data = response.json()
        content = data.get("content") or ""
        if data.get("encoding") == "base64":
            return base64.b64decode(content).decode("utf-8", errors="replace")
        return content

    async def get_pinned_issues(
        self,
        owner: str,
        repo: str,
        limit: int = 3,
    ) -> List[PinnedIssue]:
        """Fetch pinned issues through the GraphQL API.

        Raises:
            GitHubAPIError: If the request fails or returns GraphQL errors.
        """
        response = await self._request(
            method="POST",
            path=self.graphql_url,
            json_data={
                "query": PINNED_ISSUES_QUERY,
                "variables": {"owner": owner, "name": repo, "first": limit},
            },
        )
        data = response.json()
        if data.get("errors"):
            raise GitHubAPIError(
                message=f"GraphQL error: {data['errors'][0].get('message', '')}",
                status_code=response.status_code,
                response_body=response.text,
                request_url=self.graphql_url,
            )

        repository = (data.get("data") or {}).get("repository") or {}
        nodes = (repository.get("pinnedIssues") or {}).get("nodes") or []
        issues = []
        for node in nodes:
            issue = (node or {}).get("issue")
            if not issue:
                continue
            issues.append(
                PinnedIssue(
                    number=issue["number"],
                    title=issue.get("title") or "",
                    body=issue.get("body") or "",
                )
            )
        return issues

    async def list_pull_request_files(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        per_page: int = 100,
        max_pages: int = 30,
    ) -> List[FileChange]:
        """List the files changed by a pull request, in GitHub's order.

        Raises:
            GitHubAPIError: If a request fails.
        """
        path = f"/repos/{owner}/{repo}/pulls/{pr_number}/files"
        files: List[FileChange] = []

        for page in range(1, max_pages + 1):
            response = await self._request(
                method="GET",
                path=path,
                params={"per_page": per_page, "page": page},
            )
            batch = response.json()
            files.extend(
                FileChange(
                    filename=item["filename"],
                    status=item.get("status") or "modified",
                    additions=item.get("additions") or 0,
                    deletions=item.get("deletions") or 0,
                    patch=item.get("patch"),
                )
                for item in batch
            )
            if len(batch) < per_page:
                break

        logger.debug(
            "Listed pull request files",
            extra={
                "owner": owner,
                "repo": repo,
                "pr_number": pr_number,
                "file_count": len(files),
            },
        )
        return files

    # -------------------------------------------------------------------------
    # Moderation actions
    # -------------------------------------------------------------------------
    async def create_comment(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> Dict[str, Any]:
        """Create a comment on an issue or pull request.

        Raises:
            GitHubAPIError: If the request fails.
        """
        path = f"/repos/{owner}/{repo}/issues/{issue_number}/comments"

        logger.info(
            "Creating comment",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "body_length": len(body),
            },
        )

        response = await self._request(
            method="POST",
            path=path,
            json_data={"body": body},
        )
        return response.json()

    async def add_label(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        label: str,
    ) -> List[Dict[str, Any]]:
        """Add a label to an issue or pull request.

        Returns:
            List of all labels on the artifact after adding.

        Raises:
            GitHubAPIError: If the request fails.
        """
        path = f"/repos/{owner}/{repo}/issues/{issue_number}/labels"

        logger.info(
            "Adding label",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "label": label,
            },
        )

        response = await self._request(
            method="POST",
            path=path,
            json_data={"labels": [label]},
        )
        return response.json()

    async def close_issue(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        state_reason: str = "not_planned",
    ) -> Dict[str, Any]:
        """Close an issue with a state reason (completed or not_planned).

        Raises:
            GitHubAPIError: If the request fails.
        """
        logger.info(
            "Closing issue",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "state_reason": state_reason,
            },
        )

        response = await self._request(
            method="PATCH",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}",
            json_data={"state": "closed", "state_reason": state_reason},
        )
        return response.json()

    async def close_pull_request(
        self,
        owner: str,
        repo: str,
        pr_number: int,
    ) -> Dict[str, Any]:
        """Close a pull request without merging.

        Raises:
            GitHubAPIError: If the request fails.
        """
        logger.info(
            "Closing pull request",
            extra={"owner": owner, "repo": repo, "pr_number": pr_number},
        )

        response = await self._request(
            method="PATCH",
            path=f"/repos/{owner}/{repo}/pulls/{pr_number}",
            json_data={"state": "closed"},
        )
        return response.json()

    async def lock_issue(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        lock_reason: str = "spam",
    ) -> None:
        """Lock the conversation on an issue or pull request.

        Raises:
            GitHubAPIError: If the request fails.
        """
        logger.info(
            "Locking conversation",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "lock_reason": lock_reason,
            },
        )

        await self._request(
            method="PUT",
            path=f"/repos/{owner}/{repo}/issues/{issue_number}/lock",
            json_data={"lock_reason": lock_reason},
        )

    async def health_check(self) -> bool:
        """Check if the GitHub API is accessible.

        Returns:
            True if healthy, False otherwise.
        """
        try:
            response = await self.client.get("/rate_limit")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(
                "GitHub API health check failed",
                extra={"error": str(e)},
            )
            return False
