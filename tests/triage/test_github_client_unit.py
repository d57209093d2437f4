"""Unit tests for the GitHub API client.

Requests are served by httpx.MockTransport so the tests can assert on the
exact method, path and JSON body the client sends.
"""

import asyncio
import base64
import json

import httpx
import pytest

from src.triage.github.client import GitHubAPIError, GitHubClient
from src.triage.github.models import PinnedIssue, format_pinned_issues


def run_async(coro):
    return asyncio.run(coro)


class Recorder:
    """Mock transport handler that records requests and replays responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def json_body(self, index=0):
        return json.loads(self.requests[index].content)


def _client(recorder, base_url="https://api.github.com"):
    client = GitHubClient(token="ghp_test", base_url=base_url)
    client._client = httpx.AsyncClient(
        base_url=client.base_url,
        headers=client._default_headers(),
        transport=httpx.MockTransport(recorder),
    )
    return client


async def _call(client, method, *args, **kwargs):
    async with client:
        return await getattr(client, method)(*args, **kwargs)


# ---------------------------------------------------------------------------
# Basics
# ---------------------------------------------------------------------------


def test_default_headers():
    headers = GitHubClient(token="ghp_test")._default_headers()

    assert headers["Authorization"] == "Bearer ghp_test"
    assert headers["Accept"] == "application/vnd.github+json"


@pytest.mark.parametrize(
    "base_url,expected",
    [
        ("https://api.github.com", "https://api.github.com/graphql"),
        ("https://api.github.com/", "https://api.github.com/graphql"),
        ("https://ghe.example.com/api/v3", "https://ghe.example.com/api/graphql"),
    ],
)
def test_graphql_url(base_url, expected):
    assert GitHubClient(token="t", base_url=base_url).graphql_url == expected


def test_error_status_raises():
    recorder = Recorder(httpx.Response(403, text="Forbidden"))

    with pytest.raises(GitHubAPIError) as exc_info:
        run_async(_call(_client(recorder), "create_comment", "octo", "repo", 1, "hi"))

    assert exc_info.value.status_code == 403
    assert exc_info.value.response_body == "Forbidden"


def test_transport_error_raises():
    recorder = Recorder(httpx.ConnectError("refused"))

    with pytest.raises(GitHubAPIError) as exc_info:
        run_async(_call(_client(recorder), "close_pull_request", "octo", "repo", 2))

    assert exc_info.value.status_code is None
    assert "refused" in exc_info.value.message


# ---------------------------------------------------------------------------
# Repository context
# ---------------------------------------------------------------------------


def test_get_readme_decodes_base64():
    encoded = base64.b64encode("# Project\nUsage: run it".encode()).decode()
    recorder = Recorder(
        httpx.Response(200, json={"content": encoded, "encoding": "base64"})
    )

    readme = run_async(_call(_client(recorder), "get_readme", "octo", "repo"))

    assert readme == "# Project\nUsage: run it"
    assert recorder.requests[0].url.path == "/repos/octo/repo/readme"


def test_get_readme_missing_returns_none():
    recorder = Recorder(httpx.Response(404, json={"message": "Not Found"}))

    assert run_async(_call(_client(recorder), "get_readme", "octo", "repo")) is None


def test_get_readme_server_error_raises():
    recorder = Recorder(httpx.Response(500))

    with pytest.raises(GitHubAPIError):
        run_async(_call(_client(recorder), "get_readme", "octo", "repo"))


def test_get_pinned_issues():
    recorder = Recorder(
        httpx.Response(
            200,
            json={
                "data": {
                    "repository": {
                        "pinnedIssues": {
                            "nodes": [
                                {"issue": {"number": 1, "title": "FAQ", "body": "Read"}},
                                {"issue": {"number": 2, "title": "Roadmap", "body": None}},
                                {"issue": None},
                            ]
                        }
                    }
                }
            },
        )
    )

    issues = run_async(_call(_client(recorder), "get_pinned_issues", "octo", "repo"))

    assert issues == [
        PinnedIssue(number=1, title="FAQ", body="Read"),
        PinnedIssue(number=2, title="Roadmap", body=""),
    ]
    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.github.com/graphql"
    assert recorder.json_body()["variables"] == {
        "owner": "octo",
        "name": "repo",
        "first": 3,
    }


def test_get_pinned_issues_graphql_error():
    recorder = Recorder(
        httpx.Response(200, json={"errors": [{"message": "Could not resolve"}]})
    )

    with pytest.raises(GitHubAPIError, match="Could not resolve"):
        run_async(_call(_client(recorder), "get_pinned_issues", "octo", "repo"))


def test_format_pinned_issues():
    issues = [
        PinnedIssue(number=1, title="FAQ", body="Read this"),
        PinnedIssue(number=2, title="Roadmap"),
    ]

    assert format_pinned_issues(issues) == "### FAQ\nRead this\n\n### Roadmap"
    assert format_pinned_issues([]) == ""


def test_list_pull_request_files_paginates():
    page_one = [
        {"filename": "a.py", "status": "added", "additions": 3, "deletions": 0,
         "patch": "+a"},
        {"filename": "b.png", "status": "modified", "additions": 0, "deletions": 0},
    ]
    page_two = [{"filename": "c.py", "status": "removed", "deletions": 4}]
    recorder = Recorder(
        httpx.Response(200, json=page_one),
        httpx.Response(200, json=page_two),
    )

    files = run_async(
        _call(
            _client(recorder),
            "list_pull_request_files",
            "octo",
            "repo",
            42,
            per_page=2,
        )
    )

    assert [f.filename for f in files] == ["a.py", "b.png", "c.py"]
    assert files[0].patch == "+a"
    assert files[1].patch is None
    assert files[2].additions == 0
    assert files[2].deletions == 4
    assert [r.url.params["page"] for r in recorder.requests] == ["1", "2"]
    assert recorder.requests[0].url.path == "/repos/octo/repo/pulls/42/files"


# ---------------------------------------------------------------------------
# Moderation actions
# ---------------------------------------------------------------------------


def test_create_comment():
    recorder = Recorder(httpx.Response(201, json={"id": 1}))

    run_async(_call(_client(recorder), "create_comment", "octo", "repo", 7, "Hello"))

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/repos/octo/repo/issues/7/comments"
    assert recorder.json_body() == {"body": "Hello"}


def test_add_label():
    recorder = Recorder(httpx.Response(200, json=[{"name": "bug"}]))

    run_async(_call(_client(recorder), "add_label", "octo", "repo", 7, "bug"))

    assert recorder.requests[0].url.path == "/repos/octo/repo/issues/7/labels"
    assert recorder.json_body() == {"labels": ["bug"]}


def test_close_issue_with_reason():
    recorder = Recorder(httpx.Response(200, json={"state": "closed"}))

    run_async(_call(_client(recorder), "close_issue", "octo", "repo", 7))

    request = recorder.requests[0]
    assert request.method == "PATCH"
    assert request.url.path == "/repos/octo/repo/issues/7"
    assert recorder.json_body() == {"state": "closed", "state_reason": "not_planned"}


def test_close_pull_request():
    recorder = Recorder(httpx.Response(200, json={"state": "closed"}))

    run_async(_call(_client(recorder), "close_pull_request", "octo", "repo", 9))

    assert recorder.requests[0].url.path == "/repos/octo/repo/pulls/9"
    assert recorder.json_body() == {"state": "closed"}


def test_lock_issue():
    recorder = Recorder(httpx.Response(204))

    run_async(
        _call(_client(recorder), "lock_issue", "octo", "repo", 7, lock_reason="spam")
    )

    request = recorder.requests[0]
    assert request.method == "PUT"
    assert request.url.path == "/repos/octo/repo/issues/7/lock"
    assert recorder.json_body() == {"lock_reason": "spam"}


def test_health_check():
    assert run_async(
        _call(_client(Recorder(httpx.Response(200, json={}))), "health_check")
    )
    assert not run_async(
        _call(_client(Recorder(httpx.ConnectError("down"))), "health_check")
    )
