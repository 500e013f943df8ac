"""GitHub issue tracking over the REST API."""

import logging
from typing import Any

import httpx

from sitebot.utils.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"


class GitHubError(UpstreamServiceError):
    service = "github"


def _user(data: dict | None) -> dict | None:
    if not data:
        return None
    return {"login": data["login"], "avatar_url": data.get("avatar_url"), "html_url": data.get("html_url")}


def format_issue(data: dict) -> dict:
    return {
        "id": data["id"],
        "number": data["number"],
        "title": data["title"],
        "body": data.get("body"),
        "state": data["state"],
        "labels": [{"name": label["name"], "color": label.get("color")} for label in data.get("labels", [])],
        "assignees": [_user(a) for a in data.get("assignees", [])],
        "user": _user(data.get("user")),
        "comments": data.get("comments", 0),
        "html_url": data.get("html_url"),
        "created_at": data.get("created_at"),
        "updated_at": data.get("updated_at"),
        "closed_at": data.get("closed_at"),
    }


def format_comment(data: dict) -> dict:
    return {
        "id": data["id"],
        "body": data.get("body"),
        "user": _user(data.get("user")),
        "html_url": data.get("html_url"),
        "created_at": data.get("created_at"),
        "updated_at": data.get("updated_at"),
    }


class GitHubIssueService:
    def __init__(self, token: str, owner: str, repo: str, client: httpx.AsyncClient | None = None):
        self.owner = owner
        self.repo = repo
        self._client = client or httpx.AsyncClient(base_url=API_URL, timeout=15.0)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, self._repo_path + path, headers=self._headers, **kwargs)
        except httpx.HTTPError as e:
            raise GitHubError(f"GitHub request failed: {e}") from e
        if response.status_code == 404:
            raise GitHubError("Issue or repository not found", status_code=404)
        if response.status_code in (401, 403):
            raise GitHubError("GitHub rejected the credentials", status_code=502)
        if response.status_code == 422:
            raise GitHubError(f"GitHub validation failed: {response.json().get('message', '')}", status_code=400)
        if response.status_code >= 400:
            raise GitHubError(f"GitHub returned HTTP {response.status_code}")
        return response.json() if response.content else None

    async def list_issues(
        self,
        state: str = "open",
        labels: list[str] | None = None,
        assignee: str | None = None,
        creator: str | None = None,
        sort: str = "created",
        direction: str = "desc",
        per_page: int = 30,
        page: int = 1,
    ) -> list[dict]:
        """Issues only. The issues endpoint also returns pull requests; those are dropped."""
        params: dict[str, Any] = {"state": state, "sort": sort, "direction": direction, "per_page": per_page, "page": page}
        if labels:
            params["labels"] = ",".join(labels)
        if assignee:
            params["assignee"] = assignee
        if creator:
            params["creator"] = creator
        data = await self._request("GET", "/issues", params=params)
        return [format_issue(item) for item in data if "pull_request" not in item]

    async def get_issue(self, number: int) -> dict:
        return format_issue(await self._request("GET", f"/issues/{number}"))

    async def create_issue(self, title: str, body: str | None = None, labels: list[str] | None = None, assignees: list[str] | None = None) -> dict:
        payload = {"title": title, "body": body, "labels": labels or [], "assignees": assignees or []}
        return format_issue(await self._request("POST", "/issues", json=payload))

    async def update_issue(self, number: int, **fields) -> dict:
        payload = {k: v for k, v in fields.items() if v is not None}
        return format_issue(await self._request("PATCH", f"/issues/{number}", json=payload))

    async def close_issue(self, number: int) -> dict:
        return await self.update_issue(number, state="closed")

    async def list_comments(self, number: int) -> list[dict]:
        return [format_comment(c) for c in await self._request("GET", f"/issues/{number}/comments")]

    async def create_comment(self, number: int, body: str) -> dict:
        return format_comment(await self._request("POST", f"/issues/{number}/comments", json={"body": body}))

    async def update_comment(self, comment_id: int, body: str) -> dict:
        return format_comment(await self._request("PATCH", f"/issues/comments/{comment_id}", json={"body": body}))

    async def delete_comment(self, comment_id: int) -> None:
        await self._request("DELETE", f"/issues/comments/{comment_id}")

    async def list_labels(self) -> list[dict]:
        data = await self._request("GET", "/labels")
        return [{"name": label["name"], "color": label.get("color"), "description": label.get("description")} for label in data]

    async def aclose(self) -> None:
        await self._client.aclose()
