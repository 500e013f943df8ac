"""GitHub issue endpoints for the platform's feedback and support tracker."""

from collections.abc import AsyncGenerator
from typing import Literal

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from sitebot.auth.dependencies import CurrentUser, get_current_user
from sitebot.config.settings import get_settings
from sitebot.github.schemas import CommentRequest, CreateIssueRequest, UpdateIssueRequest
from sitebot.github.service import GitHubIssueService

router = APIRouter(prefix="/api/v1/github/issues", tags=["GitHub"])


async def get_issue_service(
    x_github_token: str | None = Header(None),
    owner: str | None = Query(None),
    repo: str | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
) -> AsyncGenerator[GitHubIssueService, None]:
    """Token from settings, else the X-GitHub-Token header. Repository from settings, else query params."""
    settings = get_settings()
    token = settings.GITHUB_TOKEN or x_github_token
    owner = owner or settings.GITHUB_OWNER
    repo = repo or settings.GITHUB_REPO
    if not token:
        raise HTTPException(status_code=400, detail="GitHub token is not configured")
    if not owner or not repo:
        raise HTTPException(status_code=400, detail="GitHub repository is not configured")
    service = GitHubIssueService(token, owner, repo)
    try:
        yield service
    finally:
        await service.aclose()


@router.get("", summary="List issues", description="Issues in the configured repository. Pull requests are excluded.")
async def list_issues(
    state: Literal["open", "closed", "all"] = "open",
    labels: str | None = Query(None, description="Comma-separated label names"),
    assignee: str | None = None,
    creator: str | None = None,
    sort: Literal["created", "updated", "comments"] = "created",
    direction: Literal["asc", "desc"] = "desc",
    per_page: int = Query(30, ge=1, le=100),
    page: int = Query(1, ge=1),
    github: GitHubIssueService = Depends(get_issue_service),
):
    issues = await github.list_issues(
        state=state,
        labels=[label.strip() for label in labels.split(",") if label.strip()] if labels else None,
        assignee=assignee,
        creator=creator,
        sort=sort,
        direction=direction,
        per_page=per_page,
        page=page,
    )
    return {"status": "success", "data": issues}


@router.post("", status_code=201, summary="Create an issue")
async def create_issue(body: CreateIssueRequest, github: GitHubIssueService = Depends(get_issue_service)):
    issue = await github.create_issue(body.title, body.body, body.labels, body.assignees)
    return {"status": "success", "data": issue}


@router.get("/labels", summary="List labels")
async def labels(github: GitHubIssueService = Depends(get_issue_service)):
    return {"status": "success", "data": await github.list_labels()}


@router.get("/{number}", summary="Get an issue")
async def get_issue(number: int, github: GitHubIssueService = Depends(get_issue_service)):
    return {"status": "success", "data": await github.get_issue(number)}


@router.patch("/{number}", summary="Update an issue")
async def update_issue(number: int, body: UpdateIssueRequest, github: GitHubIssueService = Depends(get_issue_service)):
    return {"status": "success", "data": await github.update_issue(number, **body.model_dump())}


@router.delete("/{number}", summary="Close an issue", description="GitHub issues cannot be deleted; this closes it.")
async def close_issue(number: int, github: GitHubIssueService = Depends(get_issue_service)):
    return {"status": "success", "data": await github.close_issue(number)}


@router.get("/{number}/comments", summary="List comments")
async def list_comments(number: int, github: GitHubIssueService = Depends(get_issue_service)):
    return {"status": "success", "data": await github.list_comments(number)}


@router.post("/{number}/comments", status_code=201, summary="Add a comment")
async def create_comment(number: int, body: CommentRequest, github: GitHubIssueService = Depends(get_issue_service)):
    return {"status": "success", "data": await github.create_comment(number, body.body)}


@router.patch("/comments/{comment_id}", summary="Edit a comment")
async def update_comment(comment_id: int, body: CommentRequest, github: GitHubIssueService = Depends(get_issue_service)):
    return {"status": "success", "data": await github.update_comment(comment_id, body.body)}


@router.delete("/comments/{comment_id}", status_code=204, summary="Delete a comment")
async def delete_comment(comment_id: int, github: GitHubIssueService = Depends(get_issue_service)):
    await github.delete_comment(comment_id)
