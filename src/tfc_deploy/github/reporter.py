"""GitHub issue reporting for deployments.

Issue creation goes through PyGithub; comments use the REST API directly so each
operation is exactly one request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests
from github import Auth, Github
from github.Repository import Repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CreatedIssue:
    """Minimal issue metadata returned from GitHub."""

    repository: str
    number: int
    title: str
    url: str | None


@dataclass(frozen=True, slots=True)
class IssueComment:
    id: int
    issue_number: int | None
    body: str
    url: str | None


class IssueReporter:
    """Creates the tracking issue and keeps its progress comments current."""

    def __init__(
        self,
        *,
        token: str,
        repository: str,
        base_url: str = "https://api.github.com",
        repo: Repository | None = None,
        github_api: Github | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required")
        if not repository:
            raise ValueError("GitHub repository is required")

        self._repository_name = repository.strip().strip("/")
        self._rest_base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "tfc-deploy-action",
            }
        )

        if repo is not None:
            self._repo = repo
            self._github = None
            logger.debug("Using injected Repository instance")
            return

        auth = Auth.Token(token)
        self._github = github_api or Github(auth=auth, base_url=self._rest_base_url)
        # Lazy: the first real request is the issue creation itself.
        self._repo = self._github.get_repo(self._repository_name, lazy=True)

    @property
    def repository(self) -> str:
        """Return the configured repository name ("owner/repo")."""

        return self._repository_name

    def _repo_url(self, path: str) -> str:
        path = path.lstrip("/")
        return f"{self._rest_base_url}/repos/{self._repository_name}/{path}"

    @staticmethod
    def _parse_comment(data: Any, *, issue_number: int | None) -> IssueComment:
        if not isinstance(data, dict):
            raise ValueError("Invalid comment response")
        comment_id = data.get("id")
        if not isinstance(comment_id, int) or comment_id <= 0:
            raise ValueError("Invalid comment response: missing id")
        body = data.get("body")
        url = data.get("html_url")
        return IssueComment(
            id=comment_id,
            issue_number=issue_number,
            body=body if isinstance(body, str) else "",
            url=url if isinstance(url, str) else None,
        )

    def create_issue(
        self,
        *,
        title: str,
        body: str,
        labels: list[str] | None = None,
        assignees: list[str] | None = None,
    ) -> CreatedIssue:
        if not title.strip():
            raise ValueError("Issue title is required")

        issue = self._repo.create_issue(
            title=title,
            body=body,
            labels=labels or [],
            assignees=assignees or [],
        )

        created = CreatedIssue(
            repository=self._repository_name,
            number=issue.number,
            title=issue.title,
            url=getattr(issue, "html_url", None),
        )
        logger.info(
            "Issue created",
            extra={"repo": self._repository_name, "issue_number": created.number},
        )
        return created

    def create_comment(self, *, issue_number: int, body: str) -> IssueComment:
        if issue_number <= 0:
            raise ValueError("issue_number must be a positive integer")

        url = self._repo_url(f"issues/{issue_number}/comments")
        resp = self._session.post(url, json={"body": body}, timeout=30)
        resp.raise_for_status()
        comment = self._parse_comment(resp.json(), issue_number=issue_number)

        logger.info(
            "Comment created",
            extra={"issue_number": issue_number, "comment_id": comment.id},
        )
        return comment

    def update_comment(self, *, comment_id: int, body: str) -> IssueComment:
        if comment_id <= 0:
            raise ValueError("comment_id must be a positive integer")

        url = self._repo_url(f"issues/comments/{comment_id}")
        resp = self._session.patch(url, json={"body": body}, timeout=30)
        resp.raise_for_status()
        comment = self._parse_comment(resp.json(), issue_number=None)

        logger.info("Comment updated", extra={"comment_id": comment.id})
        return comment

    def close(self) -> None:
        self._session.close()
        if self._github is not None:
            self._github.close()
