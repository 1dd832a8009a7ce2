from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .git import GitRepo, format_pr_body, title_from_branch
from .github import GitHubClient, split_reviewers, summarize_pull
from ..errors import UpstreamError, ValidationError

DEFAULT_APPROVE_COMMENT = "LGTM! 👍"


@dataclass
class PullRequestDraft:
    source: str
    target: str
    title: str
    body: str
    reviewers: list[str]


@dataclass
class PullRequestService:
    """Pull-request workflow for the repository checked out in `git.cwd`."""

    git: GitRepo
    github: GitHubClient
    default_target: str = "develop"

    def draft(
        self,
        *,
        source: str | None = None,
        target: str | None = None,
        title: str | None = None,
        body: str | None = None,
        reviewers: str | list[str] | None = None,
    ) -> PullRequestDraft:
        src = source or self.git.current_branch()
        dst = target or self.default_target
        if src == dst:
            raise ValidationError(f"Source branch ({src}) and target branch ({dst}) cannot be the same.")
        return PullRequestDraft(
            source=src,
            target=dst,
            title=title or title_from_branch(src),
            body=body or "Please review this PR.",
            reviewers=split_reviewers(reviewers),
        )

    def candidate_reviewers(self) -> list[str]:
        owner, repo = self.git.github_slug()
        me = self.github.current_user()
        return [r for r in self.github.list_collaborators(owner, repo) if r != me]

    def create(self, draft: PullRequestDraft) -> dict[str, Any]:
        owner, repo = self.git.github_slug()
        if f"origin/{draft.target}" not in self.git.remote_branches():
            raise UpstreamError(
                f"Target branch '{draft.target}' does not exist on the remote repository."
            )
        self.git.push(draft.source)
        pr = self.github.create_pull(
            owner,
            repo,
            title=draft.title,
            body=format_pr_body(draft.body),
            head=draft.source,
            base=draft.target,
        )
        if draft.reviewers:
            self.github.request_reviewers(owner, repo, pr["number"], draft.reviewers)
        return {"pr_url": pr.get("html_url"), "pr_number": pr.get("number"), "title": draft.title}

    def details(self, number: int) -> dict[str, Any]:
        owner, repo = self.git.github_slug()
        pr = self.github.get_pull(owner, repo, number)
        return {**summarize_pull(pr), "body": pr.get("body") or ""}

    def approve(self, number: int | None = None, comment: str | None = None) -> dict[str, Any]:
        owner, repo = self.git.github_slug()
        if not number:
            prs = self.github.list_pulls(owner, repo)
            if not prs:
                raise UpstreamError("No open pull requests found.")
            # newest first
            number = prs[0]["number"]
        number = int(number)
        self.github.approve(owner, repo, number, comment or DEFAULT_APPROVE_COMMENT)
        return {"pr_number": number, "message": f"Pull request #{number} approved successfully!"}

    def awaiting_my_review(self, all_open: bool = False) -> list[dict[str, Any]]:
        owner, repo = self.git.github_slug()
        prs = self.github.list_pulls(owner, repo)
        if not all_open:
            me = self.github.current_user()
            prs = [
                pr for pr in prs
                if any(r.get("login") == me for r in pr.get("requested_reviewers") or [])
            ]
        return [summarize_pull(pr) for pr in prs]

    def list_open(self) -> dict[str, Any]:
        owner, repo = self.git.github_slug()
        prs = [summarize_pull(pr) for pr in self.github.list_pulls(owner, repo)]
        return {"count": len(prs), "prs": prs}

    def list_mine(self) -> dict[str, Any]:
        me = self.github.current_user()
        result = self.github.search_issues(f"is:open is:pr review-requested:{me} archived:false")
        by_repo: dict[str, list[dict[str, Any]]] = {}
        for item in result.get("items") or []:
            repo_name = "/".join(str(item.get("repository_url", "")).split("/")[-2:])
            by_repo.setdefault(repo_name, []).append(
                {"number": item.get("number"), "title": item.get("title"), "url": item.get("html_url")}
            )
        return {"user": me, "total": sum(len(v) for v in by_repo.values()), "by_repo": by_repo}

    def list_repos(self) -> dict[str, Any]:
        groups: dict[str, list[dict[str, Any]]] = {}
        for affiliation in ("owner", "collaborator", "organization_member"):
            groups[affiliation] = [
                {"full_name": r.get("full_name"), "private": bool(r.get("private"))}
                for r in self.github.list_repos(affiliation)
            ]
        return {"total": sum(len(v) for v in groups.values()), **groups}

    def summarize_changes(self, since: str = "1 day ago") -> dict[str, Any]:
        diff = self.git.diff_stat(since)
        return {"since": since, "summary": f"Here are the file changes since {since}:\n{diff}"}
