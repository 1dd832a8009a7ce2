from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any

from ..errors import UpstreamError


@dataclass
class GitHubClient:
    """Small GitHub REST v3 client covering the pull-request workflow."""

    token: str
    api_url: str = "https://api.github.com"
    timeout: int = 30

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None,
                 query: dict[str, Any] | None = None) -> Any:
        if not self.token:
            raise UpstreamError("GitHub token is not set (export GITHUB_TOKEN).")
        url = self.api_url.rstrip("/") + path
        if query:
            url += "?" + urllib.parse.urlencode(query)
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(
            url,
            data=data,
            method=method,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self.token}",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "helperbot/1.0",
                "Content-Type": "application/json",
            },
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace") if hasattr(e, "read") else ""
            try:
                detail = json.loads(detail).get("message", detail)
            except (ValueError, AttributeError):
                pass
            raise UpstreamError(f"GitHub {method} {path} failed ({e.code}): {detail}")
        except urllib.error.URLError as e:
            raise UpstreamError(f"GitHub unreachable: {e}")
        return json.loads(raw) if raw.strip() else None

    def current_user(self) -> str:
        return self._request("GET", "/user")["login"]

    def list_collaborators(self, owner: str, repo: str) -> list[str]:
        return [c["login"] for c in self._request("GET", f"/repos/{owner}/{repo}/collaborators")]

    def create_pull(self, owner: str, repo: str, *, title: str, body: str, head: str, base: str) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            {"title": title, "body": body, "head": head, "base": base},
        )

    def request_reviewers(self, owner: str, repo: str, number: int, reviewers: list[str]) -> None:
        self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls/{number}/requested_reviewers",
            {"reviewers": reviewers},
        )

    def list_pulls(self, owner: str, repo: str, state: str = "open") -> list[dict[str, Any]]:
        return self._request("GET", f"/repos/{owner}/{repo}/pulls", query={"state": state})

    def get_pull(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        return self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}")

    def approve(self, owner: str, repo: str, number: int, comment: str) -> None:
        self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls/{number}/reviews",
            {"event": "APPROVE", "body": comment},
        )

    def search_issues(self, q: str) -> dict[str, Any]:
        return self._request("GET", "/search/issues", query={"q": q, "per_page": 100})

    def list_repos(self, affiliation: str) -> list[dict[str, Any]]:
        return self._request(
            "GET",
            "/user/repos",
            query={"visibility": "all", "affiliation": affiliation, "per_page": 100},
        )


def split_reviewers(reviewers: str | list[str] | None) -> list[str]:
    if not reviewers:
        return []
    items = reviewers if isinstance(reviewers, list) else str(reviewers).split(",")
    return [r.strip() for r in items if r and r.strip()]


def summarize_pull(pr: dict[str, Any]) -> dict[str, Any]:
    return {
        "number": pr.get("number"),
        "title": pr.get("title"),
        "author": (pr.get("user") or {}).get("login"),
        "created": pr.get("created_at"),
        "url": pr.get("html_url"),
    }
