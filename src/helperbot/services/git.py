from __future__ import annotations

import re
from dataclasses import dataclass

from ..errors import UpstreamError
from ..util.subprocess import run_cmd

_GITHUB_REMOTE_RE = re.compile(r"github\.com[/:]([^/]+)/([^/]+?)(?:\.git)?/?$")
_TICKET_RE = re.compile(r"[a-zA-Z]+-[0-9]+")


def parse_github_remote(url: str) -> tuple[str, str]:
    m = _GITHUB_REMOTE_RE.search(url.strip())
    if not m:
        raise UpstreamError("Could not parse repository owner and name from origin remote.")
    return m.group(1), m.group(2)


def title_from_branch(branch: str) -> str:
    """`feature/abc-123-fix-login` -> `[ABC-123] fix login`; the ticket may be in any case."""
    m = _TICKET_RE.search(branch)
    if not m:
        return "Pull Request"
    ticket = m.group(0).upper()
    description = branch[m.end():].lstrip("-").replace("-", " ")
    return f"[{ticket}] {description}".rstrip()


def format_pr_body(body: str) -> str:
    """`a;b` -> a checked markdown list, one item per `;`-separated entry."""
    return f"- [x] {body}".replace(";", "\n- [x]")


@dataclass
class GitRepo:
    cwd: str

    def _git(self, *args: str, timeout: int = 120) -> str:
        res = run_cmd(["git", *args], cwd=self.cwd, timeout=timeout)
        if not res.ok:
            raise UpstreamError(f"git {args[0]} failed: {res.stderr.strip() or res.stdout.strip()}")
        return res.stdout

    def current_branch(self) -> str:
        return self._git("rev-parse", "--abbrev-ref", "HEAD").strip()

    def origin_url(self) -> str:
        try:
            return self._git("remote", "get-url", "origin").strip()
        except UpstreamError:
            raise UpstreamError("Origin remote not found. Are you in a git repository?")

    def github_slug(self) -> tuple[str, str]:
        return parse_github_remote(self.origin_url())

    def remote_branches(self) -> list[str]:
        self._git("fetch", timeout=300)
        out = self._git("branch", "-r")
        return [line.strip().split(" -> ")[0] for line in out.splitlines() if line.strip()]

    def push(self, branch: str) -> None:
        self._git("push", "--set-upstream", "origin", branch, timeout=300)

    def diff_stat(self, since: str) -> str:
        return self._git("diff", "--stat", f"HEAD@{{{since}}}")
