"""Tests for git helpers and the pull-request workflow (git and GitHub mocked)."""

from __future__ import annotations

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from helperbot.errors import UpstreamError, ValidationError
from helperbot.services.git import GitRepo, format_pr_body, parse_github_remote, title_from_branch
from helperbot.services.github import GitHubClient, split_reviewers, summarize_pull
from helperbot.services.pull_requests import DEFAULT_APPROVE_COMMENT, PullRequestService
from helperbot.util.subprocess import CmdResult


# --------------------------------------------------------------------------- #
# Helpers                                                                      #
# --------------------------------------------------------------------------- #

@pytest.mark.parametrize(
    "url",
    [
        "git@github.com:octo/app.git",
        "https://github.com/octo/app.git",
        "https://github.com/octo/app",
    ],
)
def test_parse_github_remote(url):
    assert parse_github_remote(url) == ("octo", "app")


def test_parse_non_github_remote():
    with pytest.raises(UpstreamError):
        parse_github_remote("https://gitlab.com/octo/app.git")


def test_title_from_branch():
    assert title_from_branch("feature/abc-123-fix-login") == "[ABC-123] fix login"
    assert title_from_branch("ABC-123-some-thing") == "[ABC-123] some thing"
    assert title_from_branch("bugfix/Jira-7-null-check") == "[JIRA-7] null check"
    assert title_from_branch("abc-123") == "[ABC-123]"
    assert title_from_branch("main") == "Pull Request"


def test_format_pr_body():
    assert format_pr_body("add login;fix tests") == "- [x] add login\n- [x]fix tests"


def test_split_reviewers():
    assert split_reviewers(" alice, bob ,") == ["alice", "bob"]
    assert split_reviewers(["carol", " "]) == ["carol"]
    assert split_reviewers(None) == []


def test_summarize_pull():
    pr = {"number": 7, "title": "T", "user": {"login": "alice"}, "created_at": "2024-05-01", "html_url": "u"}
    assert summarize_pull(pr) == {"number": 7, "title": "T", "author": "alice", "created": "2024-05-01", "url": "u"}


def test_git_repo_diff_stat_uses_reflog_syntax():
    with patch("helperbot.services.git.run_cmd", return_value=CmdResult(0, " a.py | 2 +-\n", "")) as run:
        out = GitRepo(cwd="/repo").diff_stat("2 weeks ago")
    assert out == " a.py | 2 +-\n"
    run.assert_called_once_with(["git", "diff", "--stat", "HEAD@{2 weeks ago}"], cwd="/repo", timeout=120)


def test_git_failure_is_upstream_error():
    with patch("helperbot.services.git.run_cmd", return_value=CmdResult(128, "", "fatal: not a git repository")):
        with pytest.raises(UpstreamError, match="not a git repository"):
            GitRepo(cwd="/tmp").current_branch()


# --------------------------------------------------------------------------- #
# Service                                                                      #
# --------------------------------------------------------------------------- #

def make_service():
    git = MagicMock()
    git.current_branch.return_value = "feature/abc-123-fix-login"
    git.github_slug.return_value = ("octo", "app")
    git.remote_branches.return_value = ["origin/develop", "origin/main"]
    github = MagicMock()
    github.current_user.return_value = "me"
    return PullRequestService(git=git, github=github), git, github


def test_draft_derives_title_and_body():
    svc, _, _ = make_service()
    draft = svc.draft(reviewers="alice,bob")
    assert draft.source == "feature/abc-123-fix-login"
    assert draft.target == "develop"
    assert draft.title == "[ABC-123] fix login"
    assert draft.body == "Please review this PR."
    assert draft.reviewers == ["alice", "bob"]


def test_draft_rejects_same_branch():
    svc, _, _ = make_service()
    with pytest.raises(ValidationError, match="cannot be the same"):
        svc.draft(source="develop", target="develop")


def test_create_pushes_opens_and_requests_reviewers():
    svc, git, github = make_service()
    github.create_pull.return_value = {"number": 12, "html_url": "https://github.com/octo/app/pull/12"}
    out = svc.create(svc.draft(body="a;b", reviewers="alice"))

    git.push.assert_called_once_with("feature/abc-123-fix-login")
    github.create_pull.assert_called_once_with(
        "octo", "app",
        title="[ABC-123] fix login",
        body="- [x] a\n- [x]b",
        head="feature/abc-123-fix-login",
        base="develop",
    )
    github.request_reviewers.assert_called_once_with("octo", "app", 12, ["alice"])
    assert out == {"pr_url": "https://github.com/octo/app/pull/12", "pr_number": 12, "title": "[ABC-123] fix login"}


def test_create_requires_remote_target():
    svc, git, github = make_service()
    with pytest.raises(UpstreamError, match="does not exist on the remote"):
        svc.create(svc.draft(target="release"))
    git.push.assert_not_called()
    github.create_pull.assert_not_called()


def test_candidate_reviewers_exclude_me():
    svc, _, github = make_service()
    github.list_collaborators.return_value = ["me", "alice"]
    assert svc.candidate_reviewers() == ["alice"]


def test_approve_defaults_to_most_recent_open_pr():
    svc, _, github = make_service()
    github.list_pulls.return_value = [{"number": 30}, {"number": 29}]
    out = svc.approve()
    github.approve.assert_called_once_with("octo", "app", 30, DEFAULT_APPROVE_COMMENT)
    assert out["message"] == "Pull request #30 approved successfully!"


def test_approve_without_open_prs():
    svc, _, github = make_service()
    github.list_pulls.return_value = []
    with pytest.raises(UpstreamError, match="No open pull requests"):
        svc.approve()


def test_awaiting_my_review_filters_on_requested_reviewers():
    svc, _, github = make_service()
    github.list_pulls.return_value = [
        {"number": 1, "requested_reviewers": [{"login": "me"}]},
        {"number": 2, "requested_reviewers": [{"login": "alice"}]},
    ]
    assert [p["number"] for p in svc.awaiting_my_review()] == [1]
    assert [p["number"] for p in svc.awaiting_my_review(all_open=True)] == [1, 2]


def test_list_mine_groups_by_repository():
    svc, _, github = make_service()
    github.search_issues.return_value = {
        "items": [
            {"number": 1, "title": "a", "html_url": "u1", "repository_url": "https://api.github.com/repos/octo/app"},
            {"number": 2, "title": "b", "html_url": "u2", "repository_url": "https://api.github.com/repos/octo/lib"},
            {"number": 3, "title": "c", "html_url": "u3", "repository_url": "https://api.github.com/repos/octo/app"},
        ]
    }
    out = svc.list_mine()
    assert out["user"] == "me"
    assert out["total"] == 3
    assert [p["number"] for p in out["by_repo"]["octo/app"]] == [1, 3]
    github.search_issues.assert_called_once_with("is:open is:pr review-requested:me archived:false")


def test_list_repos_by_affiliation():
    svc, _, github = make_service()
    github.list_repos.side_effect = lambda aff: [{"full_name": f"{aff}/r", "private": aff == "owner"}]
    out = svc.list_repos()
    assert out["total"] == 3
    assert out["owner"] == [{"full_name": "owner/r", "private": True}]


def test_summarize_changes():
    svc, git, _ = make_service()
    git.diff_stat.return_value = " a.py | 1 +\n"
    out = svc.summarize_changes("yesterday")
    assert out["summary"] == "Here are the file changes since yesterday:\n a.py | 1 +\n"


# --------------------------------------------------------------------------- #
# REST client                                                                  #
# --------------------------------------------------------------------------- #

class _Resp(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def test_client_requires_token():
    with pytest.raises(UpstreamError, match="GITHUB_TOKEN"):
        GitHubClient(token="").current_user()


def test_client_sends_auth_and_parses_json():
    with patch("urllib.request.urlopen", return_value=_Resp(b'{"login": "me"}')) as urlopen:
        assert GitHubClient(token="t0k").current_user() == "me"
    req = urlopen.call_args[0][0]
    assert req.full_url == "https://api.github.com/user"
    assert req.get_header("Authorization") == "Bearer t0k"


def test_client_http_error_is_upstream_error():
    err = urllib.error.HTTPError(
        "https://api.github.com/user", 401, "Unauthorized", {}, io.BytesIO(json.dumps({"message": "Bad credentials"}).encode())
    )
    with patch("urllib.request.urlopen", side_effect=err):
        with pytest.raises(UpstreamError, match=r"\(401\): Bad credentials"):
            GitHubClient(token="t0k").current_user()
