from __future__ import annotations

from typing import Any

from ..base import ParamSpec, ToolDefinition
from ...errors import ValidationError
from ...services.pull_requests import DEFAULT_APPROVE_COMMENT, PullRequestService


class _PullRequestTool:
    def __init__(self, service: PullRequestService):
        self.service = service


class SummarizeChangesTool(_PullRequestTool):
    definition = ToolDefinition(
        name="summarize_code_changes",
        description="Get a summary of code changes in the current git repository since a specific time.",
        parameters={
            "since": ParamSpec(
                "STRING",
                'Timeframe to summarize (e.g., "1 day ago", "2 weeks ago", "yesterday")',
            ),
        },
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return self.service.summarize_changes(args.get("since") or "1 day ago")


class CreatePrTool(_PullRequestTool):
    definition = ToolDefinition(
        name="create_pr",
        description=(
            "Create a GitHub pull request from the current branch: pushes the branch, "
            "opens the pull request and requests reviewers."
        ),
        parameters={
            "target_branch": ParamSpec("STRING", "The branch to merge into (default: develop)"),
            "reviewers": ParamSpec("STRING", "Comma-separated list of reviewer usernames"),
            "title": ParamSpec("STRING", "The title of the pull request (auto-generated from the branch name if not provided)"),
            "body": ParamSpec("STRING", "Description; separate checklist items with ';'"),
            "source_branch": ParamSpec("STRING", "Branch to open the pull request from (default: current branch)"),
        },
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        draft = self.service.draft(
            source=args.get("source_branch"),
            target=args.get("target_branch"),
            title=args.get("title"),
            body=args.get("body"),
            reviewers=args.get("reviewers"),
        )
        return self.service.create(draft)


class ApprovePrTool(_PullRequestTool):
    definition = ToolDefinition(
        name="approve_pr",
        description="Approve a GitHub pull request.",
        parameters={
            "pr_number": ParamSpec(
                "NUMBER",
                "The pull request number to approve (if not provided, approves the most recent open PR)",
            ),
            "comment": ParamSpec("STRING", f'Review comment (default: "{DEFAULT_APPROVE_COMMENT}")'),
        },
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        number = args.get("pr_number")
        if number is not None:
            try:
                number = int(number)
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid pr_number: {number!r}")
        return self.service.approve(number, args.get("comment"))


class ListOpenPrsTool(_PullRequestTool):
    definition = ToolDefinition(
        name="list_open_prs",
        description="List all open pull requests in the current repository.",
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return self.service.list_open()


class ListMyPrsTool(_PullRequestTool):
    definition = ToolDefinition(
        name="list_my_prs",
        description="List open pull requests across GitHub where your review is requested.",
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return self.service.list_mine()


class ListMyReposTool(_PullRequestTool):
    definition = ToolDefinition(
        name="list_my_repos",
        description="List repositories you own, collaborate on, or can access through an organization.",
    )

    def invoke(self, args: dict[str, Any]) -> Any:
        return self.service.list_repos()
