from __future__ import annotations

from typing import Any

from ..base import ParamSpec, ToolDefinition
from ...services.notify import DEFAULT_TITLE, Notifier


class SendNotificationTool:
    definition = ToolDefinition(
        name="send_notification",
        description="Send a desktop notification to the user.",
        parameters={
            "message": ParamSpec("STRING", "The notification message", required=True),
            "title": ParamSpec("STRING", f'The notification title (default: "{DEFAULT_TITLE}")'),
        },
    )

    def __init__(self, notifier: Notifier):
        self.notifier = notifier

    def invoke(self, args: dict[str, Any]) -> Any:
        message = str(args["message"])
        title = args.get("title") or DEFAULT_TITLE
        self.notifier.notify(message, title)
        return {"message": "Notification sent successfully.", "title": title, "body": message}
