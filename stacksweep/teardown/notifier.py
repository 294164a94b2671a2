"""Slack notification of finished teardown runs."""

from __future__ import annotations

import logging

import requests

from ..models.teardown_report import ReportStatus, TeardownReport
from ..utils.timestamps import format_timestamp, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10
MAX_LISTED_TASKS = 10


class SlackNotifier:
    """Posts a run summary to a Slack incoming webhook.

    Notification is best effort: delivery problems are logged and never
    affect the outcome of the run.

    Attributes:
        webhook_url: Slack incoming webhook URL
        timeout: HTTP timeout in seconds
    """

    def __init__(self, webhook_url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        if not webhook_url:
            raise ValueError("webhook_url is required")
        self.webhook_url = webhook_url
        self.timeout = timeout

    def build_message(self, report: TeardownReport) -> dict:
        """Build the block-kit payload for a report."""
        succeeded = report.status == ReportStatus.SUCCESS
        headline = "✅ Teardown completed" if succeeded else "🚨 Teardown incomplete"
        counts = report.counts()

        summary_lines = [
            f"*Deployment:* `{report.identity}`",
            f"*Regions:* {', '.join(report.regions)}",
            f"*Status:* {report.status.value}",
            (
                f"*Tasks:* {len(report.tasks)} "
                f"(deleted {counts['succeeded']}, already gone {counts['skipped-not-found']}, "
                f"failed {counts['failed']}, blocked {counts['skipped-blocked']})"
            ),
        ]
        if report.cancelled:
            summary_lines.append("*Cancelled:* yes")

        blocks = [
            {"type": "header", "text": {"type": "plain_text", "text": headline, "emoji": True}},
            {"type": "section", "text": {"type": "mrkdwn", "text": "\n".join(summary_lines)}},
        ]

        problems = [
            f"• {task.task_id}: {task.error_code}" for task in report.failed_tasks()
        ] + [
            f"• {error.kind} in {error.region}: {error.error_code}" for error in report.discovery_errors
        ]
        if problems:
            listed = problems[:MAX_LISTED_TASKS]
            if len(problems) > MAX_LISTED_TASKS:
                listed.append(f"… and {len(problems) - MAX_LISTED_TASKS} more")
            blocks.append(
                {"type": "section", "text": {"type": "mrkdwn", "text": "*Errors:*\n" + "\n".join(listed)}}
            )

        blocks.append(
            {
                "type": "context",
                "elements": [
                    {
                        "type": "mrkdwn",
                        "text": f"*Run:* {report.run_id} | *Time:* {format_timestamp(utc_now())}",
                    }
                ],
            }
        )

        return {"text": f"{headline}: {report.identity}", "blocks": blocks}

    def notify(self, report: TeardownReport) -> bool:
        """Send the report summary.

        Returns:
            True if Slack accepted the message, False otherwise
        """
        try:
            response = requests.post(self.webhook_url, json=self.build_message(report), timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning(f"Slack notification for {report.run_id} failed: {e}")
            return False

        logger.debug(f"Slack notification sent for {report.run_id}")
        return True
