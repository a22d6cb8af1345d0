"""Shared helpers for the prwatch CLI package."""

import click

from prwatch.merge import group_records
from prwatch.models import PullRequestRecord, Reason
from prwatch.tui.render import format_datetime

# Shared Click settings: make -h and --help both work everywhere
CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

REASON_LABELS = {
    Reason.REVIEW_REQUESTED: "review requested",
    Reason.UPDATED: "new commits",
}


class HelpGroup(click.Group):
    """Click Group that treats 'help' as an alias for --help.

    ``prwatch help`` and ``prwatch list help`` both show usage.
    """

    def resolve_command(self, ctx, args):
        if args and args[0] == "help":
            args = ["--help"] + args[1:]
        cmd_name, cmd, remaining = super().resolve_command(ctx, args)
        if (remaining and remaining[0] == "help"
                and cmd is not None and not isinstance(cmd, click.Group)):
            remaining = ["--help"] + remaining[1:]
        return cmd_name, cmd, remaining


def format_records(records: list[PullRequestRecord]) -> str:
    """Plain-text listing grouped by repository, in display order."""
    if not records:
        return "No PRs to review"
    lines = []
    for repo, members in group_records(records):
        if lines:
            lines.append("")
        lines.append(repo)
        for pr in members:
            lines.append(f"  {pr.title} [{REASON_LABELS[pr.reason]}]")
            lines.append(f"    @{pr.author} | {format_datetime(pr.updated_at)}")
            lines.append(f"    {pr.url}")
    return "\n".join(lines)
