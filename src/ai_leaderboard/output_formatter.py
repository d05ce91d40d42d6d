"""
Output formatting for leaderboard results.
"""

import csv
from io import StringIO
from typing import Any

from ..shared_utilities import BaseOutputFormatter
from .analytics import COHORT_BANDS, adoption_cohorts, author_activity, daily_activity
from .data_models import AITool, ClaudeModel, LeaderboardData

TOOL_LABELS = {
    AITool.CLAUDE_COAUTHOR: "Claude (co-author)",
    AITool.CLAUDE_GENERATED: "Claude Code",
    AITool.COPILOT: "Copilot",
    AITool.CURSOR: "Cursor",
    AITool.CODEX: "Codex",
    AITool.GEMINI: "Gemini",
    AITool.AGENT: "Agent",
}


class LeaderboardFormatter(BaseOutputFormatter):
    """Renders LeaderboardData as table, CSV, Markdown, JSON or YAML."""

    def to_output_dict(
        self, data: LeaderboardData, include_activity: bool = False
    ) -> dict[str, Any]:
        """
        Plain dictionary form of the leaderboard.

        With include_activity, adds the overall daily series, the adoption
        cohort series and a per-author daily series on each entry.
        """
        output = data.to_dict()
        if include_activity:
            output["dailyActivity"] = [day.to_dict() for day in daily_activity(data)]
            output["adoptionCohorts"] = [
                day.to_dict() for day in adoption_cohorts(data.leaderboard)
            ]
            for entry, entry_output in zip(data.leaderboard, output["leaderboard"]):
                entry_output["dailyActivity"] = [
                    day.to_dict() for day in author_activity(entry)
                ]
        return output

    def render(
        self,
        data: LeaderboardData,
        format_type: str = "table",
        include_activity: bool = False,
        **kwargs,
    ) -> str:
        return self.format(self.to_output_dict(data, include_activity), format_type, **kwargs)

    def _format_table(self, data: dict[str, Any], **kwargs) -> str:
        """Format leaderboard as a console table."""
        lines = []
        total = data["totalCommits"]
        ai = data["aiCommits"]
        share = f"{100 * ai / total:.1f}%" if total else "0.0%"

        lines.append("🏆 AI Commit Leaderboard")
        lines.append(
            f"Total Commits: {total}  AI Commits: {ai} ({share})  "
            f"Active Users: {data['activeUsers']}"
        )
        if data.get("excludedCommits"):
            lines.append(f"Commits without author: {data['excludedCommits']}")
        lines.append("=" * 72)

        if not data["leaderboard"]:
            lines.append("No commits found in the selected window.")
            return "\n".join(lines)

        lines.append(
            f"{'#':>3}  {'User':<28} {'AI':>6} {'Total':>7} {'AI %':>6}  Top tool"
        )
        lines.append("-" * 72)
        for entry in data["leaderboard"]:
            lines.append(
                f"{entry['rank']:>3}  {entry['username']:<28} {entry['commits']:>6} "
                f"{entry['totalCommits']:>7} {entry['aiPercentage']:>5}%  "
                f"{self._top_tool(entry['aiToolBreakdown'])}"
            )

        lines.append("")
        lines.append("AI Tools")
        lines.append("-" * 40)
        for tool in AITool:
            count = data["aiToolBreakdown"][tool.value]
            if count:
                lines.append(f"  {TOOL_LABELS[tool]:<24} {count:>8}")

        models = data["claudeModelBreakdown"]
        if any(models.values()):
            lines.append("")
            lines.append("Claude Models")
            lines.append("-" * 40)
            for model in ClaudeModel:
                if models[model.value]:
                    lines.append(f"  {model.value.title():<24} {models[model.value]:>8}")

        activity = data.get("dailyActivity")
        if activity:
            lines.append("")
            lines.append("Daily Activity")
            lines.append("-" * 40)
            for day in activity:
                adoption = "-" if day["adoptionPct"] is None else f"{day['adoptionPct']}%"
                lines.append(
                    f"  {day['date']}  AI {day['aiCommits']:>4} / {day['totalCommits']:>4}"
                    f"  7d {adoption}"
                )

        cohorts = data.get("adoptionCohorts")
        if cohorts:
            lines.append("")
            lines.append("Adoption Cohorts (authors by 7-day AI share)")
            lines.append("-" * 40)
            lines.append(f"  {'Date':<12}" + "".join(f"{band:>9}" for band in COHORT_BANDS))
            for day in cohorts:
                lines.append(
                    f"  {day['date']:<12}"
                    + "".join(f"{day['bands'][band]:>9}" for band in COHORT_BANDS)
                )

        return "\n".join(lines)

    @staticmethod
    def _top_tool(breakdown: dict[str, int]) -> str:
        if not any(breakdown.values()):
            return "-"
        tool = max(AITool, key=lambda t: breakdown[t.value])
        return TOOL_LABELS[tool]

    def _format_csv(self, data: dict[str, Any], **kwargs) -> str:
        """Format leaderboard as CSV, one row per author."""
        output = StringIO()
        writer = csv.writer(output)

        writer.writerow(
            ["rank", "username", "ai_commits", "total_commits", "ai_percentage"]
            + [tool.value for tool in AITool]
            + [f"claude_{model.value}" for model in ClaudeModel]
        )
        for entry in data["leaderboard"]:
            writer.writerow(
                [
                    entry["rank"],
                    entry["username"],
                    entry["commits"],
                    entry["totalCommits"],
                    entry["aiPercentage"],
                ]
                + [entry["aiToolBreakdown"][tool.value] for tool in AITool]
                + [entry["claudeModelBreakdown"][model.value] for model in ClaudeModel]
            )

        return output.getvalue()

    def _format_markdown(self, data: dict[str, Any], **kwargs) -> str:
        """Format leaderboard as Markdown."""
        lines = [
            "# AI Commit Leaderboard",
            "",
            f"- **Total commits:** {data['totalCommits']}",
            f"- **AI commits:** {data['aiCommits']}",
            f"- **Active users:** {data['activeUsers']}",
            "",
        ]

        rows = [
            [
                entry["rank"],
                f"@{entry['username']}",
                entry["commits"],
                entry["totalCommits"],
                f"{entry['aiPercentage']}%",
            ]
            for entry in data["leaderboard"]
        ]
        lines.extend(
            self._markdown_table(["Rank", "User", "AI Commits", "Total", "AI %"], rows)
        )

        lines.append("")
        lines.append("## AI Tools")
        lines.append("")
        lines.extend(
            self._markdown_table(
                ["Tool", "Commits"],
                [[TOOL_LABELS[tool], data["aiToolBreakdown"][tool.value]] for tool in AITool],
            )
        )

        activity = data.get("dailyActivity")
        if activity:
            lines.append("")
            lines.append("## Daily Activity")
            lines.append("")
            lines.extend(
                self._markdown_table(
                    ["Date", "AI", "Total", "Agent", "7-day adoption"],
                    [
                        [
                            day["date"],
                            day["aiCommits"],
                            day["totalCommits"],
                            day["agentCommits"],
                            "-" if day["adoptionPct"] is None else f"{day['adoptionPct']}%",
                        ]
                        for day in activity
                    ],
                )
            )

        cohorts = data.get("adoptionCohorts")
        if cohorts:
            lines.append("")
            lines.append("## Adoption Cohorts")
            lines.append("")
            lines.extend(
                self._markdown_table(
                    ["Date", "Active authors", *COHORT_BANDS],
                    [
                        [day["date"], day["activeAuthors"]]
                        + [day["bands"][band] for band in COHORT_BANDS]
                        for day in cohorts
                    ],
                )
            )

        return "\n".join(lines) + "\n"
