"""
Pull-request label rules and label-based AI attribution.

A label rule maps a PR label name to an AI tool. Merged pull requests carrying
an enabled label attribute their merge commit to that tool, but only for
commits whose message did not already identify a tool.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from ..shared_utilities import get_logger
from .data_models import (
    AITool,
    Classification,
    ClassificationSource,
    ClaudeModel,
    Commit,
    PullRequest,
)
from .detector import classify

logger = get_logger(__name__)


class LabelRuleError(ValueError):
    """Invalid change to the label rule table."""


@dataclass(frozen=True)
class LabelRule:
    """Maps one PR label to an AI tool."""

    label: str
    tool: AITool
    enabled: bool = True
    is_default: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "tool": self.tool.value,
            "enabled": self.enabled,
            "is_default": self.is_default,
        }


DEFAULT_LABEL_RULES: tuple[LabelRule, ...] = (
    LabelRule("claude", AITool.CLAUDE_COAUTHOR, is_default=True),
    LabelRule("claude-code", AITool.CLAUDE_GENERATED, is_default=True),
    LabelRule("copilot", AITool.COPILOT, is_default=True),
    LabelRule("cursor", AITool.CURSOR, is_default=True),
    LabelRule("codex", AITool.CODEX, is_default=True),
    LabelRule("gemini", AITool.GEMINI, is_default=True),
    LabelRule("ai-agent", AITool.AGENT, is_default=True),
)


class LabelRuleSet:
    """
    Ordered, editable table of label rules.

    Labels are unique within the table. Default rules can be disabled but not
    removed.
    """

    def __init__(self, rules: Iterable[LabelRule] | None = None):
        self._rules: list[LabelRule] = []
        for rule in DEFAULT_LABEL_RULES if rules is None else rules:
            self._append(rule)

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, label: str) -> bool:
        return self._index(label) is not None

    def _index(self, label: str) -> int | None:
        for index, rule in enumerate(self._rules):
            if rule.label == label:
                return index
        return None

    def _require(self, label: str) -> int:
        index = self._index(label)
        if index is None:
            raise LabelRuleError(f"Unknown label: {label!r}")
        return index

    def _append(self, rule: LabelRule) -> None:
        label = rule.label.strip()
        if not label:
            raise LabelRuleError("Label name cannot be empty")
        if label in self:
            raise LabelRuleError(f"Label already configured: {label!r}")
        self._rules.append(replace(rule, label=label))

    def get(self, label: str) -> LabelRule | None:
        index = self._index(label)
        return None if index is None else self._rules[index]

    def add(self, label: str, tool: AITool, enabled: bool = True) -> LabelRule:
        """Add a user rule at the end of the table."""
        self._append(LabelRule(label=label, tool=tool, enabled=enabled))
        return self._rules[-1]

    def remove(self, label: str) -> None:
        """Remove a user rule; default rules can only be disabled."""
        index = self._require(label)
        if self._rules[index].is_default:
            raise LabelRuleError(
                f"Default label {label!r} cannot be removed, disable it instead"
            )
        del self._rules[index]

    def set_enabled(self, label: str, enabled: bool) -> LabelRule:
        index = self._require(label)
        self._rules[index] = replace(self._rules[index], enabled=enabled)
        return self._rules[index]

    def set_tool(self, label: str, tool: AITool) -> LabelRule:
        index = self._require(label)
        self._rules[index] = replace(self._rules[index], tool=tool)
        return self._rules[index]

    def toggle(self, label: str) -> LabelRule:
        index = self._require(label)
        return self.set_enabled(label, not self._rules[index].enabled)

    def enabled_rules(self) -> list[LabelRule]:
        return [rule for rule in self._rules if rule.enabled]

    def labels_for(self, tool: AITool) -> list[str]:
        return [rule.label for rule in self._rules if rule.tool == tool]

    def to_list(self) -> list[dict[str, Any]]:
        return [rule.to_dict() for rule in self._rules]

    @classmethod
    def from_list(cls, entries: Iterable[dict[str, Any]]) -> "LabelRuleSet":
        """
        Build a table from configuration entries layered over the defaults.

        An entry naming a default label overrides that rule's tool and enabled
        flag; other entries are appended as user rules.
        """
        rule_set = cls()
        for entry in entries:
            try:
                label = str(entry["label"]).strip()
                tool = AITool(entry["tool"]) if "tool" in entry else None
            except (KeyError, ValueError) as e:
                raise LabelRuleError(f"Invalid label rule entry {entry!r}: {e}") from e

            enabled = bool(entry.get("enabled", True))
            existing = rule_set.get(label)
            if existing is not None:
                if tool is not None:
                    rule_set.set_tool(label, tool)
                rule_set.set_enabled(label, enabled)
            elif tool is None:
                raise LabelRuleError(f"Label rule {label!r} needs a tool")
            else:
                rule_set.add(label, tool, enabled=enabled)
        return rule_set


def resolve_label_overrides(
    rules: Iterable[LabelRule], pull_requests: Iterable[PullRequest]
) -> dict[str, AITool]:
    """
    Map merge commit SHAs to the AI tool named by their PR's labels.

    Rules are applied in table order. A pull request contributes only its
    first matching label, and the first tool recorded for a SHA is kept.

    Args:
        rules: Label rules; disabled rules are ignored
        pull_requests: Merged pull requests with resolved merge commits

    Returns:
        Mapping of merge commit SHA to AI tool
    """
    pull_requests = list(pull_requests)
    overrides: dict[str, AITool] = {}
    seen: set[tuple[str, int]] = set()

    for rule in rules:
        if not rule.enabled:
            continue
        for pr in pull_requests:
            if pr.key in seen or rule.label not in pr.labels:
                continue
            seen.add(pr.key)
            if not pr.merge_commit_sha:
                logger.debug(
                    "Skipping labeled PR without merge commit",
                    repository=pr.repository,
                    number=pr.number,
                )
                continue
            overrides.setdefault(pr.merge_commit_sha, rule.tool)

    return overrides


def reconcile_classifications(
    commits: Iterable[Commit], label_overrides: dict[str, AITool] | None = None
) -> dict[str, Classification]:
    """
    Classify commits, falling back to PR-label attribution.

    A message-based classification always wins; a label override only
    applies to commits the detector could not classify.

    Args:
        commits: Commits to classify
        label_overrides: SHA to tool mapping from resolve_label_overrides

    Returns:
        Mapping of commit SHA to classification for AI-attributed commits
    """
    label_overrides = label_overrides or {}
    classifications: dict[str, Classification] = {}

    for commit in commits:
        detected = classify(commit.message)
        if detected is not None:
            classifications[commit.sha] = detected
            continue

        tool = label_overrides.get(commit.sha)
        if tool is not None:
            classifications[commit.sha] = Classification(
                tool=tool,
                model=ClaudeModel.UNKNOWN if tool.is_claude else None,
                source=ClassificationSource.PR_LABEL,
            )

    return classifications
