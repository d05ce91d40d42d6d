"""Tests for PR label rules and label-based attribution."""

import pytest
from leaderboard_testdata import CLAUDE_OPUS_TRAILER, COPILOT_TRAILER, make_commit

from src.ai_leaderboard.data_models import (
    AITool,
    ClassificationSource,
    ClaudeModel,
    PullRequest,
)
from src.ai_leaderboard.label_rules import (
    DEFAULT_LABEL_RULES,
    LabelRule,
    LabelRuleError,
    LabelRuleSet,
    reconcile_classifications,
    resolve_label_overrides,
)


def merged_pr(number, labels, sha, repository="api"):
    return PullRequest(
        number=number, repository=repository, labels=tuple(labels), merge_commit_sha=sha
    )


class TestLabelRuleSet:
    """Test the editable rule table."""

    def test_defaults(self):
        """A new table holds every built-in rule, enabled."""
        rules = LabelRuleSet()

        assert len(rules) == len(DEFAULT_LABEL_RULES)
        assert all(rule.is_default and rule.enabled for rule in rules)
        assert rules.get("claude-code").tool == AITool.CLAUDE_GENERATED

    def test_add_strips_label(self):
        """User labels are stripped and appended."""
        rules = LabelRuleSet()
        rule = rules.add("  ai-assisted ", AITool.COPILOT)

        assert rule.label == "ai-assisted"
        assert not rule.is_default
        assert list(rules)[-1] == rule

    @pytest.mark.parametrize("label", ["", "   ", "copilot"])
    def test_add_rejects_empty_and_duplicate(self, label):
        """Empty and already configured labels are rejected."""
        with pytest.raises(LabelRuleError):
            LabelRuleSet().add(label, AITool.CURSOR)

    def test_remove_user_rule(self):
        """User rules can be removed."""
        rules = LabelRuleSet()
        rules.add("ai", AITool.AGENT)
        rules.remove("ai")

        assert "ai" not in rules

    def test_default_rule_cannot_be_removed(self):
        """Default rules can only be disabled."""
        rules = LabelRuleSet()

        with pytest.raises(LabelRuleError, match="cannot be removed"):
            rules.remove("claude")

        rules.toggle("claude")
        assert not rules.get("claude").enabled
        assert "claude" not in [rule.label for rule in rules.enabled_rules()]

    def test_unknown_label(self):
        """Editing a missing label raises."""
        with pytest.raises(LabelRuleError, match="Unknown label"):
            LabelRuleSet().set_enabled("nope", False)

    def test_labels_for(self):
        """Labels mapped to a tool, in table order."""
        rules = LabelRuleSet()
        rules.add("copilot-review", AITool.COPILOT)

        assert rules.labels_for(AITool.COPILOT) == ["copilot", "copilot-review"]

    def test_from_list_layers_over_defaults(self):
        """Config entries override default rules and append new ones."""
        rules = LabelRuleSet.from_list(
            [
                {"label": "cursor", "enabled": False},
                {"label": "gemini", "tool": "agent"},
                {"label": "ai-assisted", "tool": "copilot"},
            ]
        )

        assert not rules.get("cursor").enabled
        assert rules.get("gemini").tool == AITool.AGENT
        assert rules.get("ai-assisted").tool == AITool.COPILOT
        assert len(rules) == len(DEFAULT_LABEL_RULES) + 1

    @pytest.mark.parametrize(
        "entry", [{"tool": "copilot"}, {"label": "x", "tool": "chatgpt"}, {"label": "x"}]
    )
    def test_from_list_invalid(self, entry):
        """Entries without a label, with an unknown tool, or new without a tool fail."""
        with pytest.raises(LabelRuleError):
            LabelRuleSet.from_list([entry])

    def test_round_trip_list(self):
        """to_list output rebuilds an equal table."""
        rules = LabelRuleSet()
        rules.add("ai", AITool.AGENT, enabled=False)

        rebuilt = LabelRuleSet.from_list(rules.to_list())

        assert list(rebuilt) == list(rules)


class TestResolveLabelOverrides:
    """Test mapping labeled PRs to merge commit tools."""

    def test_basic_mapping(self):
        """Each labeled PR maps its merge SHA to the rule's tool."""
        overrides = resolve_label_overrides(
            LabelRuleSet(),
            [merged_pr(1, ["copilot"], "aaa"), merged_pr(2, ["cursor"], "bbb")],
        )

        assert overrides == {"aaa": AITool.COPILOT, "bbb": AITool.CURSOR}

    def test_first_rule_wins_for_multi_label_pr(self):
        """A PR with several configured labels uses the first in rule order."""
        overrides = resolve_label_overrides(
            LabelRuleSet(), [merged_pr(1, ["cursor", "claude"], "aaa")]
        )

        assert overrides == {"aaa": AITool.CLAUDE_COAUTHOR}

    def test_disabled_rules_ignored(self):
        """Disabled rules never match."""
        rules = LabelRuleSet()
        rules.set_enabled("copilot", False)

        assert resolve_label_overrides(rules, [merged_pr(1, ["copilot"], "aaa")]) == {}

    def test_pr_without_merge_sha_skipped(self):
        """PRs with no merge commit contribute nothing."""
        assert resolve_label_overrides(LabelRuleSet(), [merged_pr(1, ["copilot"], None)]) == {}

    def test_first_writer_per_sha_wins(self):
        """Two PRs sharing a merge SHA keep the first recorded tool."""
        rules = [LabelRule("b", AITool.CURSOR), LabelRule("a", AITool.COPILOT)]
        overrides = resolve_label_overrides(
            rules, [merged_pr(1, ["a"], "same"), merged_pr(2, ["b"], "same")]
        )

        assert overrides == {"same": AITool.CURSOR}

    def test_labels_match_exactly(self):
        """Label names are compared exactly."""
        assert resolve_label_overrides(LabelRuleSet(), [merged_pr(1, ["Copilot"], "a")]) == {}


class TestReconcileClassifications:
    """Test combining message detection with label overrides."""

    def test_detector_wins_over_label(self):
        """A label never reclassifies a commit the detector recognised."""
        commit = make_commit("aaa", message=f"x\n\n{CLAUDE_OPUS_TRAILER}")

        result = reconcile_classifications([commit], {"aaa": AITool.COPILOT})

        assert result["aaa"].tool == AITool.CLAUDE_COAUTHOR
        assert result["aaa"].source == ClassificationSource.MESSAGE

    def test_label_applies_when_detector_silent(self):
        """An unrecognised commit takes the label's tool."""
        commit = make_commit("aaa", message="Plain change")

        result = reconcile_classifications([commit], {"aaa": AITool.CURSOR})

        assert result["aaa"].tool == AITool.CURSOR
        assert result["aaa"].source == ClassificationSource.PR_LABEL
        assert result["aaa"].model is None

    def test_claude_label_gets_unknown_model(self):
        """Label-derived Claude classifications carry the unknown model."""
        commit = make_commit("aaa", message="Plain change")

        result = reconcile_classifications([commit], {"aaa": AITool.CLAUDE_GENERATED})

        assert result["aaa"].model == ClaudeModel.UNKNOWN

    def test_unclassified_commits_omitted(self):
        """Only AI-attributed commits appear in the mapping."""
        commits = [
            make_commit("aaa", message="Plain"),
            make_commit("bbb", message=f"x\n\n{COPILOT_TRAILER}"),
        ]

        assert set(reconcile_classifications(commits)) == {"bbb"}
