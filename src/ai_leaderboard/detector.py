"""
AI tool detection from commit messages.

Rules are evaluated in priority order and the first match wins, so a commit
carrying several AI trailers is counted once.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

from .data_models import AITool, Classification, ClaudeModel

CLAUDE_COAUTHOR_PATTERN = re.compile(
    r"co-authored-by:\s*claude([^<\n]*)<[^>\n]*@anthropic\.com>", re.IGNORECASE
)
CLAUDE_GENERATED_PATTERN = re.compile(
    r"generated with \[?claude code\]?", re.IGNORECASE
)
COPILOT_COAUTHOR_PATTERN = re.compile(r"co-authored-by:\s*copilot\s*<", re.IGNORECASE)
CURSOR_COAUTHOR_PATTERN = re.compile(
    r"co-authored-by:\s*cursor\s*<[^>\n]*@cursor\.com>", re.IGNORECASE
)

# Checked in order against the trailer's free text
MODEL_KEYWORDS = (
    ("opus", ClaudeModel.OPUS),
    ("sonnet", ClaudeModel.SONNET),
    ("haiku", ClaudeModel.HAIKU),
)


@dataclass(frozen=True)
class DetectionRule:
    """One entry of the detection table."""

    tool: AITool
    pattern: re.Pattern
    model_of: Callable[[re.Match], ClaudeModel] | None = None


def extract_claude_model(trailer_text: str) -> ClaudeModel:
    """Find the model variant named between "Claude" and the email address."""
    lowered = trailer_text.lower()
    for keyword, model in MODEL_KEYWORDS:
        if keyword in lowered:
            return model
    return ClaudeModel.UNKNOWN


DETECTION_RULES: tuple[DetectionRule, ...] = (
    DetectionRule(
        AITool.CLAUDE_COAUTHOR,
        CLAUDE_COAUTHOR_PATTERN,
        lambda match: extract_claude_model(match.group(1)),
    ),
    DetectionRule(
        AITool.CLAUDE_GENERATED,
        CLAUDE_GENERATED_PATTERN,
        lambda match: ClaudeModel.UNKNOWN,
    ),
    DetectionRule(AITool.COPILOT, COPILOT_COAUTHOR_PATTERN),
    DetectionRule(AITool.CURSOR, CURSOR_COAUTHOR_PATTERN),
)


def classify(message: str | None) -> Classification | None:
    """
    Classify a commit message by the AI tool that assisted it.

    Args:
        message: Full commit message (subject, body and trailers)

    Returns:
        The first matching classification, or None when no rule matches
    """
    if not message:
        return None

    for rule in DETECTION_RULES:
        match = rule.pattern.search(message)
        if match is None:
            continue
        model = rule.model_of(match) if rule.model_of else None
        return Classification(tool=rule.tool, model=model)

    return None
