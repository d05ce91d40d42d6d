"""
Base output formatter for multi-format report generation.

Subclasses provide the human-readable table and CSV layouts; JSON and YAML
are derived from the plain dictionary form of the data.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import yaml


class OutputFormat:
    """Enumeration of supported output formats."""

    TABLE = "table"
    JSON = "json"
    CSV = "csv"
    MARKDOWN = "markdown"
    YAML = "yaml"

    @classmethod
    def choices(cls) -> list[str]:
        return [cls.TABLE, cls.JSON, cls.CSV, cls.MARKDOWN, cls.YAML]


class BaseOutputFormatter(ABC):
    """
    Abstract base class for output formatters.

    Dispatches a format name to its handler and handles writing to files.
    """

    def __init__(self):
        """Initialize the formatter with format handlers."""
        self._format_handlers = {
            OutputFormat.TABLE: self._format_table,
            OutputFormat.JSON: self._format_json,
            OutputFormat.CSV: self._format_csv,
            OutputFormat.MARKDOWN: self._format_markdown,
            OutputFormat.YAML: self._format_yaml,
        }

    def format(
        self, data: dict[str, Any], format_type: str = OutputFormat.TABLE, **kwargs
    ) -> str:
        """
        Format data according to the specified format type.

        Args:
            data: Data to format
            format_type: Output format type
            **kwargs: Additional format-specific options

        Returns:
            Formatted string output
        """
        handler = self._format_handlers.get(format_type)
        if not handler:
            raise ValueError(f"Unsupported format type: {format_type}")

        return handler(data, **kwargs)

    def save(
        self,
        data: dict[str, Any],
        output_path: str | Path,
        format_type: str = OutputFormat.JSON,
        **kwargs,
    ) -> Path:
        """
        Save formatted data to a file.

        Args:
            data: Data to save
            output_path: Path to save the file
            format_type: Output format type
            **kwargs: Additional format-specific options

        Returns:
            The path written
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.format(data, format_type, **kwargs), encoding="utf-8")
        return output_path

    @abstractmethod
    def _format_table(self, data: dict[str, Any], **kwargs) -> str:
        """Format data as a human-readable table."""

    @abstractmethod
    def _format_csv(self, data: dict[str, Any], **kwargs) -> str:
        """Format data as CSV."""

    @abstractmethod
    def _format_markdown(self, data: dict[str, Any], **kwargs) -> str:
        """Format data as Markdown."""

    def _format_json(self, data: dict[str, Any], **kwargs) -> str:
        """Format data as JSON."""
        indent = kwargs.get("indent", 2)
        return json.dumps(data, indent=indent, default=str)

    def _format_yaml(self, data: dict[str, Any], **kwargs) -> str:
        """Format data as YAML."""
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)

    @staticmethod
    def _markdown_table(headers: list[str], rows: list[list[Any]]) -> list[str]:
        """Render rows as a GitHub-flavoured Markdown table."""
        lines = [
            "| " + " | ".join(headers) + " |",
            "| " + " | ".join("---" for _ in headers) + " |",
        ]
        for row in rows:
            cells = [str(cell).replace("|", "\\|") for cell in row]
            lines.append("| " + " | ".join(cells) + " |")
        return lines
