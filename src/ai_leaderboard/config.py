"""
Configuration for leaderboard runs.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..shared_utilities import get_logger
from .collector import DEFAULT_CONCURRENCY, DEFAULT_MAX_PAGES, DEFAULT_PAGE_SIZE
from .data_models import Repository
from .label_rules import LabelRuleError, LabelRuleSet

CONFIG_ENV_VAR = "AI_LEADERBOARD_CONFIG"
DEFAULT_CONFIG_FILE = "leaderboard.json"


class ConfigError(Exception):
    """Configuration file could not be used."""


@dataclass
class LeaderboardConfig:
    """Repositories, label rules and collection tunables."""

    repositories: list[Repository] = field(default_factory=list)
    label_rules: LabelRuleSet = field(default_factory=LabelRuleSet)
    label_scan_repos: list[str] = field(default_factory=list)
    concurrency: int = DEFAULT_CONCURRENCY
    page_size: int = DEFAULT_PAGE_SIZE
    max_pages: int = DEFAULT_MAX_PAGES
    default_days: int = 7

    def to_dict(self) -> dict[str, Any]:
        return {
            "repositories": [
                {"owner": r.owner, "name": r.name, "display_name": r.display_name}
                for r in self.repositories
            ],
            "label_rules": self.label_rules.to_list(),
            "label_scan_repos": list(self.label_scan_repos),
            "concurrency": self.concurrency,
            "page_size": self.page_size,
            "max_pages": self.max_pages,
            "default_days": self.default_days,
        }


class LeaderboardConfigManager:
    """Loads a LeaderboardConfig from a JSON file."""

    def __init__(self, config_file: str | Path | None = None):
        """Initialize config manager.

        Args:
            config_file: Path to the JSON config, defaults to $AI_LEADERBOARD_CONFIG
                or ./leaderboard.json
        """
        self.logger = get_logger(__name__)

        if config_file is None:
            config_file = os.getenv(CONFIG_ENV_VAR)
        self.explicit = config_file is not None
        if config_file is None:
            config_file = Path.cwd() / DEFAULT_CONFIG_FILE
        self.config_file = Path(config_file)
        self.config = self._load_config()

    def _load_config(self) -> LeaderboardConfig:
        if not self.config_file.exists():
            log = self.logger.warning if self.explicit else self.logger.debug
            log(f"Config file not found, using defaults: {self.config_file}")
            return LeaderboardConfig()

        try:
            with open(self.config_file) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to read {self.config_file}: {e}") from e

        try:
            config = self.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration in {self.config_file}: {e}") from e

        self.logger.info(
            f"Loaded {len(config.repositories)} repositories and "
            f"{len(config.label_rules)} label rules from {self.config_file}"
        )
        return config

    @staticmethod
    def from_dict(data: dict[str, Any]) -> LeaderboardConfig:
        """Build a configuration from its JSON form."""
        repositories = []
        for entry in data.get("repositories", []):
            if isinstance(entry, str):
                repositories.append(Repository.parse(entry))
            else:
                repositories.append(
                    Repository(
                        owner=entry["owner"],
                        name=entry["name"],
                        display_name=entry.get("display_name", ""),
                    )
                )

        try:
            label_rules = LabelRuleSet.from_list(data.get("label_rules", []))
        except LabelRuleError as e:
            raise ValueError(str(e)) from e

        config = LeaderboardConfig(
            repositories=repositories,
            label_rules=label_rules,
            label_scan_repos=list(data.get("label_scan_repos", [])),
            concurrency=int(data.get("concurrency", DEFAULT_CONCURRENCY)),
            page_size=int(data.get("page_size", DEFAULT_PAGE_SIZE)),
            max_pages=int(data.get("max_pages", DEFAULT_MAX_PAGES)),
            default_days=int(data.get("default_days", 7)),
        )
        for name in ("concurrency", "page_size", "max_pages", "default_days"):
            if getattr(config, name) < 1:
                raise ValueError(f"{name} must be at least 1, got {getattr(config, name)}")
        return config
