"""Tests for leaderboard configuration loading."""

import json

import pytest

from src.ai_leaderboard.config import (
    ConfigError,
    LeaderboardConfig,
    LeaderboardConfigManager,
)
from src.ai_leaderboard.data_models import AITool, Repository


@pytest.fixture
def config_path(tmp_path):
    """Path for a temporary config file."""
    return tmp_path / "leaderboard.json"


class TestLeaderboardConfigManager:
    """Test loading configuration files."""

    def test_missing_file_uses_defaults(self, config_path):
        """A missing file yields the built-in configuration."""
        config = LeaderboardConfigManager(config_path).config

        assert config.repositories == []
        assert config.concurrency == 3
        assert config.page_size == 100
        assert config.max_pages == 100
        assert config.default_days == 7
        assert "claude" in config.label_rules

    def test_loads_file(self, config_path):
        """Repositories, rules and tunables are read from JSON."""
        config_path.write_text(
            json.dumps(
                {
                    "repositories": [
                        {"owner": "acme", "name": "api", "display_name": "API"},
                        "acme/web",
                    ],
                    "label_rules": [
                        {"label": "ai-assisted", "tool": "copilot"},
                        {"label": "cursor", "enabled": False},
                    ],
                    "label_scan_repos": ["API"],
                    "concurrency": 5,
                    "max_pages": 10,
                }
            )
        )

        config = LeaderboardConfigManager(config_path).config

        assert config.repositories == [
            Repository("acme", "api", "API"),
            Repository("acme", "web"),
        ]
        assert config.label_rules.get("ai-assisted").tool == AITool.COPILOT
        assert not config.label_rules.get("cursor").enabled
        assert config.label_scan_repos == ["API"]
        assert config.concurrency == 5
        assert config.max_pages == 10
        assert config.page_size == 100

    def test_env_var_path(self, config_path, monkeypatch):
        """AI_LEADERBOARD_CONFIG points at the file when no path is given."""
        config_path.write_text(json.dumps({"default_days": 14}))
        monkeypatch.setenv("AI_LEADERBOARD_CONFIG", str(config_path))

        manager = LeaderboardConfigManager()

        assert manager.config_file == config_path
        assert manager.config.default_days == 14

    def test_invalid_json(self, config_path):
        """Unparseable files raise ConfigError."""
        config_path.write_text("{not json")

        with pytest.raises(ConfigError, match="Failed to read"):
            LeaderboardConfigManager(config_path)

    @pytest.mark.parametrize(
        "data",
        [
            {"repositories": ["no-slash"]},
            {"repositories": [{"owner": "acme"}]},
            {"label_rules": [{"label": "x", "tool": "unknown-tool"}]},
            {"concurrency": "many"},
            {"page_size": 0},
            {"max_pages": -1},
            {"default_days": 0},
        ],
    )
    def test_invalid_content(self, config_path, data):
        """Invalid values raise ConfigError."""
        config_path.write_text(json.dumps(data))

        with pytest.raises(ConfigError, match="Invalid configuration"):
            LeaderboardConfigManager(config_path)


class TestLeaderboardConfig:
    """Test config helpers."""

    def test_to_dict_round_trip(self):
        """to_dict output loads back into an equivalent config."""
        config = LeaderboardConfig(
            repositories=[Repository("acme", "api", "API")], label_scan_repos=["API"]
        )

        rebuilt = LeaderboardConfigManager.from_dict(config.to_dict())

        assert rebuilt.repositories == config.repositories
        assert list(rebuilt.label_rules) == list(config.label_rules)
        assert rebuilt.label_scan_repos == ["API"]
