"""
Configuration management for prtrace.

Loads and validates:
- prtrace.yml: Main configuration (git remote, blame, browser, logging)
- .env: Environment overrides (PRTRACE_LOG_LEVEL)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "prtrace.yml"
LOG_LEVEL_ENV = "PRTRACE_LOG_LEVEL"


@dataclass
class GitConfig:
    """How git is invoked."""
    executable: str = "git"
    remote: str = "origin"


@dataclass
class BlameConfig:
    """Defaults for `prtrace blame-pr`."""
    first_parent: bool = True
    # When false, a commit that cannot be described keeps its hash as label
    strict_lookup: bool = True


@dataclass
class BrowserConfig:
    """Whether URLs are opened or printed."""
    open: bool = True


@dataclass
class SelectorConfig:
    """Interactive pull request selector settings."""
    inline: bool = True


@dataclass
class LoggingConfig:
    """Log sinks."""
    level: str = "WARNING"
    file: str | None = None


@dataclass
class PrtraceConfig:
    """Complete prtrace configuration."""
    git: GitConfig = field(default_factory=GitConfig)
    blame: BlameConfig = field(default_factory=BlameConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    selector: SelectorConfig = field(default_factory=SelectorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def log_level(self) -> str:
        """Effective log level, environment first."""
        return (os.environ.get(LOG_LEVEL_ENV) or self.logging.level).upper()

    @classmethod
    def load(cls, repo_root: Path) -> "PrtraceConfig":
        """Load configuration from repo root directory."""
        config_path = repo_root / CONFIG_FILENAME
        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        return cls._parse(data)

    @classmethod
    def _parse(cls, data: dict[str, Any]) -> "PrtraceConfig":
        """Parse main configuration dictionary."""
        git_data = data.get("git") or {}
        blame_data = data.get("blame") or {}
        browser_data = data.get("browser") or {}
        selector_data = data.get("selector") or {}
        logging_data = data.get("logging") or {}

        return cls(
            git=GitConfig(
                executable=git_data.get("executable", "git"),
                remote=git_data.get("remote", "origin"),
            ),
            blame=BlameConfig(
                first_parent=blame_data.get("first_parent", True),
                strict_lookup=blame_data.get("strict_lookup", True),
            ),
            browser=BrowserConfig(
                open=browser_data.get("open", True),
            ),
            selector=SelectorConfig(
                inline=selector_data.get("inline", True),
            ),
            logging=LoggingConfig(
                level=str(logging_data.get("level", "WARNING")),
                file=logging_data.get("file"),
            ),
        )


def get_repo_root() -> Path:
    """Find the repository root (directory containing .git)."""
    current = Path.cwd()
    while current != current.parent:
        if (current / ".git").exists():
            return current
        current = current.parent
    # No .git found, use current directory
    return Path.cwd()
