"""TOML configuration loader for invoice scanning."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None  # type: ignore[assignment]


@dataclass
class ClaudeVisionConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"


@dataclass
class GeminiVisionConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class VisionConfig:
    backend: str = "gemini"
    timeout: float = 60.0
    claude: ClaudeVisionConfig = field(default_factory=ClaudeVisionConfig)
    gemini: GeminiVisionConfig = field(default_factory=GeminiVisionConfig)


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 1.0


@dataclass
class DatabaseConfig:
    path: str = "~/.config/invoscan/invoscan.db"


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class ScanConfig:
    vision: VisionConfig = field(default_factory=VisionConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path | None = None) -> ScanConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys can be overridden via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            if tomllib is None:
                raise ImportError(
                    "tomli is required on Python < 3.11: pip install tomli"
                )
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    vis = raw.get("vision", {})
    rty = raw.get("retry", {})
    dbs = raw.get("database", {})
    lgg = raw.get("logging", {})

    claude_cfg = vis.get("claude", {})
    gemini_cfg = vis.get("gemini", {})

    # Resolve API keys: config file → environment variable
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )

    max_attempts = int(rty.get("max_attempts", 3))
    if max_attempts < 1:
        raise ValueError(f"retry.max_attempts must be at least 1, got {max_attempts}")

    return ScanConfig(
        vision=VisionConfig(
            backend=vis.get("backend", "gemini"),
            timeout=float(vis.get("timeout", 60.0)),
            claude=ClaudeVisionConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
            ),
            gemini=GeminiVisionConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
        ),
        retry=RetryConfig(
            max_attempts=max_attempts,
            base_delay=float(rty.get("base_delay", 1.0)),
        ),
        database=DatabaseConfig(
            path=dbs.get("path", "~/.config/invoscan/invoscan.db"),
        ),
        logging=LoggingConfig(
            level=str(lgg.get("level", "INFO")).upper(),
        ),
    )
