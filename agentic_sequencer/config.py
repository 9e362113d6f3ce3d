"""
Configuration management for Agentic Sequencer.

Provides the engine configuration dataclass and environment variable loading.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file if present
load_dotenv()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        return default


def env_debug() -> bool:
    """Whether AGENTIC_SEQ_DEBUG asks for verbose logging."""
    return _env_flag("AGENTIC_SEQ_DEBUG")


def get_base_dir() -> Path:
    """Get the base directory for agentic sequencer data."""
    return Path.home() / ".agentic_sequencer"


def get_runs_dir() -> Path:
    """Get the directory for run logs."""
    return get_base_dir() / "runs"


def get_sequences_path() -> Path:
    """Get the path to the saved sequences file."""
    return get_base_dir() / "sequences.json"


@dataclass
class EngineConfig:
    """Configuration for the task execution engine."""

    # Search engine used by the search task; {query} is URL-encoded
    search_url_template: str = field(
        default_factory=lambda: os.getenv(
            "AGENTIC_SEQ_SEARCH_URL",
            "https://duckduckgo.com/?q={query}",
        )
    )

    # Fixed delays (ms)
    inter_task_delay_ms: int = 500
    loop_delay_ms: int = 1000

    # Multiplier for randomized human-like delays; 0 disables them
    human_delay_scale: float = field(
        default_factory=lambda: _env_float("AGENTIC_SEQ_HUMAN_DELAY", 1.0)
    )

    # Extraction limits
    max_extract_links: int = 10
    max_extract_headings: int = 5

    # Defaults for tasks with no explicit config
    default_scroll_amount: int = 500
    default_wait_ms: int = 1000

    # Browser settings
    headless: bool = field(default_factory=lambda: _env_flag("AGENTIC_SEQ_HEADLESS"))
    browser_fast_mode: bool = False
    start_url: Optional[str] = None
    navigation_timeout: int = 30000

    # Write a JSONL step log per run
    log_to_disk: bool = True

    # Debug mode - enables verbose logging (off by default)
    debug: bool = field(default_factory=env_debug)

    def __post_init__(self):
        if self.human_delay_scale < 0:
            self.human_delay_scale = 0.0
        if "{query}" not in self.search_url_template:
            raise ValueError(
                f"search_url_template must contain '{{query}}': {self.search_url_template}"
            )

    @classmethod
    def from_cli_args(
        cls,
        headless: bool = False,
        fast: bool = False,
        start_url: Optional[str] = None,
        no_humanize: bool = False,
        no_log: bool = False,
        debug: bool = False,
    ) -> "EngineConfig":
        """Create configuration from CLI arguments."""
        config = cls(
            browser_fast_mode=fast,
            start_url=start_url,
            log_to_disk=not no_log,
        )
        # Flags only ever switch these on; env settings otherwise win
        config.headless = config.headless or headless
        config.debug = config.debug or debug
        if no_humanize:
            config.human_delay_scale = 0.0
        return config


# Default configuration values for documentation
DEFAULTS = {
    "search_url_template": "https://duckduckgo.com/?q={query}",
    "inter_task_delay_ms": 500,
    "loop_delay_ms": 1000,
    "human_delay_scale": 1.0,
    "max_extract_links": 10,
    "max_extract_headings": 5,
    "default_scroll_amount": 500,
    "default_wait_ms": 1000,
    "headless": False,
    "navigation_timeout_ms": 30000,
}
