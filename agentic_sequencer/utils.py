"""
Utility functions for Agentic Sequencer.

Provides helpers for text processing, script embedding, ids and timing.
"""

import asyncio
import json
import random
import re
import time
import uuid
from typing import Any


def truncate_text(text: str, max_chars: int, suffix: str = "...") -> str:
    """Truncate text to a maximum number of characters.

    Args:
        text: Text to truncate
        max_chars: Maximum number of characters
        suffix: Suffix to add when truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_chars:
        return text
    return text[:max_chars - len(suffix)] + suffix


def slugify(text: str, max_length: int = 30) -> str:
    """Convert text to a filesystem-safe slug."""
    slug = re.sub(r'[^\w\s-]', '', text.lower())
    slug = re.sub(r'[-\s]+', '_', slug).strip('_')
    return slug[:max_length]


def js_literal(value: Any) -> str:
    """Render a Python value as a JavaScript literal for an injected script.

    JSON is a subset of JS expression syntax, so quotes, backslashes and
    newlines in user text cannot break out of the literal.
    """
    return json.dumps(value)


def new_task_id() -> str:
    """Generate an opaque task id: task-<epoch ms>-<9 hex chars>."""
    return f"task-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def parse_domain(url: str) -> str:
    """Extract the domain from a URL.

    Args:
        url: Full URL

    Returns:
        Domain name (e.g., "example.com")
    """
    # Remove protocol
    domain = re.sub(r'^https?://', '', url)
    # Remove path and query
    domain = re.split(r'[/?#]', domain)[0]
    # Remove port
    domain = domain.split(':')[0]
    domain = domain.lower()
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def is_password_field(hint: str) -> bool:
    """Check if a field hint or selector likely refers to a password field."""
    password_patterns = [
        r'password',
        r'passwd',
        r'pwd',
        r'#pass',
        r'\.pass',
    ]
    hint_lower = (hint or "").lower()
    return any(re.search(p, hint_lower) for p in password_patterns)


def human_delay_ms(low_ms: float, high_ms: float, scale: float = 1.0) -> float:
    """Pick a randomized delay in [low_ms, high_ms], scaled."""
    return random.uniform(low_ms, high_ms) * scale


async def human_pause(low_ms: float, high_ms: float, scale: float = 1.0) -> None:
    """Sleep for a randomized human-like interval.

    A scale of 0 still yields to the event loop but does not wait.
    """
    await asyncio.sleep(human_delay_ms(low_ms, high_ms, scale) / 1000)
