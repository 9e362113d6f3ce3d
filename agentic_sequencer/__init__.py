"""
Agentic Sequencer - A task-sequence runner for browser automation.

Drives Chromium via Playwright through user-built sequences of search,
find, click, extract, type, enter, scroll and wait tasks.
"""

__version__ = "0.1.0"
__author__ = "Agentic Sequencer Contributors"
