"""
Exception types for Agentic Sequencer.

Every failure raised by a task handler is fatal to the current run; the
classes only distinguish where the failure came from.
"""


class AutomationError(Exception):
    """Base class for sequencer errors."""


class PreconditionError(AutomationError):
    """A run could not start (empty sequence, no page view, run in progress)."""


class TaskConfigError(AutomationError):
    """A task is missing a required config field or has a malformed one."""


class ResolutionError(AutomationError):
    """A handler could not resolve the element, text or input it needs."""


class PageScriptError(ResolutionError):
    """An injected page script threw or returned an unexpected shape."""
