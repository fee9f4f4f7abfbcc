"""
Exception taxonomy for the Research Console.
"""


class ResearchConsoleError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(ResearchConsoleError):
    """A required credential or setting is missing or invalid. Fatal."""


class BootstrapError(ResearchConsoleError):
    """The orchestration context or tool registration failed. Fatal."""


class TaskExecutionError(ResearchConsoleError):
    """The session rejected or failed a single task. Recoverable."""


class StreamError(TaskExecutionError):
    """The event sequence of a task terminated abnormally. Recoverable."""
