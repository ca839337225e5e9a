"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class PodcastCliError(Exception):
    """Base exception for all application-specific errors."""


class ParseError(PodcastCliError):
    """Raised when an episode selector or podcast pattern cannot be parsed."""


class NotFoundError(PodcastCliError):
    """Raised when no subscription or episode matches the requested selection."""


class NetworkError(PodcastCliError):
    """Raised when a feed or media transfer fails at the HTTP or socket level."""


class FilesystemError(PodcastCliError):
    """Raised when reading or writing a local file fails."""


class AlreadyExistsError(PodcastCliError):
    """
    Raised when the target of an operation already exists. Callers treat this as
    a reason to skip, not as a failure.
    """


class FeedError(PodcastCliError):
    """Raised when a feed document cannot be parsed into a podcast."""


class ConfigurationError(PodcastCliError):
    """Raised for issues related to configuration loading or validation."""


class StateError(PodcastCliError):
    """Raised when the persisted subscription state cannot be read or written."""


class PlaybackError(PodcastCliError):
    """Raised when no external audio player could be launched."""
