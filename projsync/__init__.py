from .errors import SyncError, SourceUnavailable, ApplyFailure, ConfigurationError

__all__ = [
    "SyncError",
    "SourceUnavailable",
    "ApplyFailure",
    "ConfigurationError",
]

__version__ = "0.1.0"
