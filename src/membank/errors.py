"""Exceptions raised by membank core modules."""


class MembankError(Exception):
    """Base class for all membank errors."""


class ParseError(MembankError, ValueError):
    """Raised when structured text cannot be parsed."""


class VersionParseError(ParseError):
    """Raised for a malformed X.Y.Z version string."""


class RemoteFetchError(MembankError):
    """Raised when the release source cannot be read."""


class NoBackupError(MembankError):
    """Raised when a restore is requested but no backup exists."""


class BackupIntegrityError(MembankError):
    """Raised when a backup is incomplete or its files do not match their hashes."""


class InvalidTransitionError(MembankError):
    """Raised for an update-session state change the transition table forbids."""


class UpdateError(MembankError):
    """Raised when an update cannot be applied."""


class AmbiguousAnswerError(MembankError, ValueError):
    """Raised when a questionnaire answer matches no choice, or more than one."""


class ConfigError(MembankError):
    """Raised when config.json is unreadable or holds invalid settings."""
