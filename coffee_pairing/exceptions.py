"""
Exceptions raised by the pairing engine.
"""


class PairingEngineError(Exception):
    """Base exception for engine errors."""


class ConfigurationError(PairingEngineError):
    """Raised when matching configuration is invalid."""


class SnapshotError(PairingEngineError):
    """Raised when a candidate snapshot cannot be parsed or validated."""


class CandidateSourceError(PairingEngineError):
    """Raised when the candidate source cannot produce a snapshot for a locale."""

    def __init__(self, locale: str, message: str):
        super().__init__(f"[{locale}] {message}")
        self.locale = locale
