"""Root of the seedprobe exception hierarchy."""

from typing import Any, Mapping, Optional


class SeedProbeError(Exception):
    """Base class for every error seedprobe raises deliberately.

    ``details`` holds the context needed to act on the error (the offending
    path, key or reason). Values are kept as strings so the error can be
    emitted as-is by ``seedprobe detect --format json``.
    """

    def __init__(self, message: str, details: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = {key: str(value) for key, value in (details or {}).items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": dict(self.details),
        }

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"
