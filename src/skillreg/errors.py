"""Error taxonomy shared by the registry, the lockfile and the sync engine."""

from __future__ import annotations

from typing import Optional, Sequence

__all__ = [
    "RegistryError",
    "NotFound",
    "Corrupted",
    "ConstraintUnsatisfiable",
    "IOFailure",
    "InvalidInput",
]


class RegistryError(Exception):
    """Base class; ``kind`` is the short name surfaced in batch reports."""

    kind = "error"


class NotFound(RegistryError, LookupError):
    """Raised when a slug, version or object is absent."""

    kind = "not_found"


class Corrupted(RegistryError):
    """Raised when stored bytes no longer match their content hash."""

    kind = "corrupted"

    def __init__(self, message: str, *, sha256: Optional[str] = None) -> None:
        self.sha256 = sha256
        super().__init__(message)


class ConstraintUnsatisfiable(RegistryError):
    """Raised when no cached version matches the requested constraint."""

    kind = "constraint_unsatisfiable"

    def __init__(self, slug: str, constraint: Optional[str], available: Sequence[str]) -> None:
        self.slug = slug
        self.constraint = constraint
        self.available = list(available)
        if constraint:
            text = f"no cached version satisfies '{constraint}'. Available: {', '.join(self.available) or '(none)'}"
        else:
            text = "no versions cached"
        super().__init__(text)


class IOFailure(RegistryError):
    """Raised when a filesystem read/write/rename fails."""

    kind = "io_failure"

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(message if path is None else f"{message}: {path}")


class InvalidInput(RegistryError, ValueError):
    """Raised for malformed slugs, versions, constraints or documents."""

    kind = "invalid_input"
