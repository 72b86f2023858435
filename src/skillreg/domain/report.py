# src/skillreg/domain/report.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True, slots=True)
class SkillError:
    slug: str
    kind: str
    reason: str


@dataclass(slots=True)
class SyncReport:
    updated: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    errors: list[SkillError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def fail(self, slug: str, kind: str, reason: str) -> None:
        self.errors.append(SkillError(slug=slug, kind=kind, reason=reason))

    def merge(self, other: "SyncReport") -> "SyncReport":
        self.updated.extend(other.updated)
        self.unchanged.extend(other.unchanged)
        self.errors.extend(other.errors)
        return self


@dataclass(frozen=True, slots=True)
class PublishResult:
    slug: str
    sha256: str
    version: Optional[str] = None
    deduplicated: bool = False


@dataclass(frozen=True, slots=True)
class PushResult:
    slug: str
    registry: str
    version: str
    sha256: str


@dataclass(frozen=True, slots=True)
class SaveResult:
    slug: str
    sha256: str
    version: Optional[str] = None
    changed: bool = True


@dataclass(frozen=True, slots=True)
class VerifyReport:
    checked: int
    corrupted: list[str]

    @property
    def ok(self) -> bool:
        return not self.corrupted
