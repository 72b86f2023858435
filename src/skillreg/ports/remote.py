from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence


class RemoteError(Exception):
    """Любой сбой удалённого реестра: сеть, авторизация, отказ сервера."""


@dataclass(frozen=True, slots=True)
class RemoteSkill:
    slug: str
    version: str
    content: bytes
    sha256: str
    name: Optional[str] = None
    description: Optional[str] = None
    tags: Sequence[str] = field(default_factory=tuple)
    compat: Sequence[str] = field(default_factory=tuple)


class RemoteRegistry(Protocol):
    """Облачный реестр навыков; транспорт реализуется снаружи."""

    registry: str

    def fetch(self, slug: str, constraint: Optional[str] = None) -> RemoteSkill: ...

    def publish_version(self, slug: str, version: str, content: bytes, changelog: Optional[str] = None) -> str: ...
