# src/skillreg/domain/types.py
from __future__ import annotations

import re
from datetime import datetime, timezone

from skillreg.errors import InvalidInput

_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")
_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_slug(slug: str) -> str:
    slug = (slug or "").strip()
    if not _SLUG_RE.match(slug):
        raise InvalidInput(f"invalid slug '{slug}': use lowercase letters, digits and hyphens")
    return slug


def slugify(name: str) -> str:
    """'My Skill!' -> 'my-skill'; пустая строка, если slug не получается."""
    return re.sub(r"[^a-z0-9]+", "-", (name or "").strip().lower()).strip("-")


def validate_hash(sha256: str) -> str:
    if not isinstance(sha256, str) or not _HASH_RE.match(sha256):
        raise InvalidInput(f"invalid content hash '{sha256}'")
    return sha256
