from .types import now_iso, slugify, validate_slug, validate_hash
from .skill import Provenance, SkillMetadata, VersionEntry, ResolvedSkill, InstalledSkillMeta, SkillInfo, SearchHit
from .project import SkillSource, ProjectEntry, ProjectConfig, LockedEntry, LockDocument
from .report import SkillError, SyncReport, PublishResult, PushResult, SaveResult, VerifyReport

__all__ = [
    "now_iso",
    "slugify",
    "validate_slug",
    "validate_hash",
    "Provenance",
    "SkillMetadata",
    "VersionEntry",
    "ResolvedSkill",
    "InstalledSkillMeta",
    "SkillInfo",
    "SearchHit",
    "SkillSource",
    "ProjectEntry",
    "ProjectConfig",
    "LockedEntry",
    "LockDocument",
    "SkillError",
    "SyncReport",
    "PublishResult",
    "PushResult",
    "SaveResult",
    "VerifyReport",
]
