# src/skillreg/services/project/validation.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from skillreg.domain import validate_slug
from skillreg.errors import InvalidInput
from skillreg.services.project.installer import Materializer
from skillreg.services.registry.objects import compute_hash

MIN_CONTENT_LENGTH = 100
_HEADING_RE = re.compile(r"^#\s+\S", re.M)


@dataclass
class Issue:
    level: str  # "error" | "warning"
    code: str
    message: str
    where: str | None = None


@dataclass
class ValidationReport:
    slug: str
    issues: List[Issue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(i.level == "error" for i in self.issues)

    @property
    def errors(self) -> List[Issue]:
        return [i for i in self.issues if i.level == "error"]

    @property
    def warnings(self) -> List[Issue]:
        return [i for i in self.issues if i.level == "warning"]


def _content_checks(content: bytes) -> List[Issue]:
    issues: List[Issue] = []
    text = content.decode("utf-8", errors="replace")
    if not text.strip():
        issues.append(Issue("error", "content.empty", "SKILL.md is empty", "SKILL.md"))
        return issues
    if not _HEADING_RE.search(text):
        issues.append(Issue("warning", "content.heading", "SKILL.md should have a # heading", "SKILL.md"))
    if len(text) < MIN_CONTENT_LENGTH:
        issues.append(Issue("warning", "content.short", "SKILL.md seems very short", "SKILL.md"))
    return issues


class SkillValidationService:
    """Проверка установленных в проекте навыков: SKILL.md и meta.yaml рядом с ним."""

    def __init__(self, materializer: Materializer):
        self.materializer = materializer

    def validate(self, slug: str) -> ValidationReport:
        report = ValidationReport(slug=slug)
        try:
            validate_slug(slug)
        except InvalidInput as exc:
            report.issues.append(Issue("error", "slug.invalid", str(exc)))
            return report

        content = self.materializer.read_content(slug)
        if content is None:
            report.issues.append(Issue("error", "missing.skill_md", "SKILL.md not found", "SKILL.md"))
        else:
            report.issues.extend(_content_checks(content))

        try:
            meta = self.materializer.read_installed_meta(slug)
        except InvalidInput as exc:
            report.issues.append(Issue("error", "meta.invalid", str(exc), "meta.yaml"))
            return report
        if meta is None:
            report.issues.append(Issue("error", "missing.meta", "meta.yaml not found", "meta.yaml"))
            return report
        if meta.slug != slug:
            report.issues.append(Issue("error", "meta.slug_mismatch", f"meta.yaml slug '{meta.slug}' does not match directory", "meta.yaml"))
        if content is not None and compute_hash(content) != meta.sha256:
            report.issues.append(
                Issue("warning", "content.modified", "SKILL.md differs from the synced version; run save or sync", "SKILL.md")
            )
        return report

    def validate_all(self, slugs: Optional[Iterable[str]] = None) -> list[ValidationReport]:
        targets = list(slugs) if slugs else self.materializer.list_installed()
        return [self.validate(s) for s in targets]
