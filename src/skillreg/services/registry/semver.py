# src/skillreg/services/registry/semver.py
from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable, Optional

import semantic_version

from skillreg.errors import InvalidInput

_RANGE_PREFIXES = (">=", "^", "~", ">", "<")


def parse_version(version: str) -> Optional[semantic_version.Version]:
    try:
        return semantic_version.Version(str(version).strip())
    except ValueError:
        return None


def is_valid_version(version: str) -> bool:
    return parse_version(version) is not None


def compare_versions(a: str, b: str) -> int:
    """-1 / 0 / 1 для двух валидных версий; InvalidInput иначе."""
    va, vb = parse_version(a), parse_version(b)
    if va is None or vb is None:
        raise InvalidInput(f"cannot compare '{a}' and '{b}': not semver")
    return (va > vb) - (va < vb)


def is_greater(a: str, b: str) -> bool:
    return compare_versions(a, b) > 0


def _cmp_desc(a: str, b: str) -> int:
    # невалидные версии в конец, ничья решается сравнением строк
    va, vb = parse_version(a), parse_version(b)
    if va is not None and vb is not None:
        if va > vb:
            return -1
        if va < vb:
            return 1
    elif va is not None:
        return -1
    elif vb is not None:
        return 1
    return (a > b) - (a < b)


# ключ сортировки по убыванию: sorted(items, key=lambda x: version_sort_key(x.version))
version_sort_key = cmp_to_key(_cmp_desc)


def sort_versions_desc(versions: Iterable[str]) -> list[str]:
    return sorted(versions, key=version_sort_key)


def parse_constraint(constraint: str) -> tuple[str, str]:
    """Возвращает ("exact" | "range", нормализованное значение)."""
    clean = (constraint or "").strip()
    if not clean:
        raise InvalidInput("empty version constraint")
    if clean.startswith(_RANGE_PREFIXES) or " " in clean:
        return "range", clean
    return "exact", clean


def _npm_spec(expr: str) -> semantic_version.NpmSpec:
    try:
        return semantic_version.NpmSpec(expr)
    except ValueError as exc:
        raise InvalidInput(f"invalid version constraint '{expr}': {exc}") from exc


def validate_constraint(constraint: str) -> str:
    """Проверяет синтаксис ограничения; точные версии допускают любую строку."""
    kind, value = parse_constraint(constraint)
    if kind == "range":
        _npm_spec(value)
    return value


def satisfies(version: str, constraint: str) -> bool:
    v = parse_version(version)
    return v is not None and v in _npm_spec(constraint)


def max_satisfying(versions: Iterable[str], constraint: str) -> Optional[str]:
    spec = _npm_spec(constraint)
    parsed = {}
    for raw in versions:
        v = parse_version(raw)
        if v is not None:
            parsed.setdefault(v, raw)
    best = spec.select(parsed.keys())
    return parsed[best] if best is not None else None


def resolve_version(versions: Iterable[str], constraint: Optional[str] = None) -> Optional[str]:
    """
    - без ограничения → наибольшая валидная версия;
    - точная версия → только точное совпадение;
    - диапазон → наибольшая подходящая версия.
    """
    versions = list(versions)
    if not constraint or not constraint.strip():
        valid = [v for v in versions if is_valid_version(v)]
        ordered = sort_versions_desc(valid)
        return ordered[0] if ordered else None
    kind, value = parse_constraint(constraint)
    if kind == "exact":
        return value if value in versions else None
    return max_satisfying(versions, value)


def bump_version(version: str, part: str = "patch") -> str:
    v = parse_version(version)
    if v is None:
        raise InvalidInput(f"invalid version '{version}'")
    if part == "major":
        return str(v.next_major())
    if part == "minor":
        return str(v.next_minor())
    if part == "patch":
        return str(v.next_patch())
    raise InvalidInput(f"unknown version part '{part}'")
