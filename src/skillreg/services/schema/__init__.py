"""Strict per-document schemas and the versioned loader used on every read."""

from __future__ import annotations

import copy
import json
import re
from datetime import date, datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, Sequence

from jsonschema import Draft202012Validator, ValidationError

from skillreg.errors import InvalidInput

SCHEMA_DIR = Path(__file__).resolve().parent

# поля, которые YAML мог распарсить не как строку (1.0 -> float, даты -> datetime)
_STRING_FIELDS = {"version", "updated_at", "created_at", "fetched_at", "locked_at", "name", "description", "changelog"}

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


@lru_cache(maxsize=None)
def _validator(name: str) -> Draft202012Validator:
    schema = json.loads((SCHEMA_DIR / f"{name}.schema.json").read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def coerce_scalars(obj: Any) -> Any:
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            if k in _STRING_FIELDS and v is not None and not isinstance(v, (str, dict, list)):
                v = v.isoformat() if isinstance(v, (datetime, date)) else str(v)
            out[str(k)] = coerce_scalars(v)
        return out
    if isinstance(obj, list):
        return [coerce_scalars(v) for v in obj]
    return obj


def validate(doc: Any, name: str, *, where: str = "") -> Dict[str, Any]:
    if not isinstance(doc, dict):
        raise InvalidInput(f"{where or name}: document must be a mapping")
    try:
        _validator(name).validate(doc)
    except ValidationError as e:
        loc = "/".join(str(p) for p in e.absolute_path)
        raise InvalidInput(f"{where or name}: schema violation at '{loc}': {e.message}") from e
    return doc


class Migration:
    """Чистая функция doc -> doc с условием применимости.

    Миграции компонуются по порядку; каждая получает результат предыдущей.
    """

    def __init__(self, name: str, applies: Callable[[Dict[str, Any]], bool], apply: Callable[[Dict[str, Any]], Dict[str, Any]]):
        self.name = name
        self.applies = applies
        self.apply = apply

    def __repr__(self) -> str:
        return f"Migration({self.name!r})"


def migrate(doc: Dict[str, Any], migrations: Sequence[Migration]) -> tuple[Dict[str, Any], list[str]]:
    """Возвращает (новый документ, имена применённых миграций). Исходный doc не меняется."""
    current = copy.deepcopy(doc)
    applied: list[str] = []
    for m in migrations:
        if m.applies(current):
            current = m.apply(copy.deepcopy(current))
            applied.append(m.name)
    return current, applied


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def has_camel_keys(obj: Any) -> bool:
    if isinstance(obj, dict):
        return any(_snake(str(k)) != str(k) or has_camel_keys(v) for k, v in obj.items())
    if isinstance(obj, list):
        return any(has_camel_keys(v) for v in obj)
    return False


def snake_keys(obj: Any) -> Any:
    # updatedAt -> updated_at; при конфликте побеждает уже snake_case ключ
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            new = _snake(str(k))
            if new in out and new != k:
                continue
            out[new] = snake_keys(v)
        return out
    if isinstance(obj, list):
        return [snake_keys(v) for v in obj]
    return obj


CAMEL_TO_SNAKE = Migration("camel_to_snake", has_camel_keys, snake_keys)


def load_document(raw: Any, name: str, *, where: str = "", migrations: Sequence[Migration] = ()) -> tuple[Dict[str, Any], list[str]]:
    """Определяет форму, мигрирует до текущей схемы и валидирует."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidInput(f"{where or name}: document must be a mapping")
    doc, applied = migrate(raw, migrations)
    return validate(coerce_scalars(doc), name, where=where), applied
