# src/skillreg/config/const.py
from __future__ import annotations

# раскладка локального реестра
OBJECTS_DIR = "objects"
SKILLS_DIR = "skills"
LOGS_DIR = "logs"
META_FILE = "meta.yaml"
VERSIONS_FILE = "versions.yaml"
SKILL_FILE = "SKILL.md"

# раскладка проекта
PROJECT_CONFIG_FILE = ".skills.yaml"
LOCKFILE = ".skills.lock"
INDEX_FILE = "SKILLS_INDEX.md"
SYSTEM_DIR = "_system"

DEFAULT_INSTALL_PATH = ".claude/skills"
DEFAULT_SOURCE_NAME = "local"

# temp-файлы атомарной записи: <name>.tmp.<pid>.<uuid>
TEMP_MARKER = ".tmp."
# временные файлы моложе этого порога могут принадлежать идущей записи
TEMP_MAX_AGE_SEC = 60 * 60

META_SCHEMA_VERSION = 2
DEFAULT_BASELINE_VERSION = "1.0.0"

LOCKFILE_HEADER = "# .skills.lock — auto-generated, commit to repo\n"

# места, где обычно лежат навыки других инструментов (для import)
IMPORT_SKILL_DIRS = (".claude/skills", "skills")
IMPORT_MD_DIRS = (".claude/commands", ".cursor/rules")
IMPORT_FILES = ("AGENTS.md", ".cursorrules")
