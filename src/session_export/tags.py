"""Keyword tagging of exported sessions.

Three independent tables map a tag name to patterns searched
case-insensitively in the thread text (file paths, shell commands and user
prompts). Every table is consulted and all matches are unioned; there is no
precedence and no confidence score, only presence.
"""

import re
from typing import Iterable

from .core import TagSet

AUTO_PREFIX = "auto/"
CUSTOM_PREFIX = "custom/"

LANGUAGE_SIGNALS = {
    "python": [r"\.py\b", r"\bpython3?\b", r"\bpytest\b", r"\bpip install\b", r"\bpyproject\.toml\b"],
    "typescript": [r"\.tsx?\b", r"\btypescript\b", r"\btsconfig\.json\b"],
    "javascript": [r"\.jsx?\b", r"\.mjs\b", r"\bjavascript\b", r"\bnpm\b", r"\bnode\b"],
    "rust": [r"\.rs\b", r"\bcargo\b", r"\brust\b"],
    "go": [r"\.go\b", r"\bgo (?:build|test|run|mod)\b", r"\bgolang\b"],
    "java": [r"\.java\b", r"\bmvn\b", r"\bgradle\b"],
    "sql": [r"\.sql\b", r"\bselect\b.+\bfrom\b", r"\bsql\b"],
    "shell": [r"\.sh\b", r"\bbash\b", r"\bzsh\b"],
    "r": [r"\.r\b", r"\.rmd\b", r"\brscript\b", r"\btidyverse\b"],
    "sas": [r"\.sas\b", r"\bproc sql\b", r"\bsas\b"],
}

TASK_SIGNALS = {
    "bug-fix": [r"\bbugs?\b", r"\bfix(?:es|ed|ing)?\b", r"\bbroken\b", r"\btraceback\b", r"\berrors?\b"],
    "refactor": [r"\brefactor", r"\bclean ?up\b", r"\brestructure\b", r"\brename\b"],
    "feature": [r"\bimplement", r"\badd (?:a |an |the )?(?:new )?(?:feature|support|option|endpoint|command)\b", r"\bnew feature\b"],
    "testing": [r"\btests?\b", r"\bunit tests?\b", r"\bcoverage\b", r"\bpytest\b"],
    "docs": [r"\breadme\b", r"\bdocs?\b", r"\bdocumentation\b", r"\bdocstrings?\b"],
    "migration": [r"\bmigrat", r"\bport(?:ing)? (?:to|from)\b", r"\bconvert\b"],
    "performance": [r"\bperformance\b", r"\boptimi[sz]", r"\bslow\b", r"\bprofil"],
    "debugging": [r"\bdebug", r"\binvestigate\b", r"\bwhy (?:is|does)\b"],
    "review": [r"\breview\b", r"\bcode review\b"],
}

STACK_SIGNALS = {
    "git": [r"\bgit (?:commit|push|pull|rebase|merge|checkout|diff|log|status)\b"],
    "docker": [r"\bdocker", r"\bdockerfile\b", r"\bcompose\.ya?ml\b"],
    "kubernetes": [r"\bkubectl\b", r"\bkubernetes\b", r"\bhelm\b"],
    "fastapi": [r"\bfastapi\b"],
    "django": [r"\bdjango\b", r"\bmanage\.py\b"],
    "flask": [r"\bflask\b"],
    "react": [r"\breact\b", r"\.jsx\b", r"\.tsx\b"],
    "pandas": [r"\bpandas\b", r"\bdataframe\b", r"\bpd\.\w+"],
    "numpy": [r"\bnumpy\b", r"\bnp\.\w+"],
    "postgres": [r"\bpostgres(?:ql)?\b", r"\bpsql\b"],
    "sqlite": [r"\bsqlite3?\b"],
    "aws": [r"\baws\b", r"\bs3://", r"\bboto3\b"],
    "terraform": [r"\bterraform\b", r"\.tf\b"],
    "spark": [r"\bpyspark\b", r"\bspark\b"],
}

TABLES = (LANGUAGE_SIGNALS, TASK_SIGNALS, STACK_SIGNALS)


def _compile(table: dict[str, list[str]]) -> dict[str, list[re.Pattern]]:
    return {tag: [re.compile(p, re.IGNORECASE) for p in patterns] for tag, patterns in table.items()}


_COMPILED = [_compile(table) for table in TABLES]


def classify(text: str) -> frozenset:
    """Return every auto tag whose patterns appear in ``text``."""
    if not text:
        return frozenset()

    tags = set()
    for table in _COMPILED:
        for tag, patterns in table.items():
            if any(p.search(text) for p in patterns):
                tags.add(AUTO_PREFIX + tag)
    return frozenset(tags)


def normalize_custom_tags(values: Iterable[str]) -> frozenset:
    """Turn free-text tags ("pnl, month-end") into ``custom/...`` labels."""
    tags = set()
    for value in values:
        for raw in re.split(r"[,\s]+", value or ""):
            if raw.startswith(CUSTOM_PREFIX):
                raw = raw[len(CUSTOM_PREFIX):]
            slug = re.sub(r"[^a-z0-9/_-]+", "-", raw.lower()).strip("-/")
            if slug:
                tags.add(CUSTOM_PREFIX + slug)
    return frozenset(tags)


def build_tag_set(text: str, custom: Iterable[str] = ()) -> TagSet:
    return TagSet(auto=classify(text), custom=normalize_custom_tags(custom))
