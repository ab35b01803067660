"""Heuristic source-language detection.

Scores each known language by how many of its marker keywords occur in the
text. The highest score wins; ties go to the language listed first. Returns
``"unknown"`` for blank input or when nothing matches.
"""

import json
import re

UNKNOWN_LANGUAGE = "unknown"

_KEYWORDS: dict[str, tuple[str, ...]] = {
    "javascript": ("const", "let", "var", "function", "import", "export", "class", "console.log", "=>"),
    "typescript": ("interface", "type", "enum", "public", "private", "protected", "declare", "import", "export", "class", "=>"),
    "python": ("import", "def", "class", "print", 'if __name__ == "__main__"', "async def", "from", "self"),
    "java": ("public class", "import", "void", "static", "System.out.println", "package", "@Override"),
    "go": ("package main", "import", "func", "var", "const", "fmt.Println", ":="),
    "rust": ("fn main", "fn", "mod", "use", "pub", "struct", "enum", "let", "impl"),
    "csharp": ("using", "namespace", "class", "public static void Main", "Console.WriteLine"),
    "php": ("<?php", "namespace", "class", "function", "use", "echo", "$this"),
    "ruby": ("def", "class", "module", "puts", "require", "end"),
    "sql": ("SELECT", "FROM", "WHERE", "INSERT", "UPDATE", "DELETE", "CREATE TABLE", "JOIN"),
    "shell": ("#!/bin/bash", "#!/bin/sh", "sudo", "apt-get", "echo", "fi", "done"),
}  # fmt: skip

_WORDLIKE = re.compile(r"^[\w ]+$")
_XML_SHAPE = re.compile(r"^\s*<[^>]+>[\s\S]*</?[^>]+>\s*$")


def _compile(keyword: str) -> re.Pattern[str]:
    if _WORDLIKE.match(keyword):
        return re.compile(rf"\b{re.escape(keyword)}\b")
    return re.compile(re.escape(keyword))


_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    language: tuple(_compile(k) for k in keywords)
    for language, keywords in _KEYWORDS.items()
}


def _looks_like_json(text: str) -> bool:
    stripped = text.strip()
    if not stripped or stripped[0] not in "[{":
        return False
    try:
        json.loads(stripped)
    except ValueError:
        return False
    return True


def detect_language(text: str) -> str:
    """Best-effort guess of the programming language of ``text``."""
    if not text or not text.strip():
        return UNKNOWN_LANGUAGE
    if _looks_like_json(text):
        return "json"
    if text.lstrip().startswith("<?xml") or (
        _XML_SHAPE.match(text) and "<?php" not in text
    ):
        return "xml"

    scores = {
        language: sum(1 for p in patterns if p.search(text))
        for language, patterns in _PATTERNS.items()
    }
    if "interface" in text and "type" in text:
        scores["typescript"] += 2

    best, best_score = UNKNOWN_LANGUAGE, 0
    for language, score in scores.items():
        if score > best_score:
            best, best_score = language, score
    return best


def resolve_language(declared: str | None, text: str) -> str:
    """Use the caller's declared language unless it is missing or unknown."""
    if declared and declared.strip().lower() != UNKNOWN_LANGUAGE:
        return declared.strip().lower()
    return detect_language(text)
