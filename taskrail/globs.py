"""Glob patterns for watch bindings and test discovery.

Supported syntax: ``*`` (one path segment), ``**`` (any depth), ``?``,
``[...]`` character classes and ``{a,b}`` alternation. Paths are matched
relative to the watched root with ``/`` separators.
"""

from __future__ import annotations

import re


class GlobError(ValueError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` groups, e.g. ``*.{sass,scss}`` -> ``*.sass``, ``*.scss``."""
    start = pattern.find("{")
    if start < 0:
        if "}" in pattern:
            raise GlobError(f"Invalid glob '{pattern}': unbalanced '}}'")
        return [pattern]

    depth = 0
    options: list[str] = []
    last = start + 1
    for i in range(start, len(pattern)):
        ch = pattern[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                options.append(pattern[last:i])
                head, tail = pattern[:start], pattern[i + 1 :]
                out: list[str] = []
                for option in options:
                    out.extend(expand_braces(head + option + tail))
                return out
        elif ch == "," and depth == 1:
            options.append(pattern[last:i])
            last = i + 1

    raise GlobError(f"Invalid glob '{pattern}': unbalanced '{{'")


def _translate(pattern: str) -> str:
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if pattern.startswith("/", i):
                    # `a/**/b` also matches `a/b`
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = pattern.find("]", i + 2 if pattern.startswith("[!", i) else i + 1)
            if end < 0:
                raise GlobError(f"Invalid glob '{pattern}': unbalanced '['")
            body = pattern[i + 1 : end].replace("\\", "\\\\").replace("[", "\\[")
            # classes never match a separator; a leading `^` is literal
            if body.startswith("!"):
                out.append("[^/" + body[1:] + "]")
            else:
                if body.startswith("^"):
                    body = "\\" + body
                out.append("(?!/)[" + body + "]")
            i = end
        else:
            out.append(re.escape(ch))
        i += 1
    return "".join(out)


def compile_glob(pattern: str) -> re.Pattern[str]:
    if not isinstance(pattern, str) or len(pattern.strip()) < 1:
        raise GlobError("A glob pattern can't be empty")

    norm = pattern.strip().replace("\\", "/")
    if norm.startswith("./"):
        norm = norm[2:]

    alternatives = [_translate(p) for p in expand_braces(norm)]
    try:
        return re.compile("(?:" + "|".join(alternatives) + r")\Z")
    except re.error as exc:
        raise GlobError(f"Invalid glob '{pattern}': {exc}") from exc


def matches(pattern: re.Pattern[str], path: str) -> bool:
    norm = path.replace("\\", "/")
    if norm.startswith("./"):
        norm = norm[2:]
    return pattern.match(norm) is not None
