"""JSON Pointer (RFC 6901) parsing and lookup.

``resolve`` is the no-throw lookup the rest of the package depends on: an
unreachable location is reported as the ``NOT_FOUND`` sentinel, never as an
exception, and never confused with a JSON ``null`` stored at the location.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional, Union

_INDEX_RE = re.compile(r"^[0-9]+$")


class _NotFound:
    """Singleton marker for "no value at this pointer"."""

    _instance: Optional["_NotFound"] = None

    def __new__(cls) -> "_NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __copy__(self) -> "_NotFound":
        return self

    def __deepcopy__(self, memo: dict) -> "_NotFound":
        return self


NOT_FOUND = _NotFound()


def unescape_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def escape_token(token: Union[str, int]) -> str:
    return str(token).replace("~", "~0").replace("/", "~1")


def parse_json_pointer(path: str) -> list[str]:
    if path == "" or path == "/":
        return []
    if not path.startswith("/"):
        raise ValueError(f'Invalid JSON Pointer (must start with "/"): {path}')
    return [unescape_token(t) for t in path.split("/")[1:]]


def parse_json_pointer_lenient(path: str) -> list[str]:
    """Like ``parse_json_pointer`` but tolerates a missing leading slash."""
    if not isinstance(path, str):
        raise ValueError(f"Invalid JSON Pointer (not a string): {path!r}")
    if path and not path.startswith("/"):
        path = "/" + path
    return parse_json_pointer(path)


def join_json_pointer(tokens: Iterable[Union[str, int]]) -> str:
    tokens = list(tokens)
    if not tokens:
        return ""
    return "/" + "/".join(escape_token(t) for t in tokens)


def parse_array_index(token: str) -> Optional[int]:
    """Base-10 non-negative index, or None when *token* is not one."""
    if not isinstance(token, str) or not _INDEX_RE.match(token):
        return None
    return int(token)


def get_at(doc: Any, tokens: list[str]) -> Any:
    """Walk *tokens* from *doc*; ``NOT_FOUND`` if any step is unreachable."""
    cur = doc
    for t in tokens:
        if cur is None:
            return NOT_FOUND
        if isinstance(cur, list):
            idx = parse_array_index(t)
            if idx is None or idx >= len(cur):
                return NOT_FOUND
            cur = cur[idx]
        elif isinstance(cur, dict):
            if t not in cur:
                return NOT_FOUND
            cur = cur[t]
        else:
            return NOT_FOUND
    return cur


def resolve(document: Any, pointer: str) -> Any:
    """Return the value at *pointer* inside *document*, or ``NOT_FOUND``.

    The root pointer (``""`` or ``"/"``) returns *document* itself, not a
    copy. Malformed pointers resolve to ``NOT_FOUND`` as well.
    """
    try:
        tokens = parse_json_pointer(pointer)
    except (ValueError, AttributeError):
        return NOT_FOUND
    return get_at(document, tokens)


def is_ancestor(ancestor: list[str], tokens: list[str]) -> bool:
    """True when *ancestor* is a strict prefix of *tokens*."""
    return len(ancestor) < len(tokens) and tokens[: len(ancestor)] == ancestor
