"""JSON Pointer addressing of values inside a JSON document."""

from __future__ import annotations

import re
from typing import Any

_INDEX_PATTERN = re.compile(r"0|[1-9][0-9]*")


class InvalidPointerError(ValueError):
    """Raised when a string is not a well-formed JSON pointer."""


def _unescape(raw: str, path: str) -> str:
    head, *rest = raw.split("~")
    pieces = [head]
    for part in rest:
        if part.startswith("0"):
            pieces.append("~" + part[1:])
        elif part.startswith("1"):
            pieces.append("/" + part[1:])
        else:
            raise InvalidPointerError(f"bad escape sequence in pointer {path!r}")
    return "".join(pieces)


def _parse(path: str) -> tuple[str, ...]:
    if path == "":
        return ()
    if not path.startswith("/"):
        raise InvalidPointerError(f"pointer {path!r} must start with '/'")
    return tuple(_unescape(raw, path) for raw in path[1:].split("/"))


def _index(token: str) -> int | None:
    if _INDEX_PATTERN.fullmatch(token):
        return int(token)
    return None


def _resolve(document: Any, tokens: tuple[str, ...], path: str) -> Any:
    current = document
    for token in tokens:
        if isinstance(current, dict):
            if token not in current:
                raise KeyError(path)
            current = current[token]
        elif isinstance(current, list):
            index = _index(token)
            if index is None or index >= len(current):
                raise KeyError(path)
            current = current[index]
        else:
            raise KeyError(path)
    return current


def _assign(node: Any, tokens: tuple[str, ...], value: Any) -> Any:
    if not tokens:
        return value
    token, rest = tokens[0], tokens[1:]
    if isinstance(node, list) and token == "-":
        node.append(_assign(None, rest, value))
        return node
    index = _index(token)
    if index is None:
        if not isinstance(node, dict):
            node = {}
    elif not isinstance(node, (list, dict)):
        node = []
    if isinstance(node, list):
        if index >= len(node):
            node.extend([None] * (index + 1 - len(node)))
        node[index] = _assign(node[index], rest, value)
    else:
        node[token] = _assign(node.get(token), rest, value)
    return node


def is_valid_pointer(path: str) -> bool:
    """Return True if ``path`` is a well-formed JSON pointer."""
    try:
        _parse(path)
    except InvalidPointerError:
        return False
    return True


class JsonPointer:
    """A parsed JSON pointer such as ``/channels/0/name``."""

    __slots__ = ("path", "tokens")

    def __init__(self, path: str) -> None:
        self.path = path
        self.tokens = _parse(path)

    def __repr__(self) -> str:
        return f"JsonPointer({self.path!r})"

    def get(self, document: Any) -> Any:
        """Return the value the pointer refers to; raise KeyError if absent."""
        return _resolve(document, self.tokens, self.path)

    def set(self, document: Any, value: Any) -> Any:
        """Store ``value`` at the pointer, creating containers on the way.

        Returns the document root, which is ``value`` itself for the empty
        pointer.
        """
        return _assign(document, self.tokens, value)

    def erase(self, document: Any) -> bool:
        """Remove the value the pointer refers to; return whether it existed."""
        if not self.tokens:
            return False
        try:
            parent = _resolve(document, self.tokens[:-1], self.path)
        except KeyError:
            return False
        last = self.tokens[-1]
        if isinstance(parent, dict):
            if last in parent:
                del parent[last]
                return True
            return False
        if isinstance(parent, list):
            index = _index(last)
            if index is None or index >= len(parent):
                return False
            del parent[index]
            return True
        return False