"""Materialized path helpers for the goal tree.

A goal's `in_path` is the slash-joined list of its ancestor ids:

    quarterly  "/"
    weekly     "/{quarterly_id}"
    daily      "/{quarterly_id}/{weekly_id}"

Descendants of a goal are found by a range scan on `in_path` instead of a
recursive walk.
"""
import re

from app.utils.errors import InvalidStateError

SEPARATOR = "/"

_ID = r"[A-Za-z0-9;]+"
_PATTERNS = {
    1: re.compile(rf"^/{_ID}$"),
    2: re.compile(rf"^/{_ID}/{_ID}$"),
}


def join_path(*parts: str) -> str:
    """
    Join path segments, collapsing duplicate separators.

    Examples:
        >>> join_path("/", "abc")
        '/abc'
        >>> join_path("/abc", "def")
        '/abc/def'
    """
    joined = SEPARATOR.join(parts)
    return re.sub(r"/{2,}", SEPARATOR, joined)


def next_prefix(prefix: str) -> str:
    """
    Return the lexicographic successor of a prefix.

    Every string starting with `prefix` sorts in [prefix, next_prefix(prefix)).

    Examples:
        >>> next_prefix("/abc/")
        '/abc0'
        >>> next_prefix("/ab")
        '/ac'
    """
    if not prefix:
        raise InvalidStateError("Cannot compute successor of an empty path")
    return prefix[:-1] + chr(ord(prefix[-1]) + 1)


def child_path(parent_in_path: str, parent_id: str) -> str:
    """Path stored on direct children of a goal."""
    return join_path(parent_in_path, parent_id)


def subtree_query(prefix: str) -> dict:
    """
    Build the `in_path` filter matching every descendant of a goal.

    `prefix` is the path of the goal's direct children. Deeper descendants
    continue it with a separator, so the range starts at `prefix + "/"`
    rather than at `prefix`; this keeps `/q/ab` from matching `/q/abc`.
    """
    deeper = prefix.rstrip(SEPARATOR) + SEPARATOR
    return {
        "$or": [
            {"in_path": prefix},
            {"in_path": {"$gte": deeper, "$lt": next_prefix(deeper)}},
        ]
    }


def is_in_subtree(in_path: str, prefix: str) -> bool:
    """In-memory counterpart of `subtree_query`."""
    deeper = prefix.rstrip(SEPARATOR) + SEPARATOR
    return in_path == prefix or deeper <= in_path < next_prefix(deeper)


def validate_goal_path(depth: int, in_path: str) -> None:
    """
    Check that a path has the shape expected for a tree depth.

    Raises:
        InvalidStateError: If the path does not match
    """
    if depth == 0:
        valid = in_path == SEPARATOR
    elif depth in _PATTERNS:
        valid = bool(_PATTERNS[depth].match(in_path or ""))
    else:
        valid = False

    if not valid:
        raise InvalidStateError(f'Invalid path "{in_path}" for goal depth {depth}')
