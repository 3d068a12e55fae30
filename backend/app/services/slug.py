"""
Notespace Backend — Workspace Path Slugs
==========================================

What:  Turns a workspace name into a URL-safe path and produces random
       suffixes for collision avoidance.
Why:   Workspaces are addressed by path in client URLs (/w/my-notes).
How:   Pure functions; the uniqueness lookup lives in WorkspaceService.

Algorithm (slugify):
    1. Lowercase
    2. NFD-decompose and drop combining marks ("Héllo" → "hello")
    3. Whitespace runs and underscores → "-"
    4. Drop everything outside [a-z0-9-] (punctuation, emoji, non-Latin)
    5. Collapse "--" runs and trim "-" from both ends

    The result matches ^[a-z0-9]+(-[a-z0-9]+)*$ or is the empty string.
    Callers must handle the empty string.
"""

import re
import secrets
import string
import unicodedata

_WHITESPACE_RE = re.compile(r"[\s_]+")
_DISALLOWED_RE = re.compile(r"[^a-z0-9-]+")
_MULTI_HYPHEN_RE = re.compile(r"-{2,}")

SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def slugify(name: str) -> str:
    """
    Derive a candidate workspace path from a display name.

    Examples:
        >>> slugify("My Notes!!")
        'my-notes'
        >>> slugify("  Crème Brûlée  Recipes ")
        'creme-brulee-recipes'
        >>> slugify("🎉🎉")
        ''
    """
    text = unicodedata.normalize("NFD", str(name).lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _WHITESPACE_RE.sub("-", text)
    text = _DISALLOWED_RE.sub("", text)
    text = _MULTI_HYPHEN_RE.sub("-", text)
    return text.strip("-")


def truncate(path: str, max_length: int) -> str:
    """Cut `path` to `max_length` without leaving a dangling "-"."""
    return path[:max_length].rstrip("-")


def random_suffix(length: int = 5) -> str:
    """Random lowercase-alphanumeric string, e.g. 'k3x9a'."""
    return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(length))


def with_suffix(path: str, suffix: str) -> str:
    return f"{path}-{suffix}"
