"""
Slug generation for projects and tags.
"""

import re

_INVALID_CHARS = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-+")

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def generate_slug(name: str, max_length: int = 50) -> str:
    """
    Derive a URL-safe slug from a display name.

    Lowercases, turns spaces and underscores into hyphens, drops every other
    non-alphanumeric character and collapses repeated hyphens.

    Args:
        name: Display name (e.g. "Login Bugs_2024!")
        max_length: Maximum slug length

    Returns:
        Slug (e.g. "login-bugs-2024"); empty if nothing usable remains
    """
    slug = name.strip().lower().replace(" ", "-").replace("_", "-")
    slug = _INVALID_CHARS.sub("", slug)
    slug = _HYPHEN_RUNS.sub("-", slug).strip("-")
    return slug[:max_length].rstrip("-")


def is_valid_slug(slug: str, max_length: int = 50) -> bool:
    return bool(slug) and len(slug) <= max_length and bool(SLUG_RE.match(slug))
