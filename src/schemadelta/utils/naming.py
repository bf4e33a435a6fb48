"""
Naming utilities for migration artifacts.
"""

import re


_FIRST_CAP_RE = re.compile("(.)([A-Z][a-z]+)")
_ALL_CAP_RE = re.compile("([a-z0-9])([A-Z])")
_INVALID_RE = re.compile("[^a-z0-9]+")


def camel_to_snake(name: str) -> str:
    step1 = _FIRST_CAP_RE.sub(r"\1_\2", name)
    return _ALL_CAP_RE.sub(r"\1_\2", step1).lower()


def migration_slug(name: str, *, fallback: str = "noname") -> str:
    """
    Convert a free-text migration name (``AddPosts``, ``add posts!``) into
    the ``snake_case`` fragment used in artifact file names.
    """
    slug = _INVALID_RE.sub("_", camel_to_snake(name.strip())).strip("_")
    return slug or fallback
