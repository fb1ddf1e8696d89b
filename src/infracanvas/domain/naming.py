"""Resource naming: sanitization and qualified names.

INVARIANT: every resource name produced by :func:`resource_name` matches
``[a-z][a-z0-9_]*``. Collisions between differently spelled inputs that
sanitize to the same name are *not* resolved here.
"""

from __future__ import annotations

import re

NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

_INVALID_RUN = re.compile(r"[^a-z0-9]+")


def sanitize_name(name: str) -> str:
    """Sanitize a display name into an HCL identifier fragment.

    Lowercases, collapses every run of characters outside ``[a-z0-9]`` into a
    single underscore, and strips leading/trailing underscores.

    Examples:
        >>> sanitize_name("My API  Gateway!")
        'my_api_gateway'
        >>> sanitize_name("__orders-table__")
        'orders_table'
    """
    return _INVALID_RUN.sub("_", name.lower()).strip("_")


def resource_name(*candidates: str | None) -> str:
    """Pick the first candidate that sanitizes to a non-empty identifier.

    A leading digit gets an ``r_`` prefix so the result is a valid HCL
    identifier. Falls back to ``"resource"`` when every candidate is empty.
    """
    for candidate in candidates:
        if not candidate:
            continue
        name = sanitize_name(str(candidate))
        if not name:
            continue
        if name[0].isdigit():
            name = f"r_{name}"
        return name
    return "resource"


def qualified_name(resource_type: str, name: str) -> str:
    """Return ``<resource-type>.<name>`` used in references and depends_on."""
    return f"{resource_type}.{name}"


def is_valid_name(name: str) -> bool:
    """Check whether *name* satisfies the resource-name invariant."""
    return NAME_PATTERN.match(name) is not None
