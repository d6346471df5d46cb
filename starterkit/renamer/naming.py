"""Project name validation.

Names end up in ``package.json`` files, Docker image tags and compose
project names, so they follow npm's package naming grammar.
"""

from __future__ import annotations

import re

from starterkit.errors import ValidationError

MAX_NAME_LENGTH = 214

PROJECT_NAME_RE = re.compile(
    r"^(?:@[a-z0-9\-][a-z0-9\-._]*/[a-z0-9\-._]|[a-z0-9])[a-z0-9\-._]*$"
)

NAME_RULES = """\
A valid name must follow these rules:
- Start with a lowercase letter, number, or @
- Can contain lowercase letters, numbers, hyphens, underscores, and periods
- If it starts with @, it must be followed by a scope (e.g., @myscope/mypackage)
- Cannot have uppercase letters
- Cannot have spaces
- Cannot end with a period

Examples of valid names:
- my-project
- @myscope/my-project
- my_project123
- @org/project-name"""


def is_valid_project_name(name: str) -> bool:
    return (
        bool(name)
        and len(name) <= MAX_NAME_LENGTH
        and not name.endswith(".")
        and PROJECT_NAME_RE.fullmatch(name) is not None
    )


def validate_project_name(name: str | None) -> str:
    """Return *name* unchanged or raise :class:`ValidationError`."""
    if not name:
        raise ValidationError("no project name provided", value=name or "")
    if not is_valid_project_name(name):
        raise ValidationError(f'invalid project name: "{name}"\n\n{NAME_RULES}', value=name)
    return name
