"""starterkit renamer -- turns the starter template into a named project.

Quick usage::

    from starterkit.renamer import setup_project

    report = setup_project("/path/to/starter", "my-shop")
    for error in report.errors:
        print(error)
"""

from starterkit.renamer.naming import is_valid_project_name, validate_project_name
from starterkit.renamer.renamer import (
    FileRenameError,
    RenameReport,
    TemplateRenamer,
    build_rules,
    setup_project,
)
from starterkit.renamer.rules import RenameRule, RuleKind, apply_rules, generate_secret
from starterkit.renamer.walker import ExclusionSet, walk_files

__all__ = [
    "ExclusionSet",
    "FileRenameError",
    "RenameReport",
    "RenameRule",
    "RuleKind",
    "TemplateRenamer",
    "apply_rules",
    "build_rules",
    "generate_secret",
    "is_valid_project_name",
    "setup_project",
    "validate_project_name",
    "walk_files",
]
