"""Template renaming engine.

Turns a freshly cloned starter into a named project:

1. every non-excluded file has its placeholders substituted in place;
2. every ``.env.example`` gets sibling ``.env`` / ``.env.production`` copies
   (created only when absent) with the same substitutions applied.

File-level failures do not stop the walk.  They are collected on the
:class:`RenameReport` so the caller can print all of them and fail once at
the end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from starterkit.config import RenameSettings
from starterkit.errors import ValidationError

from .naming import validate_project_name
from .rules import RenameRule, apply_rules
from .walker import ExclusionSet, walk_files


@dataclass
class FileRenameError:
    """A file (or directory) that could not be read or written."""

    path: Path
    error: OSError

    def __str__(self) -> str:
        reason = self.error.strerror or str(self.error)
        return f"{self.path}: {reason}"


@dataclass
class RenameReport:
    """Outcome of one renaming pass."""

    root: Path
    files_scanned: int = 0
    substitutions: int = 0
    files_changed: list[Path] = field(default_factory=list)
    env_files_created: list[Path] = field(default_factory=list)
    skipped_binary: list[Path] = field(default_factory=list)
    errors: list[FileRenameError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def record_error(self, path: Path, error: OSError) -> None:
        # Unlistable directories are hit by both passes; report them once.
        if any(existing.path == path for existing in self.errors):
            return
        self.errors.append(FileRenameError(path=path, error=error))


class TemplateRenamer:
    """Applies :class:`RenameRule` substitutions across a project tree."""

    def __init__(
        self,
        root: str | Path,
        rules: Iterable[RenameRule],
        exclusions: ExclusionSet | None = None,
        template_marker: str = ".env.example",
        env_targets: Iterable[str] = (".env", ".env.production"),
    ) -> None:
        self.root = Path(root)
        self.rules = list(rules)
        self.exclusions = exclusions or ExclusionSet()
        self.template_marker = template_marker
        self.env_targets = list(env_targets)

    # -- Single file -------------------------------------------------------

    def rename_file(self, path: Path, report: RenameReport) -> int:
        """Substitute placeholders in one file, writing only if something changed.

        Files that are not valid UTF-8 are treated as binary and left alone.
        Returns the number of substitutions made.
        """
        report.files_scanned += 1
        try:
            raw = path.read_bytes()
        except OSError as exc:
            report.record_error(path, exc)
            return 0

        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            report.skipped_binary.append(path)
            return 0

        new_text, count = apply_rules(text, self.rules)
        if not count:
            return 0

        try:
            path.write_bytes(new_text.encode("utf-8"))
        except OSError as exc:
            report.record_error(path, exc)
            return 0

        report.substitutions += count
        report.files_changed.append(path)
        return count

    # -- Passes ------------------------------------------------------------

    def rename_tree(self, report: RenameReport | None = None) -> RenameReport:
        """Substitute placeholders in every non-excluded file under the root."""
        report = report or RenameReport(root=self.root)
        for path in walk_files(self.root, self.exclusions, onerror=report.record_error):
            self.rename_file(path, report)
        return report

    def find_templates(self, report: RenameReport | None = None) -> list[Path]:
        """Return every template marker file under the root.

        Directory pruning applies, but the marker itself is found even when
        its name is in the file exclusions.
        """
        return [
            path
            for path in walk_files(
                self.root,
                self.exclusions,
                skip_excluded_files=False,
                onerror=report.record_error if report else None,
            )
            if path.name == self.template_marker
        ]

    def materialize_env_templates(self, report: RenameReport | None = None) -> RenameReport:
        """Create missing env files next to each template marker.

        An existing target is never opened, so repeated runs leave hand-edited
        env files alone.
        """
        report = report or RenameReport(root=self.root)
        for template in self.find_templates(report):
            try:
                raw = template.read_bytes()
            except OSError as exc:
                report.record_error(template, exc)
                continue

            for target_name in self.env_targets:
                target = template.parent / target_name
                if target.exists():
                    continue
                self._create_from_template(raw, target, report)
        return report

    def _create_from_template(self, raw: bytes, target: Path, report: RenameReport) -> None:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            new_bytes, count = raw, 0
        else:
            new_text, count = apply_rules(text, self.rules)
            new_bytes = new_text.encode("utf-8")

        try:
            # "x" refuses to clobber a file created since the exists() check.
            with target.open("xb") as handle:
                handle.write(new_bytes)
        except FileExistsError:
            return
        except OSError as exc:
            report.record_error(target, exc)
            return

        report.substitutions += count
        report.env_files_created.append(target)

    def run(self) -> RenameReport:
        """Run the tree pass, then the env-template pass, on one report."""
        report = RenameReport(root=self.root)
        self.rename_tree(report)
        self.materialize_env_templates(report)
        return report


# ---------------------------------------------------------------------------
# Setup entry point
# ---------------------------------------------------------------------------


def build_rules(project_name: str, settings: RenameSettings) -> list[RenameRule]:
    """Rules used by ``setup``: the project name and generated secrets."""
    return [
        RenameRule.literal(settings.name_token, project_name),
        RenameRule.generated(settings.secret_token),
    ]


def setup_project(
    root: str | Path,
    project_name: str | None,
    settings: RenameSettings | None = None,
) -> RenameReport:
    """Validate *project_name* and rename the starter under *root*.

    Raises:
        ValidationError: If the name is invalid.  Nothing on disk is touched.
    """
    settings = settings or RenameSettings()
    name = validate_project_name(project_name)
    for token in (settings.name_token, settings.secret_token):
        if token in name:
            raise ValidationError(
                f'invalid project name: "{name}" contains the placeholder "{token}"',
                value=name,
            )

    renamer = TemplateRenamer(
        root,
        build_rules(name, settings),
        exclusions=ExclusionSet.from_settings(settings),
        template_marker=settings.template_marker,
        env_targets=settings.env_targets,
    )
    return renamer.run()
