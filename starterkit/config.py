"""starterkit configuration.

Centralised, typed configuration for every command. All settings use
Pydantic v2 models so they are validated at construction time. Values
taken from the process environment (minimum tool versions, compose
project name, admin credentials) are read once by
:meth:`Config.from_env` and then passed explicitly to the checker,
renamer and poller.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .errors import ValidationError

# Range operators npm accepts in front of an ``engines`` version.
_RANGE_PREFIX_RE = re.compile(r"^\s*(?:>=|<=|>|<|=|~|\^)+\s*")

# Deploy settings that may be overridden from the environment.
_DEPLOY_ENV_FIELDS = (
    ("STARTERKIT_HEALTH_TIMEOUT", "timeout"),
    ("STARTERKIT_HEALTH_INTERVAL", "interval"),
)


def strip_version_range(spec: str) -> str:
    """Reduce an npm-style version spec to the bare minimum version.

    Examples::

        strip_version_range(">=20.16")    -> "20.16"
        strip_version_range("^20.16.0")   -> "20.16.0"
        strip_version_range("pnpm@9.5.0") -> "9.5.0"
    """
    value = spec.strip()
    if "@" in value and not value.startswith("@"):
        value = value.rsplit("@", 1)[1]
    return _RANGE_PREFIX_RE.sub("", value)


class ToolRequirements(BaseModel):
    """Minimum versions of the external tools the kit drives."""

    node: str = Field(default="20.16")
    package_manager: str = Field(default="9.5")
    package_manager_name: str = Field(default="pnpm")
    docker: str = Field(default="26.1")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ToolRequirements":
        """Build requirements from npm's ``package.json`` variables.

        Recognised variables (all optional):
            npm_package_engines_node, npm_package_packageManager,
            npm_package_engines_docker.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}
        if env.get("npm_package_engines_node"):
            kwargs["node"] = strip_version_range(env["npm_package_engines_node"])
        if env.get("npm_package_packageManager"):
            raw = env["npm_package_packageManager"].strip()
            if "@" in raw:
                kwargs["package_manager_name"] = raw.split("@", 1)[0]
            kwargs["package_manager"] = strip_version_range(raw)
        if env.get("npm_package_engines_docker"):
            kwargs["docker"] = strip_version_range(env["npm_package_engines_docker"])
        return cls(**kwargs)


class RenameSettings(BaseModel):
    """Placeholders and exclusions used by ``setup``."""

    name_token: str = Field(default="changemename", min_length=1)
    secret_token: str = Field(default="changemesecret", min_length=1)
    template_marker: str = Field(default=".env.example")
    env_targets: list[str] = Field(default=[".env", ".env.production"])
    excluded_files: list[str] = Field(
        default=[
            "pnpm-lock.yaml",
            ".gitignore",
            "pnpm-workspace.yaml",
            "yarn.lock",
            "tsconfig.json",
            ".env.example",
        ]
    )
    excluded_dirs: list[str] = Field(
        default=["node_modules", "dist", "build", ".git", ".vscode", ".docker"]
    )
    excluded_paths: list[str] = Field(default_factory=list)


class ServiceSettings(BaseModel):
    """One HTTP-probed service of the stack."""

    name: str
    port: int = Field(ge=1, le=65535)
    health_path: str = Field(default="/")
    initial_delay: float = Field(default=0.0, ge=0)

    @property
    def health_url(self) -> str:
        return f"http://localhost:{self.port}{self.health_path}"


class DeploySettings(BaseModel):
    """Tuning knobs for ``deploy``."""

    backend: ServiceSettings = Field(
        default_factory=lambda: ServiceSettings(
            name="backend", port=9000, health_path="/store/regions", initial_delay=15
        )
    )
    storefront: ServiceSettings = Field(
        default_factory=lambda: ServiceSettings(
            name="storefront", port=4321, health_path="/", initial_delay=30
        )
    )
    admin_service: str = Field(default="admin", description="Started in production only")
    other_services: list[str] = Field(default=["postgres"])
    dev_compose_file: str = Field(default="docker-compose.yml")
    prod_compose_file: str = Field(default="docker-compose.prod.yml")
    timeout: int = Field(default=60, ge=0, description="Probe budget in seconds")
    interval: int = Field(default=5, ge=0, description="Seconds between probes")
    expected_status: int = Field(default=200)
    seed_command: list[str] = Field(default=["npx", "medusa", "seed"])
    admin_container: str = Field(default="medusa")

    @property
    def max_retries(self) -> int:
        """Retries after the first attempt, derived as ``timeout // interval``."""
        if self.interval <= 0:
            return self.timeout
        return self.timeout // self.interval

    def compose_file(self, environment: str) -> str:
        return self.prod_compose_file if environment == "prod" else self.dev_compose_file


class Config(BaseModel):
    """Global starterkit configuration.

    Instances are typically created once by the CLI entry point and then
    passed through the rest of the system.
    """

    project_root: Path = Field(default_factory=Path.cwd)
    compose_project_name: str = Field(default="")
    admin_email: str = Field(default="")
    admin_password: str = Field(default="")
    tools: ToolRequirements = Field(default_factory=ToolRequirements)
    rename: RenameSettings = Field(default_factory=RenameSettings)
    deploy: DeploySettings = Field(default_factory=DeploySettings)

    # ------------------------------------------------------------------
    # Derived values (read-only properties)
    # ------------------------------------------------------------------

    @property
    def env_path(self) -> Path:
        """The root ``.env`` whose presence marks a completed setup."""
        return self.project_root / self.rename.env_targets[0]

    @property
    def postgres_volume(self) -> str:
        """Name of the database volume kept by ``clean --preserve-db``."""
        return f"{self.compose_project_name}_postgres_data"

    def is_setup_complete(self) -> bool:
        return self.env_path.is_file()

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(
        cls,
        project_root: Path | None = None,
        environ: dict[str, str] | None = None,
    ) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            COMPOSE_PROJECT_NAME, ADMIN_EMAIL, ADMIN_PASSWORD,
            STARTERKIT_HEALTH_TIMEOUT, STARTERKIT_HEALTH_INTERVAL,
            plus the npm variables read by :meth:`ToolRequirements.from_env`.
        """
        env = os.environ if environ is None else environ

        deploy_kwargs: dict[str, Any] = {}
        for variable, field_name in _DEPLOY_ENV_FIELDS:
            raw = env.get(variable)
            if not raw:
                continue
            try:
                value = int(raw)
            except ValueError:
                raise ValidationError(
                    f"{variable} must be an integer, got {raw!r}", value=raw
                ) from None
            if value < 0:
                raise ValidationError(f"{variable} must not be negative, got {value}", value=raw)
            deploy_kwargs[field_name] = value

        return cls(
            project_root=project_root or Path.cwd(),
            compose_project_name=env.get("COMPOSE_PROJECT_NAME", ""),
            admin_email=env.get("ADMIN_EMAIL", ""),
            admin_password=env.get("ADMIN_PASSWORD", ""),
            tools=ToolRequirements.from_env(env),
            deploy=DeploySettings(**deploy_kwargs),
        )

    @classmethod
    def load(cls, project_root: Path | None = None) -> "Config":
        """Load ``<project_root>/.env`` into the process environment, then
        build the configuration from it.

        Variables already set in the environment win over the file.
        """
        root = project_root or Path.cwd()
        env_file = root / ".env"
        if env_file.is_file():
            load_dotenv(env_file, override=False)
        return cls.from_env(project_root=root)
