"""Removal of containers, volumes and images.

``clean`` limits itself to the compose project (optionally keeping the
PostgreSQL volume); ``clean:all`` wipes every container, volume and image on
the Docker host.  Both expect the caller to have asked for confirmation.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .compose import ComposeRunner
from .config import Config
from .errors import ValidationError
from .utils import print_info, print_success


@dataclass
class CleanupResult:
    """What a cleanup run removed."""

    volumes_removed: list[str] = field(default_factory=list)
    images_removed: list[str] = field(default_factory=list)
    preserved: list[str] = field(default_factory=list)


async def clean_project(
    runner: ComposeRunner, config: Config, preserve_db: bool = False
) -> CleanupResult:
    """Stop the stack and remove its volumes and images."""
    result = CleanupResult()
    project = config.compose_project_name
    if not project:
        raise ValidationError("COMPOSE_PROJECT_NAME must be set (normally in .env) to clean a project")

    await runner.down(remove_orphans=True)

    volumes = await runner.list_volumes(prefix=project)
    if preserve_db:
        keep = config.postgres_volume
        print_info(f"preserving PostgreSQL volume ({keep}) and removing other volumes")
        result.preserved = [v for v in volumes if v == keep]
        volumes = [v for v in volumes if v != keep]
    else:
        print_info("removing all project volumes")
    await runner.remove_volumes(volumes)
    result.volumes_removed = volumes

    print_info("removing all project-specific images")
    images = await runner.list_project_images(project)
    await runner.remove_images(images)
    result.images_removed = images

    print_success("cleanup completed")
    return result


async def clean_everything(runner: ComposeRunner, config: Config) -> CleanupResult:
    """Remove ALL containers, volumes and images, not only this project's."""
    result = CleanupResult()

    await runner.down(volumes=True, rmi="all")
    await runner.prune_containers()

    if config.compose_project_name:
        project_volumes = await runner.list_volumes(prefix=config.compose_project_name)
        await runner.remove_volumes(project_volumes)
        result.volumes_removed.extend(project_volumes)

    remaining = await runner.list_volumes()
    await runner.remove_volumes(remaining)
    result.volumes_removed.extend(remaining)

    await runner.prune_system()

    print_success("full cleanup completed")
    return result
