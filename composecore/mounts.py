"""Mounts of a service's container: volumes, binds, tmpfs, secrets and configs."""

from __future__ import annotations

import dataclasses
import logging
import os
import posixpath
from dataclasses import dataclass
from typing import Collection, Iterable

from composecore.models import (
    VOLUME_TYPE_BIND,
    VOLUME_TYPE_TMPFS,
    VOLUME_TYPE_VOLUME,
    Container,
    FileObjectConfig,
    FileReference,
    Project,
    ServiceConfig,
    ServiceVolumeConfig,
)

logger = logging.getLogger(__name__)

SECRETS_DIR = "/run/secrets/"
CONFIGS_BASE_DIR = "/"


@dataclass(frozen=True)
class BindOptions:
    """Options of a bind mount."""

    propagation: str = ""


@dataclass(frozen=True)
class VolumeOptions:
    """Options of a volume mount."""

    no_copy: bool = False


@dataclass(frozen=True)
class TmpfsOptions:
    """Options of a tmpfs mount."""

    size_bytes: int = 0


@dataclass(frozen=True)
class Mount:
    """A mount to set up in a container."""

    type: str = ""
    source: str = ""
    target: str = ""
    read_only: bool = False
    consistency: str = ""
    bind_options: BindOptions | None = None
    volume_options: VolumeOptions | None = None
    tmpfs_options: TmpfsOptions | None = None


def _clean_path(path: str) -> str:
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def is_unix_abs(path: str) -> bool:
    """Whether ``path`` is absolute in Unix style."""
    return path.startswith("/")


def _bind_option(bind) -> BindOptions | None:
    if bind is None:
        return None
    return BindOptions(propagation=bind.get("propagation", "") or "")


def _volume_option(volume) -> VolumeOptions | None:
    if volume is None:
        return None
    return VolumeOptions(no_copy=bool(volume.get("nocopy", False)))


def _tmpfs_option(tmpfs) -> TmpfsOptions | None:
    if tmpfs is None:
        return None
    return TmpfsOptions(size_bytes=int(tmpfs.get("size", 0) or 0))


def build_mount_options(
    project: Project, volume: ServiceVolumeConfig
) -> tuple[BindOptions | None, VolumeOptions | None, TmpfsOptions | None]:
    """Type specific options of a volume entry, as (bind, volume, tmpfs)."""
    if volume.type == VOLUME_TYPE_BIND:
        if volume.volume is not None:
            logger.warning("mount of type `bind` should not define `volume` option")
        if volume.tmpfs is not None:
            logger.warning("mount of type `tmpfs` should not define `tmpfs` option")
        return _bind_option(volume.bind), None, None
    if volume.type == VOLUME_TYPE_VOLUME:
        if volume.bind is not None:
            logger.warning("mount of type `volume` should not define `bind` option")
        if volume.tmpfs is not None:
            logger.warning("mount of type `volume` should not define `tmpfs` option")
        declared = project.volumes.get(volume.source)
        if declared is not None and declared.driver_opts.get("o") == VOLUME_TYPE_BIND:
            return _bind_option({"create_host_path": True}), None, None
        return None, _volume_option(volume.volume), None
    if volume.type == VOLUME_TYPE_TMPFS:
        if volume.bind is not None:
            logger.warning("mount of type `tmpfs` should not define `bind` option")
        if volume.volume is not None:
            logger.warning("mount of type `tmpfs` should not define `volume` option")
        return None, None, _tmpfs_option(volume.tmpfs)
    return None, None, None


def build_mount(project: Project, volume: ServiceVolumeConfig) -> Mount:
    """The mount for one volume entry of a service."""
    source = volume.source
    if (
        volume.type == VOLUME_TYPE_BIND
        and not os.path.isabs(source)
        and not source.startswith("/")
    ):
        source = os.path.abspath(source)
    if volume.type == VOLUME_TYPE_VOLUME and volume.source:
        declared = project.volumes.get(volume.source)
        if declared is not None:
            source = declared.name

    bind, vol, tmpfs = build_mount_options(project, volume)
    mount_type = VOLUME_TYPE_BIND if bind is not None else volume.type

    return Mount(
        type=mount_type,
        source=source,
        target=_clean_path(volume.target),
        read_only=volume.read_only,
        consistency=volume.consistency,
        bind_options=bind,
        volume_options=vol,
        tmpfs_options=tmpfs,
    )


def build_container_mount_options(
    project: Project,
    service: ServiceConfig,
    image_volumes: Collection[str] | None,
    inherit: Container | None,
) -> list[Mount]:
    """All mounts of a service's container.

    Anonymous volumes of a previous container ``inherit`` are kept when the
    image declares them in ``image_volumes`` or when the service mounts an
    anonymous volume at the same place. ``service`` is left unchanged.
    """
    mounts: dict[str, Mount] = {}
    volumes = list(service.volumes)
    if inherit is not None:
        for point in inherit.mounts:
            if point.type == VOLUME_TYPE_TMPFS:
                continue
            source = point.name if point.type == VOLUME_TYPE_VOLUME else point.source
            destination = _clean_path(point.destination)
            inherited = Mount(
                type=point.type,
                source=source,
                target=destination,
                read_only=not point.rw,
            )
            if image_volumes is not None and destination in image_volumes:
                mounts[destination] = inherited
            remaining = []
            for volume in volumes:
                if volume.target != destination or volume.source:
                    remaining.append(volume)
                else:
                    mounts[destination] = inherited
            volumes = remaining

    filled = fill_bind_mounts(project, dataclasses.replace(service, volumes=volumes), mounts)
    return list(filled.values())


def fill_bind_mounts(
    project: Project, service: ServiceConfig, mounts: dict[str, Mount]
) -> dict[str, Mount]:
    """Add the service's volumes, then secrets and configs not already mounted."""
    for volume in service.volumes:
        mount = build_mount(project, volume)
        mounts[mount.target] = mount
    for mount in build_container_secret_mounts(project, service):
        mounts.setdefault(mount.target, mount)
    for mount in build_container_config_mounts(project, service):
        mounts.setdefault(mount.target, mount)
    return mounts


def _file_mounts(
    project: Project,
    references: Iterable[FileReference],
    declared: dict[str, FileObjectConfig],
    base_dir: str,
    kind: str,
) -> list[Mount]:
    mounts: dict[str, Mount] = {}
    for reference in references:
        if not reference.target:
            target = base_dir + reference.source
        elif not is_unix_abs(reference.target):
            target = base_dir + reference.target
        else:
            target = reference.target
        definition = declared.get(reference.source, FileObjectConfig())
        if definition.external:
            raise ValueError(f"unsupported external {kind} {definition.name}")
        mounts[target] = build_mount(
            project,
            ServiceVolumeConfig(
                type=VOLUME_TYPE_BIND,
                source=definition.file,
                target=target,
                read_only=True,
            ),
        )
    return list(mounts.values())


def build_container_config_mounts(project: Project, service: ServiceConfig) -> list[Mount]:
    """Read-only bind mounts of the configs a service uses."""
    return _file_mounts(project, service.configs, project.configs, CONFIGS_BASE_DIR, "config")


def build_container_secret_mounts(project: Project, service: ServiceConfig) -> list[Mount]:
    """Read-only bind mounts of the secrets a service uses."""
    return _file_mounts(project, service.secrets, project.secrets, SECRETS_DIR, "secret")