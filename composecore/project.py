"""Preparation of a project's services, networks and volumes before creation."""

from __future__ import annotations

import json
import os
from pathlib import Path

from composecore.models import (
    COMPOSE_VERSION,
    NETWORK_LABEL,
    NETWORK_MODE_SERVICE_PREFIX,
    PROJECT_LABEL,
    SERVICE_CONDITION_STARTED,
    VERSION_LABEL,
    VOLUME_LABEL,
    Project,
    ServiceConfig,
    ServiceDependency,
    ServiceNetworkConfig,
)


def get_image_name(service: ServiceConfig, project_name: str) -> str:
    """The image of a service, or the name its built image gets."""
    return service.image or f"{project_name}_{service.name}"


def prepare_networks(project: Project) -> None:
    """Label each network of the project with its key, project and version."""
    for key, network in project.networks.items():
        network.labels[NETWORK_LABEL] = key
        network.labels[PROJECT_LABEL] = project.name
        network.labels[VERSION_LABEL] = COMPOSE_VERSION


def prepare_volume_labels(project: Project) -> None:
    """Label each volume of the project with its key, project and version."""
    for key, volume in project.volumes.items():
        volume.labels[VOLUME_LABEL] = key
        volume.labels[PROJECT_LABEL] = project.name
        volume.labels[VERSION_LABEL] = COMPOSE_VERSION


def get_dependent_service_from_mode(mode: str) -> str:
    """The service named by a ``service:<name>`` mode, or an empty string."""
    if mode.startswith(NETWORK_MODE_SERVICE_PREFIX):
        return mode[len(NETWORK_MODE_SERVICE_PREFIX):]
    return ""


def prepare_services_depends_on(project: Project) -> None:
    """Add implicit dependencies from network, ipc and pid modes and from links.

    Every implied service must exist in the project, enabled or not;
    otherwise ServiceNotFoundError is raised.
    """
    every_service = Project(services=[*project.services, *project.disabled_services])
    for service in project.services:
        modes = (service.network_mode, service.ipc, service.pid)
        dependencies = [dep for dep in map(get_dependent_service_from_mode, modes) if dep]
        dependencies.extend(link.split(":")[0] for link in service.links)
        if not dependencies:
            continue
        for dependency in every_service.get_services(*dependencies):
            service.depends_on.setdefault(
                dependency.name, ServiceDependency(condition=SERVICE_CONDITION_STARTED)
            )


def get_default_network_mode(project: Project, service: ServiceConfig) -> str:
    """The network a service's container is attached to when none is set."""
    if not project.networks:
        return "none"
    if service.networks:
        name = service.networks_by_priority()[0]
    else:
        name = "default"
    network = project.networks.get(name)
    return network.name if network is not None else ""


def get_aliases(service: ServiceConfig, config: ServiceNetworkConfig | None) -> list[str]:
    """Network aliases of a service: its name, then the configured aliases."""
    aliases = [service.name]
    if config is not None:
        aliases.extend(config.aliases)
    return aliases


def _relative_path(project: Project, path: str) -> str:
    if path.startswith("~"):
        path = os.path.expanduser(path)
    if os.path.isabs(path):
        return path
    return os.path.join(project.working_dir, path)


def parse_security_opts(project: Project, security_opts: list[str]) -> list[str]:
    """Validate security options and inline seccomp profiles as compact JSON."""
    result = []
    for opt in security_opts:
        key, sep, value = opt.partition("=")
        if not sep and key != "no-new-privileges":
            if ":" not in opt:
                raise ValueError(f"Invalid security-opt: {json.dumps(opt)}")
            key, _, value = opt.partition(":")
        if key == "seccomp" and value != "unconfined":
            try:
                data = Path(_relative_path(project, value)).read_bytes()
            except OSError as exc:
                raise ValueError(
                    f"opening seccomp profile ({value}) failed: {exc}"
                ) from exc
            try:
                profile = json.loads(data)
            except ValueError as exc:
                raise ValueError(
                    f"compacting json for seccomp profile ({value}) failed: {exc}"
                ) from exc
            compact = json.dumps(profile, separators=(",", ":"), ensure_ascii=False)
            opt = f"seccomp={compact}"
        result.append(opt)
    return result