"""Data model of a compose project, its services and the containers they run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

PROJECT_LABEL = "com.docker.compose.project"
SERVICE_LABEL = "com.docker.compose.service"
CONFIG_FILES_LABEL = "com.docker.compose.project.config_files"
WORKING_DIR_LABEL = "com.docker.compose.project.working_dir"
CONTAINER_NUMBER_LABEL = "com.docker.compose.container-number"
ONEOFF_LABEL = "com.docker.compose.oneoff"
NETWORK_LABEL = "com.docker.compose.network"
VOLUME_LABEL = "com.docker.compose.volume"
VERSION_LABEL = "com.docker.compose.version"
CONFIG_HASH_LABEL = "com.docker.compose.config-hash"
DEPENDENCIES_LABEL = "com.docker.compose.depends_on"
SLUG_LABEL = "com.docker.compose.slug"

COMPOSE_VERSION = "2.0.0"

NETWORK_MODE_SERVICE_PREFIX = "service:"

SERVICE_CONDITION_STARTED = "service_started"
SERVICE_CONDITION_HEALTHY = "service_healthy"
SERVICE_CONDITION_COMPLETED_SUCCESSFULLY = "service_completed_successfully"

VOLUME_TYPE_BIND = "bind"
VOLUME_TYPE_VOLUME = "volume"
VOLUME_TYPE_TMPFS = "tmpfs"
VOLUME_TYPE_NAMED_PIPE = "npipe"

PULL_POLICY_ALWAYS = "always"
PULL_POLICY_NEVER = "never"
PULL_POLICY_IF_NOT_PRESENT = "if_not_present"
PULL_POLICY_MISSING = "missing"
PULL_POLICY_BUILD = "build"


class ServiceNotFoundError(LookupError):
    """Raised when a project has no service of the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"no such service: {name}")
        self.name = name


@dataclass
class ServiceDependency:
    """How a service depends on another one."""

    condition: str = ""


@dataclass
class ServiceNetworkConfig:
    """Settings of one service attachment to a network."""

    priority: int = 0
    aliases: list[str] = field(default_factory=list)
    ipv4_address: str = ""
    ipv6_address: str = ""


@dataclass
class ServiceVolumeConfig:
    """One volume entry of a service.

    ``bind``, ``volume`` and ``tmpfs`` hold the type specific options as
    mappings, or ``None`` when the entry does not define them.
    """

    type: str = ""
    source: str = ""
    target: str = ""
    read_only: bool = False
    consistency: str = ""
    bind: Mapping[str, Any] | None = None
    volume: Mapping[str, Any] | None = None
    tmpfs: Mapping[str, Any] | None = None


@dataclass
class FileReference:
    """A secret or config referenced by a service."""

    source: str = ""
    target: str = ""


@dataclass
class FileObjectConfig:
    """A secret or config declared at project level."""

    name: str = ""
    file: str = ""
    external: bool = False


@dataclass
class ServiceConfig:
    """Configuration of a single service."""

    name: str = ""
    image: str = ""
    build: Any = None
    pull_policy: str = ""
    scale: int = 1
    container_name: str = ""
    hostname: str = ""
    domain_name: str = ""
    user: str = ""
    working_dir: str = ""
    command: list[str] | None = None
    entrypoint: list[str] | None = None
    environment: dict[str, str | None] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    custom_labels: dict[str, str] = field(default_factory=dict)
    depends_on: dict[str, ServiceDependency] = field(default_factory=dict)
    links: list[str] = field(default_factory=list)
    networks: dict[str, ServiceNetworkConfig | None] = field(default_factory=dict)
    network_mode: str = ""
    ipc: str = ""
    pid: str = ""
    volumes: list[ServiceVolumeConfig] = field(default_factory=list)
    volumes_from: list[str] = field(default_factory=list)
    secrets: list[FileReference] = field(default_factory=list)
    configs: list[FileReference] = field(default_factory=list)
    tmpfs: list[str] = field(default_factory=list)
    security_opt: list[str] = field(default_factory=list)
    expose: list[str] = field(default_factory=list)
    ports: list[Mapping[str, Any]] = field(default_factory=list)
    devices: list[str] = field(default_factory=list)
    ulimits: dict[str, Mapping[str, int]] = field(default_factory=dict)
    restart: str = ""
    deploy: Mapping[str, Any] | None = None
    tty: bool = False
    stdin_open: bool = False
    privileged: bool = False
    read_only: bool = False
    cgroup_parent: str = ""
    mem_limit: int = 0
    mem_swap_limit: int = 0
    mem_swappiness: int = 0
    mem_reservation: int = 0
    oom_kill_disable: bool = False
    cpu_count: int = 0
    cpu_period: int = 0
    cpu_quota: int = 0
    cpu_rt_period: int = 0
    cpu_rt_runtime: int = 0
    cpu_shares: int = 0
    cpus: float = 0.0
    cpuset: str = ""
    device_cgroup_rules: list[str] = field(default_factory=list)
    pids_limit: int = 0
    blkio_config: Mapping[str, Any] | None = None

    def networks_by_priority(self) -> list[str]:
        """Network names ordered from highest to lowest priority."""
        def priority(name: str) -> int:
            config = self.networks[name]
            return config.priority if config is not None else 0

        return sorted(self.networks, key=priority, reverse=True)

    def get_dependencies(self) -> list[str]:
        """Names of the services this service depends on."""
        return list(self.depends_on)


@dataclass
class NetworkConfig:
    """A network declared by a project."""

    name: str = ""
    driver: str = ""
    driver_opts: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    external: bool = False
    internal: bool = False
    attachable: bool = False
    enable_ipv6: bool = False
    ipam: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class VolumeConfig:
    """A volume declared by a project."""

    name: str = ""
    driver: str = ""
    driver_opts: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    external: bool = False


@dataclass
class Project:
    """A compose project: its services and the resources they share."""

    name: str = ""
    working_dir: str = ""
    services: list[ServiceConfig] = field(default_factory=list)
    disabled_services: list[ServiceConfig] = field(default_factory=list)
    networks: dict[str, NetworkConfig] = field(default_factory=dict)
    volumes: dict[str, VolumeConfig] = field(default_factory=dict)
    secrets: dict[str, FileObjectConfig] = field(default_factory=dict)
    configs: dict[str, FileObjectConfig] = field(default_factory=dict)
    environment: dict[str, str] = field(default_factory=dict)

    def service_names(self) -> list[str]:
        """Names of the enabled services, in declaration order."""
        return [service.name for service in self.services]

    def get_service(self, name: str) -> ServiceConfig:
        """Return the enabled service called ``name``."""
        for service in self.services:
            if service.name == name:
                return service
        raise ServiceNotFoundError(name)

    def get_services(self, *args: str) -> list[ServiceConfig]:
        """Return the named services in the given order, or all of them."""
        if not args:
            return list(self.services)
        return [self.get_service(name) for name in args]


@dataclass
class MountPoint:
    """A mount as reported for an existing container."""

    type: str = ""
    name: str = ""
    source: str = ""
    destination: str = ""
    rw: bool = True


@dataclass
class Container:
    """A container as listed by the engine."""

    id: str = ""
    names: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    state: str = ""
    image_id: str = ""
    command: str = ""
    ports: list[Mapping[str, Any]] = field(default_factory=list)
    mounts: list[MountPoint] = field(default_factory=list)