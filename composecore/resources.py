"""Resource limits, restart policy and port settings of a service's container."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from composecore.models import ServiceConfig

DEFAULT_DEVICE_PERMISSIONS = "rwm"

RESTART_ALWAYS = "always"
RESTART_UNLESS_STOPPED = "unless-stopped"
RESTART_ON_FAILURE = "on-failure"


@dataclass(frozen=True)
class RestartPolicy:
    """What the engine does when a container exits."""

    name: str = ""
    maximum_retry_count: int = 0

    @property
    def is_always(self) -> bool:
        return self.name == RESTART_ALWAYS

    @property
    def is_unless_stopped(self) -> bool:
        return self.name == RESTART_UNLESS_STOPPED

    @property
    def is_on_failure(self) -> bool:
        return self.name == RESTART_ON_FAILURE


@dataclass(frozen=True)
class DeviceMapping:
    """A host device exposed inside the container."""

    path_on_host: str = ""
    path_in_container: str = ""
    cgroup_permissions: str = DEFAULT_DEVICE_PERMISSIONS


@dataclass(frozen=True)
class Ulimit:
    """A resource limit applied to the container's processes."""

    name: str
    hard: int
    soft: int


@dataclass(frozen=True)
class DeviceRequest:
    """A request for devices such as GPUs, reserved for the container."""

    capabilities: list[list[str]] = field(default_factory=list)
    count: int = 0
    device_ids: list[str] = field(default_factory=list)
    driver: str = ""


@dataclass
class Resources:
    """Resource settings of a container.

    Block I/O device entries are mappings with ``path`` and either
    ``weight`` or ``rate``.
    """

    cgroup_parent: str = ""
    memory: int = 0
    memory_swap: int = 0
    memory_swappiness: int | None = None
    memory_reservation: int = 0
    oom_kill_disable: bool = False
    cpu_count: int = 0
    cpu_period: int = 0
    cpu_quota: int = 0
    cpu_realtime_period: int = 0
    cpu_realtime_runtime: int = 0
    cpu_shares: int = 0
    cpu_percent: int = 0
    cpuset_cpus: str = ""
    nano_cpus: int = 0
    device_cgroup_rules: list[str] = field(default_factory=list)
    pids_limit: int | None = None
    blkio_weight: int = 0
    blkio_weight_device: list[dict[str, Any]] = field(default_factory=list)
    blkio_device_read_bps: list[dict[str, Any]] = field(default_factory=list)
    blkio_device_read_iops: list[dict[str, Any]] = field(default_factory=list)
    blkio_device_write_bps: list[dict[str, Any]] = field(default_factory=list)
    blkio_device_write_iops: list[dict[str, Any]] = field(default_factory=list)
    devices: list[DeviceMapping] = field(default_factory=list)
    ulimits: list[Ulimit] = field(default_factory=list)
    device_requests: list[DeviceRequest] = field(default_factory=list)


def _atoi(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def get_restart_policy(service: ServiceConfig) -> RestartPolicy:
    """The restart policy of a service; a deploy policy overrides ``restart``."""
    policy = RestartPolicy()
    if service.restart:
        parts = service.restart.split(":")
        attempts = _atoi(parts[1]) if len(parts) > 1 else 0
        policy = RestartPolicy(name=parts[0], maximum_retry_count=attempts)
    deploy_policy = (service.deploy or {}).get("restart_policy")
    if deploy_policy is not None:
        max_attempts = deploy_policy.get("max_attempts")
        policy = RestartPolicy(
            name=deploy_policy.get("condition", "") or "",
            maximum_retry_count=int(max_attempts) if max_attempts is not None else 0,
        )
    return policy


def _parse_device(device: str) -> DeviceMapping:
    parts = device.split(":")
    src, dst, permissions = "", "", DEFAULT_DEVICE_PERMISSIONS
    if len(parts) == 3:
        src, dst, permissions = parts
    elif len(parts) == 2:
        src, dst = parts
    elif len(parts) == 1:
        src = parts[0]
    return DeviceMapping(
        path_on_host=src,
        path_in_container=dst or src,
        cgroup_permissions=permissions,
    )


def _set_blkio(blkio: Mapping[str, Any] | None, resources: Resources) -> None:
    if blkio is None:
        return
    resources.blkio_weight = int(blkio.get("weight", 0) or 0)
    resources.blkio_weight_device = [
        {"path": entry.get("path", ""), "weight": entry.get("weight", 0)}
        for entry in blkio.get("weight_device") or ()
    ]
    for key in ("device_read_bps", "device_read_iops", "device_write_bps", "device_write_iops"):
        setattr(
            resources,
            f"blkio_{key}",
            [
                {"path": entry.get("path", ""), "rate": entry.get("rate", 0)}
                for entry in blkio.get(key) or ()
            ],
        )


def _set_limits(limits: Mapping[str, Any] | None, resources: Resources) -> None:
    if limits is None:
        return
    memory = limits.get("memory", 0) or 0
    if memory:
        resources.memory = int(memory)
    cpus = limits.get("cpus", "") or ""
    if cpus != "":
        try:
            resources.nano_cpus = int(float(cpus) * 1e9)
        except ValueError:
            pass
    pids = limits.get("pids", 0) or 0
    if pids > 0:
        resources.pids_limit = int(pids)


def _set_reservations(reservations: Mapping[str, Any] | None, resources: Resources) -> None:
    if reservations is None:
        return
    for device in reservations.get("devices") or ():
        resources.device_requests.append(
            DeviceRequest(
                capabilities=[list(device.get("capabilities") or [])],
                count=int(device.get("count", 0) or 0),
                device_ids=list(device.get("device_ids") or []),
                driver=device.get("driver", "") or "",
            )
        )


def get_deploy_resources(service: ServiceConfig) -> Resources:
    """Resource settings of a service's container."""
    resources = Resources(
        cgroup_parent=service.cgroup_parent,
        memory=int(service.mem_limit),
        memory_swap=int(service.mem_swap_limit),
        memory_swappiness=int(service.mem_swappiness) if service.mem_swappiness else None,
        memory_reservation=int(service.mem_reservation),
        oom_kill_disable=service.oom_kill_disable,
        cpu_count=service.cpu_count,
        cpu_period=service.cpu_period,
        cpu_quota=service.cpu_quota,
        cpu_realtime_period=service.cpu_rt_period,
        cpu_realtime_runtime=service.cpu_rt_runtime,
        cpu_shares=service.cpu_shares,
        cpu_percent=int(service.cpus * 100),
        cpuset_cpus=service.cpuset,
        device_cgroup_rules=list(service.device_cgroup_rules),
    )
    if service.pids_limit != 0:
        resources.pids_limit = service.pids_limit

    _set_blkio(service.blkio_config, resources)

    if service.deploy is not None:
        deploy_resources = service.deploy.get("resources") or {}
        _set_limits(deploy_resources.get("limits"), resources)
        _set_reservations(deploy_resources.get("reservations"), resources)

    resources.devices = [_parse_device(device) for device in service.devices]

    for name, limit in service.ulimits.items():
        single = int(limit.get("single", 0) or 0)
        soft = int(limit.get("soft", 0) or 0) or single
        hard = int(limit.get("hard", 0) or 0) or single
        resources.ulimits.append(Ulimit(name=name, hard=hard, soft=soft))
    return resources


def _port_key(port: Mapping[str, Any]) -> str:
    return f"{int(port.get('target', 0) or 0)}/{port.get('protocol', '') or ''}"


def build_container_ports(service: ServiceConfig) -> set[str]:
    """Ports the container exposes, as ``port/protocol`` strings."""
    ports = set(service.expose)
    ports.update(_port_key(port) for port in service.ports)
    return ports


def build_container_port_binding_options(service: ServiceConfig) -> dict[str, list[dict[str, str]]]:
    """Host bindings of each published port, keyed by ``port/protocol``."""
    bindings: dict[str, list[dict[str, str]]] = {}
    for port in service.ports:
        published = port.get("published")
        bindings.setdefault(_port_key(port), []).append(
            {
                "host_ip": port.get("host_ip", "") or "",
                "host_port": "" if published is None else str(published),
            }
        )
    return bindings


def parse_tmpfs(entries: Iterable[str]) -> dict[str, str]:
    """Map tmpfs entries ``path[:options]`` to their options."""
    result: dict[str, str] = {}
    for entry in entries:
        path, _, options = entry.partition(":")
        result[path] = options
    return result


def will_container_restart(policy: RestartPolicy, exit_code: int, restarted: int) -> bool:
    """Whether the engine will restart a container that just exited."""
    if policy.is_always or policy.is_unless_stopped:
        return True
    if policy.is_on_failure:
        return exit_code != 0 and policy.maximum_retry_count > restarted
    return False