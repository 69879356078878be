"""Summaries of the compose projects found among running containers."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from composecore.models import CONFIG_FILES_LABEL, PROJECT_LABEL, Container


@dataclass
class Stack:
    """A compose project as seen through its containers."""

    id: str = ""
    name: str = ""
    status: str = ""
    config_files: str = ""


def _missing_label(label: str, container: Container) -> ValueError:
    return ValueError(
        f'No label "{label}" set on container "{container.id}" of compose project'
    )


def containers_to_stacks(containers: Iterable[Container]) -> list[Stack]:
    """Group containers into one Stack per project, sorted by project name."""
    by_project, keys = group_container_by_label(containers, PROJECT_LABEL)
    return [
        Stack(
            id=project,
            name=project,
            status=combined_status(container_to_state(by_project[project])),
            config_files=combined_config_files(by_project[project]),
        )
        for project in keys
    ]


def combined_config_files(containers: Iterable[Container]) -> str:
    """Comma separated config files of the containers, without duplicates."""
    files: dict[str, None] = {}
    for container in containers:
        if CONFIG_FILES_LABEL not in container.labels:
            raise _missing_label(CONFIG_FILES_LABEL, container)
        files.update(dict.fromkeys(container.labels[CONFIG_FILES_LABEL].split(",")))
    return ",".join(files)


def container_to_state(containers: Iterable[Container]) -> list[str]:
    """The state of each container."""
    return [container.state for container in containers]


def combined_status(statuses: Iterable[str]) -> str:
    """Count of each status, as ``status(n)`` sorted by status."""
    counts = Counter(statuses)
    return ", ".join(f"{status}({counts[status]})" for status in sorted(counts))


def group_container_by_label(
    containers: Iterable[Container], label_name: str
) -> tuple[dict[str, list[Container]], list[str]]:
    """Group containers by the value of a label; also return the sorted values."""
    grouped: dict[str, list[Container]] = {}
    for container in containers:
        if label_name not in container.labels:
            raise _missing_label(label_name, container)
        grouped.setdefault(container.labels[label_name], []).append(container)
    return grouped, sorted(grouped)