"""Label filters used to select a project's resources from the engine."""

from __future__ import annotations

from composecore.models import (
    CONTAINER_NUMBER_LABEL,
    ONEOFF_LABEL,
    PROJECT_LABEL,
    SERVICE_LABEL,
)


def _label(value: str) -> tuple[str, str]:
    return ("label", value)


def project_filter(project_name: str) -> tuple[str, str]:
    """Filter matching resources of a project."""
    return _label(f"{PROJECT_LABEL}={project_name}")


def service_filter(service_name: str) -> tuple[str, str]:
    """Filter matching containers of a service."""
    return _label(f"{SERVICE_LABEL}={service_name}")


def one_off_filter(one_off: bool) -> tuple[str, str]:
    """Filter matching one-off containers, or containers that are not."""
    return _label(f"{ONEOFF_LABEL}={'True' if one_off else 'False'}")


def container_number_filter(index: int) -> tuple[str, str]:
    """Filter matching the container with the given replica number."""
    return _label(f"{CONTAINER_NUMBER_LABEL}={index:d}")


def has_project_label_filter() -> tuple[str, str]:
    """Filter matching any resource carrying a project label."""
    return _label(PROJECT_LABEL)