"""Planning logic for multi-container application projects: model, ordering, mounts, resources, listing and log printing."""

__version__ = "0.1.0"

__all__ = [
    "dependencies",
    "filters",
    "ls",
    "models",
    "mounts",
    "printer",
    "project",
    "resources",
]