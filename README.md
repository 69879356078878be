# composecore

`composecore` is a Python library that holds the planning logic behind a
multi-container application tool. It takes a description of a project
(services, networks, volumes, configs and secrets) and works out the settings
and the order in which its containers should be handled.

- **Project model** (`composecore.models`): `Project`, `ServiceConfig`,
  `NetworkConfig`, `VolumeConfig`, `ServiceVolumeConfig`, `FileObjectConfig`,
  `FileReference`, `Container`, `MountPoint` and related dataclasses, plus the
  label names used on resources. `Project.get_service` and
  `Project.get_services` raise `ServiceNotFoundError` when a name is unknown;
  `ServiceConfig.networks_by_priority` orders networks from highest priority.
- **Dependency ordering** (`composecore.dependencies`): `Graph.from_services`
  builds the service dependency graph; `Graph.check_cycles` raises `CycleError`
  when services depend on each other in a loop. `in_dependency_order` calls a
  function for each service after the services it depends on;
  `in_reverse_dependency_order` calls it after the services that depend on it.
  Independent services are handled concurrently in a thread pool, and the first
  error raised by the function is raised again once running calls finish.
- **Project preparation** (`composecore.project`): `get_image_name`,
  `prepare_networks` and `prepare_volume_labels` (project, key and version
  labels), `prepare_services_depends_on` (implied dependencies from
  `network_mode`, `ipc`, `pid` and `links`), `get_default_network_mode`,
  `get_aliases` and `parse_security_opts`, which inlines seccomp profiles as
  compact JSON and raises `ValueError` on an invalid option.
- **Mounts** (`composecore.mounts`): `build_mount`, `build_mount_options`,
  `build_container_mount_options` (keeps anonymous volumes of a previous
  container), `fill_bind_mounts`, and read-only bind mounts for configs and
  secrets (`build_container_config_mounts`, `build_container_secret_mounts`,
  mounted under `/` and `/run/secrets/`).
- **Resources** (`composecore.resources`): `get_restart_policy`,
  `get_deploy_resources` (memory, CPU, block I/O, devices, ulimits, deploy
  limits and reservations), `build_container_ports`,
  `build_container_port_binding_options`, `parse_tmpfs` and
  `will_container_restart`.
- **Listing** (`composecore.ls`): `containers_to_stacks` groups containers into
  one `Stack` per project, with a combined status such as
  `exited(1), running(2)` and the project's config files.
- **Label filters** (`composecore.filters`): `project_filter`,
  `service_filter`, `one_off_filter`, `container_number_filter` and
  `has_project_label_filter` return `("label", value)` pairs.
- **Log printing** (`composecore.printer`): `LogPrinter` takes
  `ContainerEvent`s through `handle_event` and passes logs and status messages
  to a `LogConsumer`. `run` returns when the last attached container
  terminates; with `cascade_stop` it calls `stop_fn` on the first exit and
  returns the exit code of the chosen service. With `timeout` it raises
  `TimeoutError`.

## What it does not do

The library does not talk to a container engine: it creates, starts, stops or
removes nothing, and pulls or pushes no images. It has no command-line
interface and does not read project files; projects are built from the
dataclasses in `composecore.models`.

## Installation

```
pip install composecore
```

The library has no runtime dependencies.

## Example

```python
from composecore.models import Project, ServiceConfig, ServiceDependency
from composecore.dependencies import in_dependency_order

project = Project(
    name="shop",
    services=[
        ServiceConfig(name="web", depends_on={"db": ServiceDependency()}),
        ServiceConfig(name="db"),
    ],
)

started = []
in_dependency_order(project, started.append)
print(started)  # ['db', 'web']
```

## Running the tests

```
pip install "composecore[test]"
pytest
```