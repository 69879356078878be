"""Dependency graph of a project's services and ordered traversal over it."""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Iterable

from composecore.models import Project, ServiceConfig


class ServiceStatus(IntEnum):
    """Whether a service has been handled yet during a traversal."""

    STOPPED = 0
    STARTED = 1


class CycleError(ValueError):
    """Raised when services depend on each other in a loop."""

    def __init__(self, path: list[str]) -> None:
        super().__init__(f"cycle found: {' -> '.join(path)}")
        self.path = path


@dataclass(eq=False)
class Vertex:
    """A service in the dependency graph."""

    key: str
    service: str
    status: ServiceStatus = ServiceStatus.STOPPED
    children: dict[str, Vertex] = field(default_factory=dict, repr=False)
    parents: dict[str, Vertex] = field(default_factory=dict, repr=False)

    def get_parents(self) -> list[Vertex]:
        """Vertices that depend on this one."""
        return list(self.parents.values())

    def get_children(self) -> list[Vertex]:
        """Vertices this one depends on."""
        return list(self.children.values())


class Graph:
    """Services as vertices, with an edge from each service to its dependencies."""

    def __init__(self) -> None:
        self.vertices: dict[str, Vertex] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_services(
        cls, services: Iterable[ServiceConfig], initial_status: ServiceStatus
    ) -> Graph:
        """Build the graph of ``services``; dependencies on unknown services are ignored."""
        services = list(services)
        graph = cls()
        for service in services:
            graph.add_vertex(service.name, service.name, initial_status)
        for service in services:
            for name in service.get_dependencies():
                try:
                    graph.add_edge(service.name, name)
                except LookupError:
                    pass
        return graph

    def add_vertex(self, key: str, service: str, initial_status: ServiceStatus) -> None:
        """Add (or replace) the vertex ``key``."""
        with self._lock:
            self.vertices[key] = Vertex(key, service, initial_status)

    def add_edge(self, source: str, destination: str) -> None:
        """Record that ``source`` depends on ``destination``."""
        with self._lock:
            for key in (source, destination):
                if key not in self.vertices:
                    raise LookupError(f"could not find {key}")
            source_vertex = self.vertices[source]
            destination_vertex = self.vertices[destination]
            if destination in source_vertex.children:
                return
            source_vertex.children[destination] = destination_vertex
            destination_vertex.parents[source] = source_vertex

    def leaves(self) -> list[Vertex]:
        """Vertices without dependencies."""
        with self._lock:
            return [v for v in self.vertices.values() if not v.children]

    def roots(self) -> list[Vertex]:
        """Vertices nothing depends on."""
        with self._lock:
            return [v for v in self.vertices.values() if not v.parents]

    def update_status(self, key: str, status: ServiceStatus) -> None:
        """Set the status of vertex ``key``."""
        with self._lock:
            self.vertices[key].status = status

    def filter_children(self, key: str, status: ServiceStatus) -> list[Vertex]:
        """Children of ``key`` that are in ``status``."""
        with self._lock:
            return [c for c in self.vertices[key].children.values() if c.status == status]

    def filter_parents(self, key: str, status: ServiceStatus) -> list[Vertex]:
        """Parents of ``key`` that are in ``status``."""
        with self._lock:
            return [p for p in self.vertices[key].parents.values() if p.status == status]

    def check_cycles(self) -> None:
        """Raise CycleError if the dependencies loop."""
        finished: set[str] = set()

        def visit(key: str, path: list[str], on_path: frozenset[str]) -> None:
            for child in self.vertices[key].children.values():
                child_path = [*path, child.key]
                if child.key in on_path:
                    raise CycleError(child_path)
                if child.key not in finished:
                    visit(child.key, child_path, on_path | {child.key})
            finished.add(key)

        for key in list(self.vertices):
            if key not in finished:
                visit(key, [key], frozenset({key}))


@dataclass(frozen=True)
class _Traversal:
    extremities: Callable[[Graph], list[Vertex]]
    adjacent: Callable[[Vertex], list[Vertex]]
    filter_adjacent: Callable[[Graph, str, ServiceStatus], list[Vertex]]
    target_status: ServiceStatus
    skip_status: ServiceStatus


_UP = _Traversal(
    extremities=Graph.leaves,
    adjacent=Vertex.get_parents,
    filter_adjacent=Graph.filter_children,
    target_status=ServiceStatus.STARTED,
    skip_status=ServiceStatus.STOPPED,
)

_DOWN = _Traversal(
    extremities=Graph.roots,
    adjacent=Vertex.get_children,
    filter_adjacent=Graph.filter_parents,
    target_status=ServiceStatus.STOPPED,
    skip_status=ServiceStatus.STARTED,
)


def in_dependency_order(project: Project, fn: Callable[[str], object]) -> None:
    """Call ``fn`` on each service after the services it depends on."""
    _visit(project, _UP, fn, ServiceStatus.STOPPED)


def in_reverse_dependency_order(project: Project, fn: Callable[[str], object]) -> None:
    """Call ``fn`` on each service after the services that depend on it."""
    _visit(project, _DOWN, fn, ServiceStatus.STARTED)


def _visit(
    project: Project,
    traversal: _Traversal,
    fn: Callable[[str], object],
    initial_status: ServiceStatus,
) -> None:
    graph = Graph.from_services(project.services, initial_status)
    graph.check_cycles()

    scheduled: set[str] = set()
    running: dict[Future, Vertex] = {}
    first_error: BaseException | None = None

    with ThreadPoolExecutor() as pool:

        def schedule(nodes: Iterable[Vertex]) -> None:
            for node in nodes:
                if node.key in scheduled:
                    continue
                if traversal.filter_adjacent(graph, node.key, traversal.skip_status):
                    continue
                scheduled.add(node.key)
                running[pool.submit(fn, node.service)] = node

        schedule(traversal.extremities(graph))
        while running:
            done, _ = wait(running, return_when=FIRST_COMPLETED)
            for future in done:
                node = running.pop(future)
                error = future.exception()
                if error is not None:
                    if first_error is None:
                        first_error = error
                    continue
                graph.update_status(node.key, traversal.target_status)
                if first_error is None:
                    schedule(traversal.adjacent(node))

    if first_error is not None:
        raise first_error