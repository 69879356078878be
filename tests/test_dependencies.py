import threading

import pytest

from composecore.dependencies import (
    CycleError,
    Graph,
    ServiceStatus,
    in_dependency_order,
    in_reverse_dependency_order,
)
from composecore.models import Project, ServiceConfig, ServiceDependency


def _chain_project():
    return Project(
        services=[
            ServiceConfig(name="test1", depends_on={"test2": ServiceDependency()}),
            ServiceConfig(name="test2", depends_on={"test3": ServiceDependency()}),
            ServiceConfig(name="test3"),
        ]
    )


def _recorder():
    order = []
    lock = threading.Lock()

    def record(name):
        with lock:
            order.append(name)

    return order, record


def test_in_dependency_up_command_order():
    project = _chain_project()
    order, record = _recorder()
    in_dependency_order(project, record)
    assert order == ["test3", "test2", "test1"]
    graph = Graph.from_services(project.services, ServiceStatus.STOPPED)
    assert [v.key for v in graph.leaves()] == order[:1]


def test_in_dependency_reverse_down_command_order():
    project = _chain_project()
    order, record = _recorder()
    in_reverse_dependency_order(project, record)
    assert order == ["test1", "test2", "test3"]
    graph = Graph.from_services(project.services, ServiceStatus.STARTED)
    assert [v.key for v in graph.roots()] == order[:1]


def test_diamond_runs_each_service_once_after_dependencies():
    project = Project(
        services=[
            ServiceConfig(
                name="web",
                depends_on={"api": ServiceDependency(), "worker": ServiceDependency()},
            ),
            ServiceConfig(name="api", depends_on={"db": ServiceDependency()}),
            ServiceConfig(name="worker", depends_on={"db": ServiceDependency()}),
            ServiceConfig(name="db"),
        ]
    )
    order, record = _recorder()
    in_dependency_order(project, record)
    assert sorted(order) == ["api", "db", "web", "worker"]
    graph = Graph.from_services(project.services, ServiceStatus.STOPPED)
    assert [v.key for v in graph.leaves()] == [order[0]]
    assert [v.key for v in graph.roots()] == [order[-1]]
    assert order[0] == "db"
    assert order[-1] == "web"


def test_error_stops_traversal():
    order, record = _recorder()

    def fn(name):
        record(name)
        if name == "test3":
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        in_dependency_order(_chain_project(), fn)
    assert order == ["test3"]


def test_cycle_is_reported():
    project = Project(
        services=[
            ServiceConfig(name="a", depends_on={"b": ServiceDependency()}),
            ServiceConfig(name="b", depends_on={"a": ServiceDependency()}),
        ]
    )
    with pytest.raises(CycleError, match="cycle found: a -> b -> a"):
        in_dependency_order(project, lambda name: None)


def test_self_dependency_is_a_cycle():
    graph = Graph.from_services(
        [ServiceConfig(name="a", depends_on={"a": ServiceDependency()})],
        ServiceStatus.STOPPED,
    )
    with pytest.raises(CycleError) as info:
        graph.check_cycles()
    assert info.value.path == ["a", "a"]


def test_unknown_dependency_is_ignored():
    graph = Graph.from_services(
        [ServiceConfig(name="a", depends_on={"ghost": ServiceDependency()})],
        ServiceStatus.STOPPED,
    )
    assert graph.vertices["a"].get_children() == []


def test_add_edge_to_missing_vertex():
    graph = Graph()
    graph.add_vertex("a", "a", ServiceStatus.STOPPED)
    with pytest.raises(LookupError, match="could not find b"):
        graph.add_edge("a", "b")


def test_leaves_roots_and_relations():
    graph = Graph.from_services(_chain_project().services, ServiceStatus.STOPPED)
    assert [v.key for v in graph.leaves()] == ["test3"]
    assert [v.key for v in graph.roots()] == ["test1"]
    assert [v.key for v in graph.vertices["test2"].get_parents()] == ["test1"]
    assert [v.key for v in graph.vertices["test2"].get_children()] == ["test3"]


def test_filter_by_status():
    graph = Graph.from_services(_chain_project().services, ServiceStatus.STOPPED)
    assert [v.key for v in graph.filter_children("test2", ServiceStatus.STOPPED)] == ["test3"]
    graph.update_status("test3", ServiceStatus.STARTED)
    assert graph.filter_children("test2", ServiceStatus.STOPPED) == []
    assert [v.key for v in graph.filter_parents("test2", ServiceStatus.STOPPED)] == ["test1"]
    assert graph.filter_parents("test2", ServiceStatus.STARTED) == []