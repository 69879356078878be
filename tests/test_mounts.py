import os

import pytest

from composecore.models import (
    Container,
    FileObjectConfig,
    FileReference,
    MountPoint,
    Project,
    ServiceConfig,
    ServiceVolumeConfig,
    VolumeConfig,
)
from composecore.mounts import (
    BindOptions,
    Mount,
    TmpfsOptions,
    VolumeOptions,
    build_container_config_mounts,
    build_container_mount_options,
    build_container_secret_mounts,
    build_mount,
    build_mount_options,
    fill_bind_mounts,
    is_unix_abs,
)


def _volume_project():
    service = ServiceConfig(
        name="myService",
        volumes=[
            ServiceVolumeConfig(type="volume", target="/var/myvolume1"),
            ServiceVolumeConfig(type="volume", target="/var/myvolume2"),
        ],
    )
    return Project(
        name="myProject",
        services=[service],
        volumes={
            "myVolume1": VolumeConfig(name="myProject_myVolume1"),
            "myVolume2": VolumeConfig(name="myProject_myVolume2"),
        },
    )


def test_build_bind_mount():
    mount = build_mount(Project(), ServiceVolumeConfig(type="bind", source="", target="/data"))
    assert os.path.isabs(mount.source)
    assert os.path.exists(mount.source)
    assert mount.type == "bind"


def test_build_volume_mount():
    project = Project(
        name="myProject", volumes={"myVolume": VolumeConfig(name="myProject_myVolume")}
    )
    mount = build_mount(
        project, ServiceVolumeConfig(type="volume", source="myVolume", target="/data")
    )
    assert mount.source == "myProject_myVolume"
    assert mount.type == "volume"


def test_build_container_mount_options_is_repeatable():
    project = _volume_project()
    inherit = Container(
        mounts=[
            MountPoint(type="volume", destination="/var/myvolume1"),
            MountPoint(type="volume", destination="/var/myvolume2"),
        ]
    )
    for _ in range(2):
        mounts = sorted(
            build_container_mount_options(project, project.services[0], None, inherit),
            key=lambda m: m.target,
        )
        assert [m.target for m in mounts] == ["/var/myvolume1", "/var/myvolume2"]
    assert len(project.services[0].volumes) == 2


def test_inherited_mount_keeps_name_and_read_only():
    project = _volume_project()
    inherit = Container(
        mounts=[MountPoint(type="volume", name="abc123", destination="/var/myvolume1/", rw=False)]
    )
    mounts = {
        m.target: m
        for m in build_container_mount_options(project, project.services[0], None, inherit)
    }
    assert mounts["/var/myvolume1"] == Mount(
        type="volume", source="abc123", target="/var/myvolume1", read_only=True
    )
    assert mounts["/var/myvolume2"].source == ""


def test_image_volume_inherited_and_tmpfs_skipped():
    project = Project(name="p")
    service = ServiceConfig(name="s")
    inherit = Container(
        mounts=[
            MountPoint(type="volume", name="anon", destination="/cache"),
            MountPoint(type="tmpfs", destination="/tmp"),
        ]
    )
    mounts = build_container_mount_options(project, service, {"/cache", "/tmp"}, inherit)
    assert mounts == [Mount(type="volume", source="anon", target="/cache")]


def test_build_mount_cleans_target():
    mount = build_mount(Project(), ServiceVolumeConfig(type="volume", target="/data/../var//x/"))
    assert mount.target == "/var/x"


def test_volume_with_bind_driver_option_becomes_bind():
    project = Project(volumes={"v": VolumeConfig(name="p_v", driver_opts={"o": "bind"})})
    mount = build_mount(project, ServiceVolumeConfig(type="volume", source="v", target="/d"))
    assert mount.type == "bind"
    assert mount.bind_options == BindOptions()
    assert mount.source == "p_v"


def test_build_mount_options_by_type():
    project = Project()
    assert build_mount_options(
        project, ServiceVolumeConfig(type="bind", bind={"propagation": "rshared"})
    ) == (BindOptions(propagation="rshared"), None, None)
    assert build_mount_options(
        project, ServiceVolumeConfig(type="volume", volume={"nocopy": True})
    ) == (None, VolumeOptions(no_copy=True), None)
    assert build_mount_options(
        project, ServiceVolumeConfig(type="tmpfs", tmpfs={"size": 1024})
    ) == (None, None, TmpfsOptions(size_bytes=1024))
    assert build_mount_options(project, ServiceVolumeConfig(type="npipe")) == (None, None, None)


def test_is_unix_abs():
    assert is_unix_abs("/etc")
    assert not is_unix_abs("etc")


def test_secret_mount_targets():
    project = Project(
        secrets={
            "a": FileObjectConfig(name="a", file="/files/a.txt"),
            "b": FileObjectConfig(name="b", file="/files/b.txt"),
        }
    )
    service = ServiceConfig(
        secrets=[FileReference(source="a"), FileReference(source="b", target="custom")]
    )
    mounts = sorted(build_container_secret_mounts(project, service), key=lambda m: m.target)
    assert [(m.target, m.source, m.type, m.read_only) for m in mounts] == [
        ("/run/secrets/a", "/files/a.txt", "bind", True),
        ("/run/secrets/custom", "/files/b.txt", "bind", True),
    ]


def test_config_mount_targets():
    project = Project(configs={"c": FileObjectConfig(name="c", file="/files/c.conf")})
    service = ServiceConfig(
        configs=[FileReference(source="c"), FileReference(source="c", target="/etc/app.conf")]
    )
    mounts = sorted(build_container_config_mounts(project, service), key=lambda m: m.target)
    assert [m.target for m in mounts] == ["/c", "/etc/app.conf"]
    assert all(m.source == "/files/c.conf" for m in mounts)


def test_external_secret_rejected():
    project = Project(secrets={"a": FileObjectConfig(name="ext_a", external=True)})
    service = ServiceConfig(secrets=[FileReference(source="a")])
    with pytest.raises(ValueError, match="unsupported external secret ext_a"):
        build_container_secret_mounts(project, service)


def test_external_config_rejected():
    project = Project(configs={"c": FileObjectConfig(name="ext_c", external=True)})
    service = ServiceConfig(configs=[FileReference(source="c")])
    with pytest.raises(ValueError, match="unsupported external config ext_c"):
        build_container_config_mounts(project, service)


def test_fill_bind_mounts_does_not_override_volumes_with_secrets():
    project = Project(secrets={"a": FileObjectConfig(name="a", file="/files/a.txt")})
    service = ServiceConfig(
        volumes=[ServiceVolumeConfig(type="volume", source="data", target="/run/secrets/a")],
        secrets=[FileReference(source="a")],
    )
    mounts = fill_bind_mounts(project, service, {})
    assert list(mounts) == ["/run/secrets/a"]
    assert mounts["/run/secrets/a"].type == "volume"
    assert mounts["/run/secrets/a"].source == "data"


def test_fill_bind_mounts_service_volume_replaces_existing():
    existing = Mount(type="volume", source="old", target="/data")
    service = ServiceConfig(
        volumes=[ServiceVolumeConfig(type="volume", source="new", target="/data")]
    )
    mounts = fill_bind_mounts(Project(), service, {"/data": existing})
    assert mounts["/data"].source == "new"