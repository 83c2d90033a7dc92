from __future__ import annotations

import pytest

from corehosts.domain.errors import ParseError
from corehosts.domain.objects import (
    ClusterRole,
    Container,
    Deployment,
    ObjectMeta,
    PolicyRule,
    Service,
    ServicePort,
    Volume,
    VolumeMount,
)
from corehosts.domain.reconciliation import (
    ensure_corefile_stanza,
    ensure_policy_rule,
    ensure_service_port,
    ensure_sidecar,
    remove_data_entry,
    set_data_entry,
)
from tests.support.kube import make_config_map

SIDECAR = Container(name="coredns-hosts-server", image="example/server:v1")
VOLUME = Volume(name="shared-data", empty_dir={})
MOUNT = VolumeMount(name="shared-data", mount_path="/etc/coredns-dir")


def _deployment() -> Deployment:
    return Deployment.model_validate(
        {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": {"name": "coredns", "namespace": "kube-system", "resourceVersion": "7"},
            "spec": {
                "replicas": 2,
                "template": {
                    "spec": {
                        "serviceAccountName": "coredns",
                        "containers": [{"name": "coredns", "image": "coredns/coredns:1.11"}],
                        "volumes": [{"name": "config-volume", "configMap": {"name": "coredns"}}],
                    }
                },
            },
        }
    )


def test_ensure_sidecar_adds_container_mounts_and_volume() -> None:
    current = _deployment()

    updated, needs_write = ensure_sidecar(SIDECAR, VOLUME, MOUNT)(current)

    pod = updated.spec.template.spec
    assert needs_write is True
    assert [container.name for container in pod.containers] == ["coredns", "coredns-hosts-server"]
    assert all(
        [mount.name for mount in container.volume_mounts or ()] == ["shared-data"]
        for container in pod.containers
    )
    assert [volume.name for volume in pod.volumes or ()] == ["config-volume", "shared-data"]
    payload = updated.to_payload()
    assert payload["spec"]["replicas"] == 2
    volumes = payload["spec"]["template"]["spec"]["volumes"]
    assert volumes[1] == {"name": "shared-data", "emptyDir": {}}


def test_ensure_sidecar_does_not_touch_input_and_is_idempotent() -> None:
    current = _deployment()
    before = current.model_dump()
    mutate = ensure_sidecar(SIDECAR, VOLUME, MOUNT)

    updated, _ = mutate(current)
    again, needs_write = mutate(updated)

    assert current.model_dump() == before
    assert needs_write is False
    assert again == updated


def test_ensure_policy_rule_ignores_list_order() -> None:
    role = ClusterRole(
        metadata=ObjectMeta(name="system:coredns"),
        rules=[PolicyRule(api_groups=[""], resources=["configmaps", "endpoints"], verbs=["*"])],
    )
    reordered = PolicyRule(api_groups=[""], resources=["endpoints", "configmaps"], verbs=["*"])
    mutate = ensure_policy_rule(reordered)

    updated, needs_write = mutate(role)

    assert needs_write is False
    assert updated is role


def test_ensure_policy_rule_appends_missing_rule() -> None:
    role = ClusterRole(
        metadata=ObjectMeta(name="system:coredns"),
        rules=[PolicyRule(api_groups=[""], resources=["endpoints"], verbs=["list", "watch"])],
    )
    rule = PolicyRule(api_groups=[""], resources=["configmaps"], verbs=["*"])

    updated, needs_write = ensure_policy_rule(rule)(role)

    assert needs_write is True
    assert updated.rules == [*(role.rules or []), rule]
    assert len(role.rules or []) == 1


def test_ensure_service_port_matches_by_number() -> None:
    service = Service.model_validate(
        {
            "metadata": {"name": "kube-dns", "namespace": "kube-system"},
            "spec": {"ports": [{"name": "dns", "port": 53, "protocol": "UDP"}]},
        }
    )

    updated, needs_write = ensure_service_port(ServicePort(name="apis", port=9080))(service)
    again, needs_write_again = ensure_service_port(ServicePort(name="other", port=9080))(updated)

    assert needs_write is True
    assert [port.port for port in updated.spec.ports or ()] == [53, 9080]
    assert needs_write_again is False
    assert again is updated


def test_data_entry_mutations_short_circuit() -> None:
    config_map = make_config_map(data={"a.example.com": "1.2.3.4"})

    same, same_write = set_data_entry("a.example.com", "1.2.3.4")(config_map)
    changed, changed_write = set_data_entry("a.example.com", "5.6.7.8")(config_map)
    absent, absent_write = remove_data_entry("b.example.com")(config_map)
    removed, removed_write = remove_data_entry("a.example.com")(config_map)

    assert (same_write, changed_write, absent_write, removed_write) == (False, True, False, True)
    assert same is config_map
    assert absent is config_map
    assert changed.data == {"a.example.com": "5.6.7.8"}
    assert removed.data == {}
    assert config_map.data == {"a.example.com": "1.2.3.4"}


def test_set_data_entry_on_config_map_without_data() -> None:
    updated, needs_write = set_data_entry("a", "1.1.1.1")(make_config_map(data=None))

    assert needs_write is True
    assert updated.data == {"a": "1.1.1.1"}


def test_ensure_corefile_stanza_rewrites_only_when_needed() -> None:
    config_map = make_config_map(
        name="coredns", data={"Corefile": ".:53 {\n    errors\n}\n", "other": "kept"}
    )
    mutate = ensure_corefile_stanza("Corefile", "hosts", "/etc/coredns-dir/hosts")

    updated, needs_write = mutate(config_map)
    again, needs_write_again = mutate(updated)

    assert needs_write is True
    assert updated.data == {
        "Corefile": ".:53 {\n    errors\n    hosts /etc/coredns-dir/hosts\n}\n",
        "other": "kept",
    }
    assert needs_write_again is False
    assert again is updated


def test_ensure_corefile_stanza_without_blocks_writes_nothing() -> None:
    config_map = make_config_map(name="coredns", data={})

    updated, needs_write = ensure_corefile_stanza("Corefile", "hosts", "/x")(config_map)

    assert needs_write is False
    assert updated is config_map


def test_ensure_corefile_stanza_propagates_parse_errors() -> None:
    config_map = make_config_map(name="coredns", data={"Corefile": ".:53 {\n"})

    with pytest.raises(ParseError):
        ensure_corefile_stanza("Corefile", "hosts", "/x")(config_map)
