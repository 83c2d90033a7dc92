"""Value-equality checks used to decide whether a remote object needs a write.

Each entity kind gets its own explicit predicate instead of a generic deep
comparison: containers, mounts and volumes are matched by name, service ports
by number, policy rules field by field with list order ignored.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from corehosts.domain.objects import (
        ClusterRoleBinding,
        Container,
        PolicyRule,
        ServicePort,
        Volume,
        VolumeMount,
    )


def has_container(name: str, containers: Iterable[Container] | None) -> bool:
    return any(container.name == name for container in containers or ())


def has_volume_mount(name: str, mounts: Iterable[VolumeMount] | None) -> bool:
    return any(mount.name == name for mount in mounts or ())


def has_volume(name: str, volumes: Iterable[Volume] | None) -> bool:
    return any(volume.name == name for volume in volumes or ())


def has_service_port(port: int, ports: Iterable[ServicePort] | None) -> bool:
    return any(item.port == port for item in ports or ())


def _as_set(values: list[str] | None) -> frozenset[str]:
    return frozenset(values or ())


def policy_rules_equal(left: PolicyRule, right: PolicyRule) -> bool:
    return (
        _as_set(left.api_groups) == _as_set(right.api_groups)
        and _as_set(left.resources) == _as_set(right.resources)
        and _as_set(left.verbs) == _as_set(right.verbs)
        and _as_set(left.resource_names) == _as_set(right.resource_names)
        and _as_set(left.non_resource_urls) == _as_set(right.non_resource_urls)
    )


def has_policy_rule(rule: PolicyRule, rules: Iterable[PolicyRule] | None) -> bool:
    return any(policy_rules_equal(rule, existing) for existing in rules or ())


def binds_service_account(binding: ClusterRoleBinding, *, name: str, namespace: str) -> bool:
    """True when ``binding`` grants a ClusterRole to the given ServiceAccount."""

    if binding.role_ref.kind != "ClusterRole":
        return False
    return any(
        subject.kind == "ServiceAccount"
        and subject.name == name
        and subject.namespace == namespace
        for subject in binding.subjects or ()
    )
