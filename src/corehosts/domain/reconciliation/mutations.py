"""Pure mutation builders for the resource reconciler.

Every builder returns a function ``current -> (mutated, needs_write)`` that
depends on nothing but its argument and the values captured at build time.
The current object is deep-copied before it is edited, so the reconciler can
call the function again on a fresher object after a conflict.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from corehosts.domain.corefile import normalize, parse, serialize

from .predicates import (
    has_container,
    has_policy_rule,
    has_service_port,
    has_volume,
    has_volume_mount,
)

if TYPE_CHECKING:
    from corehosts.domain.objects import (
        ClusterRole,
        ConfigMap,
        Container,
        Deployment,
        PolicyRule,
        Service,
        ServicePort,
        Volume,
        VolumeMount,
    )

    from .engine import Mutation

log = getLogger(__name__)


def ensure_sidecar(
    container: Container,
    volume: Volume,
    mount: VolumeMount,
) -> Mutation[Deployment]:
    """Sidecar container, shared volume, and the volume mounted in every container."""

    def mutate(current: Deployment) -> tuple[Deployment, bool]:
        deployment = current.model_copy(deep=True)
        pod = deployment.spec.template.spec
        needs_write = False
        if not has_container(container.name, pod.containers):
            pod.containers.append(container.model_copy(deep=True))
            needs_write = True
        for item in pod.containers:
            if not has_volume_mount(mount.name, item.volume_mounts):
                item.volume_mounts = [*(item.volume_mounts or []), mount.model_copy()]
                needs_write = True
        if not has_volume(volume.name, pod.volumes):
            pod.volumes = [*(pod.volumes or []), volume.model_copy(deep=True)]
            needs_write = True
        return deployment, needs_write

    return mutate


def ensure_policy_rule(rule: PolicyRule) -> Mutation[ClusterRole]:
    def mutate(current: ClusterRole) -> tuple[ClusterRole, bool]:
        if has_policy_rule(rule, current.rules):
            return current, False
        role = current.model_copy(deep=True)
        role.rules = [*(role.rules or []), rule.model_copy(deep=True)]
        return role, True

    return mutate


def ensure_service_port(port: ServicePort) -> Mutation[Service]:
    def mutate(current: Service) -> tuple[Service, bool]:
        if has_service_port(port.port, current.spec.ports):
            return current, False
        service = current.model_copy(deep=True)
        service.spec.ports = [*(service.spec.ports or []), port.model_copy()]
        return service, True

    return mutate


def set_data_entry(key: str, value: str) -> Mutation[ConfigMap]:
    def mutate(current: ConfigMap) -> tuple[ConfigMap, bool]:
        if (current.data or {}).get(key) == value:
            return current, False
        config_map = current.model_copy(deep=True)
        config_map.data = {**(config_map.data or {}), key: value}
        return config_map, True

    return mutate


def remove_data_entry(key: str) -> Mutation[ConfigMap]:
    def mutate(current: ConfigMap) -> tuple[ConfigMap, bool]:
        if key not in (current.data or {}):
            return current, False
        config_map = current.model_copy(deep=True)
        config_map.data = {k: v for k, v in (config_map.data or {}).items() if k != key}
        return config_map, True

    return mutate


def ensure_corefile_stanza(
    key: str,
    name: str,
    argument: str,
    *,
    sort_directives: bool = False,
) -> Mutation[ConfigMap]:
    """Normalize the Corefile stored under ``data[key]``; ``ParseError`` propagates."""

    def mutate(current: ConfigMap) -> tuple[ConfigMap, bool]:
        text = (current.data or {}).get(key, "")
        document = parse(text)
        if not document.blocks:
            log.warning("ConfigMap %s has no server blocks under %r", current.ref, key)
        result = normalize(document, name, argument, sort_directives=sort_directives)
        if not result.changed:
            return current, False
        config_map = current.model_copy(deep=True)
        config_map.data = {**(config_map.data or {}), key: serialize(result.document)}
        return config_map, True

    return mutate
