"""Remote objects managed by corehosts.

Only the fields the convergence logic reads or writes are declared; everything
else the API server sends is kept as extra data so that a read-modify-write
cycle never drops fields it does not know about.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class KubeModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ObjectMeta(KubeModel):
    name: str
    namespace: str | None = None
    resource_version: str | None = None


class KubeObject(KubeModel):
    api_version: str | None = None
    kind: str | None = None
    metadata: ObjectMeta

    @property
    def ref(self) -> ObjectRef:
        return ObjectRef(name=self.metadata.name, namespace=self.metadata.namespace)

    @property
    def resource_version(self) -> str | None:
        return self.metadata.resource_version


class ConfigMap(KubeObject):
    data: dict[str, str] | None = None


class ContainerPort(KubeModel):
    container_port: int
    name: str | None = None
    protocol: str | None = None


class VolumeMount(KubeModel):
    name: str
    mount_path: str


class Container(KubeModel):
    name: str
    image: str | None = None
    image_pull_policy: str | None = None
    args: list[str] | None = None
    ports: list[ContainerPort] | None = None
    volume_mounts: list[VolumeMount] | None = None


class Volume(KubeModel):
    name: str
    empty_dir: dict[str, Any] | None = None


class PodSpec(KubeModel):
    containers: list[Container] = Field(default_factory=list["Container"])
    volumes: list[Volume] | None = None
    service_account_name: str | None = None
    service_account: str | None = None


class PodTemplateSpec(KubeModel):
    spec: PodSpec = Field(default_factory=PodSpec)


class DeploymentSpec(KubeModel):
    template: PodTemplateSpec = Field(default_factory=PodTemplateSpec)


class Deployment(KubeObject):
    spec: DeploymentSpec = Field(default_factory=DeploymentSpec)


class ServicePort(KubeModel):
    port: int
    name: str | None = None
    protocol: str | None = None
    target_port: int | str | None = None


class ServiceSpec(KubeModel):
    ports: list[ServicePort] | None = None


class Service(KubeObject):
    spec: ServiceSpec = Field(default_factory=ServiceSpec)


class PolicyRule(KubeModel):
    verbs: list[str] = Field(default_factory=list)
    api_groups: list[str] | None = None
    resources: list[str] | None = None
    resource_names: list[str] | None = None
    non_resource_urls: list[str] | None = Field(default=None, alias="nonResourceURLs")


class ClusterRole(KubeObject):
    rules: list[PolicyRule] | None = None


class Subject(KubeModel):
    kind: str
    name: str
    namespace: str | None = None
    api_group: str | None = None


class RoleRef(KubeModel):
    kind: str
    name: str
    api_group: str | None = None


class ClusterRoleBinding(KubeObject):
    subjects: list[Subject] | None = None
    role_ref: RoleRef


@dataclass(frozen=True, slots=True)
class ObjectRef:
    """Identity of one remote object; ``key`` is the ``namespace/name`` form."""

    name: str
    namespace: str | None = None

    @property
    def key(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    @classmethod
    def from_key(cls, key: str) -> ObjectRef:
        parts = key.split("/")
        if len(parts) == 1 and parts[0]:
            return cls(name=parts[0])
        if len(parts) == 2 and all(parts):  # noqa: PLR2004
            return cls(name=parts[1], namespace=parts[0])
        raise ValueError(f"unexpected key format: {key!r}")

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True, slots=True)
class ResourceKind[T: KubeObject]:
    """Describes where a kind of object lives on the API server."""

    name: str
    plural: str
    api_prefix: str
    model: type[T]
    namespaced: bool = True

    def parse(self, payload: object) -> T:
        return self.model.model_validate(payload)


CONFIG_MAPS = ResourceKind("ConfigMap", "configmaps", "/api/v1", ConfigMap)
SERVICES = ResourceKind("Service", "services", "/api/v1", Service)
DEPLOYMENTS = ResourceKind("Deployment", "deployments", "/apis/apps/v1", Deployment)
CLUSTER_ROLES = ResourceKind(
    "ClusterRole",
    "clusterroles",
    "/apis/rbac.authorization.k8s.io/v1",
    ClusterRole,
    namespaced=False,
)
CLUSTER_ROLE_BINDINGS = ResourceKind(
    "ClusterRoleBinding",
    "clusterrolebindings",
    "/apis/rbac.authorization.k8s.io/v1",
    ClusterRoleBinding,
    namespaced=False,
)


class EventType(StrEnum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"
    ERROR = "ERROR"


@dataclass(frozen=True, slots=True)
class WatchEvent[T: KubeObject]:
    """One change notification for a watched object."""

    type: EventType
    obj: T


@dataclass(slots=True)
class ResourceList[T: KubeObject]:
    items: list[T] = field(default_factory=list)
    resource_version: str | None = None
