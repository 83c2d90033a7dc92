"""One-shot patching of an existing CoreDNS installation.

The installer runs four steps in a fixed order, each converging one remote
object through the resource reconciler:

1) ``access-policy``: the ClusterRole bound to CoreDNS's service account may
   read and write ConfigMaps
2) ``workload``: the CoreDNS Deployment runs the hosts server sidecar and
   shares a volume with it
3) ``network-endpoint``: the CoreDNS Service exposes the hosts server port
4) ``directive-document``: the Corefile loads the shared hosts file

The first failing step stops the run; objects already patched stay patched.
Running the installer again on a converged cluster writes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

from corehosts.config.installer import InstallerConfig
from corehosts.domain.errors import CorehostsError, InstallerStepError, NotFoundError
from corehosts.domain.objects import (
    CLUSTER_ROLE_BINDINGS,
    CLUSTER_ROLES,
    CONFIG_MAPS,
    DEPLOYMENTS,
    SERVICES,
    Container,
    ContainerPort,
    ObjectRef,
    PolicyRule,
    ServicePort,
    Volume,
    VolumeMount,
)
from corehosts.domain.reconciliation import (
    ensure_corefile_stanza,
    ensure_policy_rule,
    ensure_service_port,
    ensure_sidecar,
)
from corehosts.domain.reconciliation.predicates import binds_service_account

if TYPE_CHECKING:
    from corehosts.domain.objects import Deployment
    from corehosts.domain.ports import ResourceClient
    from corehosts.domain.reconciliation import ReconcileResult, ResourceReconciler

log = getLogger(__name__)

CONFIGMAP_ACCESS_RULE = PolicyRule(api_groups=[""], resources=["configmaps"], verbs=["*"])


@dataclass(frozen=True, slots=True)
class StepOutcome:
    step: str
    identity: str
    written: bool


@dataclass(slots=True)
class InstallReport:
    steps: list[StepOutcome] = field(default_factory=list["StepOutcome"])

    @property
    def written(self) -> list[str]:
        return [outcome.step for outcome in self.steps if outcome.written]

    @property
    def changed(self) -> bool:
        return any(outcome.written for outcome in self.steps)


class Installer:
    def __init__(
        self,
        client: ResourceClient,
        reconciler: ResourceReconciler,
        config: InstallerConfig | None = None,
    ) -> None:
        self._client = client
        self._reconciler = reconciler
        self.config = config or InstallerConfig()
        self._identity: dict[str, str] = {}

    @property
    def coredns_ref(self) -> ObjectRef:
        return ObjectRef(name=self.config.coredns_name, namespace=self.config.coredns_namespace)

    async def reconcile(self) -> InstallReport:
        """Run every step in order; raise ``InstallerStepError`` on the first failure."""

        report = InstallReport()
        steps = [
            ("access-policy", self.ensure_access_policy),
            ("workload", self.ensure_workload),
            ("network-endpoint", self.ensure_network_endpoint),
            ("directive-document", self.ensure_directive_document),
        ]
        for name, run in steps:
            self._identity[name] = str(self.coredns_ref)
            log.info("Installer step %s: starting", name)
            try:
                result = await run()
            except (CorehostsError, ValueError) as exc:
                identity = self._identity[name]
                log.error(  # noqa: TRY400
                    "Installer step %s failed for %s: %s", name, identity, exc
                )
                raise InstallerStepError(step=name, identity=identity, reason=str(exc)) from exc
            outcome = StepOutcome(step=name, identity=self._identity[name], written=result.written)
            report.steps.append(outcome)
            log.info(
                "Installer step %s: %s %s",
                name,
                "updated" if outcome.written else "unchanged",
                outcome.identity,
            )
        return report

    async def ensure_access_policy(self) -> ReconcileResult[Any]:
        deployment = await self._client.get(DEPLOYMENTS, self.coredns_ref)
        account = _service_account(deployment)
        namespace = deployment.metadata.namespace or self.config.coredns_namespace
        bindings = await self._client.list(CLUSTER_ROLE_BINDINGS)
        role_name = next(
            (
                binding.role_ref.name
                for binding in bindings.items
                if binds_service_account(binding, name=account, namespace=namespace)
            ),
            None,
        )
        if role_name is None:
            subject = f"{namespace}/{account}"
            raise NotFoundError(
                f"no ClusterRoleBinding grants a ClusterRole to ServiceAccount {subject}",
                kind=CLUSTER_ROLE_BINDINGS.name,
            )
        role_ref = ObjectRef(name=role_name)
        self._identity["access-policy"] = f"ClusterRole {role_ref}"
        return await self._reconciler.reconcile(
            CLUSTER_ROLES, role_ref, ensure_policy_rule(CONFIGMAP_ACCESS_RULE)
        )

    async def ensure_workload(self) -> ReconcileResult[Any]:
        self._identity["workload"] = f"Deployment {self.coredns_ref}"
        mount = VolumeMount(name=self.config.volume_name, mount_path=self.config.mount_path)
        return await self._reconciler.reconcile(
            DEPLOYMENTS,
            self.coredns_ref,
            ensure_sidecar(
                self.sidecar_container(),
                Volume(name=self.config.volume_name, empty_dir={}),
                mount,
            ),
        )

    async def ensure_network_endpoint(self) -> ReconcileResult[Any]:
        port = ServicePort(name="apis", port=self.config.server_port)
        mutate = ensure_service_port(port)
        self._identity["network-endpoint"] = f"Service {self.coredns_ref}"
        try:
            return await self._reconciler.reconcile(SERVICES, self.coredns_ref, mutate)
        except NotFoundError:
            fallback = ObjectRef(
                name=self.config.fallback_service_name, namespace=self.config.coredns_namespace
            )
            log.info("Service %s not found, trying %s", self.coredns_ref, fallback)
            self._identity["network-endpoint"] = f"Service {fallback}"
            return await self._reconciler.reconcile(SERVICES, fallback, mutate)

    async def ensure_directive_document(self) -> ReconcileResult[Any]:
        self._identity["directive-document"] = f"ConfigMap {self.coredns_ref}"
        return await self._reconciler.reconcile(
            CONFIG_MAPS,
            self.coredns_ref,
            ensure_corefile_stanza(
                self.config.corefile_key,
                self.config.managed_directive,
                self.config.hosts_path,
                sort_directives=self.config.sort_directives,
            ),
        )

    def sidecar_container(self) -> Container:
        args = ["--port", str(self.config.server_port)]
        if self.config.server_kubeconfig:
            args = ["--kubeconfig", self.config.server_kubeconfig, *args]
        return Container(
            name=self.config.sidecar_name,
            image=self.config.server_image_ref,
            image_pull_policy="Always",
            args=args,
            ports=[ContainerPort(container_port=self.config.server_port)],
        )


def _service_account(deployment: Deployment) -> str:
    pod = deployment.spec.template.spec
    account = pod.service_account_name or pod.service_account
    if not account:
        raise ValueError(f"Deployment {deployment.ref} has no service account")
    return account
