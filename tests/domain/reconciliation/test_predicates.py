from __future__ import annotations

from corehosts.domain.objects import ClusterRoleBinding, PolicyRule
from corehosts.domain.reconciliation.predicates import binds_service_account, policy_rules_equal


def _binding(role_kind: str, subjects: list[dict[str, str]]) -> ClusterRoleBinding:
    return ClusterRoleBinding.model_validate(
        {
            "metadata": {"name": "system:coredns"},
            "roleRef": {"apiGroup": "rbac.authorization.k8s.io", "kind": role_kind, "name": "r"},
            "subjects": subjects,
        }
    )


def test_policy_rules_equal_compares_fields_as_sets() -> None:
    left = PolicyRule(api_groups=[""], resources=["a", "b"], verbs=["get", "list"])
    right = PolicyRule(api_groups=[""], resources=["b", "a"], verbs=["list", "get", "get"])

    assert policy_rules_equal(left, right) is True
    narrower = PolicyRule(api_groups=[""], resources=["a"], verbs=["get"])
    assert policy_rules_equal(left, narrower) is False
    assert policy_rules_equal(
        PolicyRule(verbs=["get"], non_resource_urls=["/healthz"]),
        PolicyRule(verbs=["get"]),
    ) is False


def test_binds_service_account_requires_matching_subject_and_cluster_role() -> None:
    subject = {"kind": "ServiceAccount", "name": "coredns", "namespace": "kube-system"}

    assert binds_service_account(
        _binding("ClusterRole", [subject]), name="coredns", namespace="kube-system"
    )
    assert not binds_service_account(
        _binding("Role", [subject]), name="coredns", namespace="kube-system"
    )
    assert not binds_service_account(
        _binding("ClusterRole", [subject]), name="coredns", namespace="default"
    )
    assert not binds_service_account(
        _binding("ClusterRole", [{**subject, "kind": "User"}]),
        name="coredns",
        namespace="kube-system",
    )
