"""Plans for creating, updating and deleting OpenSearch StatefulSets."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from typing import Any

MIN_CLUSTER_SIZE = 3
ELASTICSEARCH_MASTER_NAME = "es-master"
CLUSTER_INITIAL_MASTER_NODES = "cluster.initial_master_nodes"

_CONFLICT_MESSAGE = (
    "skipping OpenSearch StatefulSet delete/update, "
    "cluster cannot safely lose any master nodes"
)


@dataclass
class EnvVar:
    """A container environment variable."""

    name: str
    value: str = ""


@dataclass
class Container:
    """A container in a pod template."""

    name: str
    env: list[EnvVar] = field(default_factory=list)


@dataclass
class StatefulSet:
    """The parts of a StatefulSet that planning looks at.

    ``volume_claim_templates`` holds the names of the volume claim templates.
    ``ready_replicas`` is status; everything else is spec.
    """

    name: str
    namespace: str = ""
    replicas: int = 0
    ready_replicas: int = 0
    volume_claim_templates: list[str] = field(default_factory=list)
    selector: dict[str, str] | None = None
    containers: list[Container] = field(default_factory=list)


_STATUS_FIELDS = frozenset({"ready_replicas"})


@dataclass
class StatefulSetPlan:
    """Which StatefulSets to create, update or delete."""

    create: list[StatefulSet] = field(default_factory=list)
    update: list[StatefulSet] = field(default_factory=list)
    delete: list[StatefulSet] = field(default_factory=list)
    conflict: Exception | None = None
    existing_cluster: bool = False
    bounce_nodes: bool = False


@dataclass
class _Mapping:
    existing: dict[str, StatefulSet]
    expected: dict[str, StatefulSet]
    is_scale_down_allowed: bool
    existing_size: int
    expected_size: int


def _spec_diff(existing: StatefulSet, expected: StatefulSet) -> str:
    """Describe the spec fields that differ, or return an empty string."""
    diffs = []
    for f in fields(StatefulSet):
        if f.name in _STATUS_FIELDS:
            continue
        old: Any = getattr(existing, f.name)
        new: Any = getattr(expected, f.name)
        if old != new:
            diffs.append(f"{f.name}: {old!r} -> {new!r}")
    return "; ".join(diffs)


def _create_mapping(existing_list: list[StatefulSet],
                    expected_list: list[StatefulSet]) -> _Mapping:
    """Map StatefulSets by name and decide whether scaling down is safe.

    A cluster cannot be scaled down if it would have fewer than
    ``MIN_CLUSTER_SIZE`` master replicas, or if the scale down would remove
    half or more of the master replicas.
    """
    existing = {sts.name: sts for sts in existing_list}
    expected = {sts.name: sts for sts in expected_list}
    existing_size = sum(sts.ready_replicas for sts in existing_list)
    expected_size = sum(sts.replicas for sts in expected_list)

    # Single node clusters are inherently less resilient; updates and
    # restarts must be allowed or they would never be possible.
    if expected_size == 0 or (
        existing_size == 1 and expected_list[0].name == existing_list[0].name
    ):
        allowed = True
    else:
        allowed = expected_size >= MIN_CLUSTER_SIZE and expected_size > existing_size // 2
    return _Mapping(existing, expected, allowed, existing_size, expected_size)


def create_plan(log, existing_list: list[StatefulSet] | None,
                expected_list: list[StatefulSet] | None) -> StatefulSetPlan:
    """Plan which StatefulSets to create, update or delete.

    If the cluster cannot safely scale down, updates and deletes are left
    out and ``conflict`` holds the reason.
    """
    existing_list = list(existing_list or [])
    expected_list = list(expected_list or [])
    mapping = _create_mapping(existing_list, expected_list)
    plan = StatefulSetPlan(
        existing_cluster=mapping.existing_size > 0,
        bounce_nodes=mapping.existing_size == 1,
    )

    for name, expected in mapping.expected.items():
        existing = mapping.existing.get(name)
        if existing is None:
            plan.create.append(expected)
        elif mapping.is_scale_down_allowed or not plan.existing_cluster:
            copy_from_existing(expected, existing)
            spec_diffs = _spec_diff(existing, expected)
            if spec_diffs or existing.replicas != expected.replicas:
                log.oncef("Statefulset %s/%s has spec differences %s",
                          expected.namespace, expected.name, spec_diffs)
                plan.update.append(expected)

    if mapping.is_scale_down_allowed:
        plan.delete.extend(
            existing for name, existing in mapping.existing.items()
            if name not in mapping.expected
        )

    if not mapping.is_scale_down_allowed and plan.existing_cluster:
        plan.conflict = RuntimeError(_CONFLICT_MESSAGE)
    return plan


def _copy_initial_master_nodes(expected: list[Container], existing: list[Container],
                               container_name: str) -> None:
    source = next((c for c in existing if c.name == container_name), None)
    if source is None:
        return
    value = next((e.value for e in source.env
                  if e.name == CLUSTER_INITIAL_MASTER_NODES), None)
    if value is None:
        return
    for container in expected:
        if container.name != container_name:
            continue
        target = next((e for e in container.env
                       if e.name == CLUSTER_INITIAL_MASTER_NODES), None)
        if target is None:
            container.env.append(EnvVar(CLUSTER_INITIAL_MASTER_NODES, value))
        else:
            target.value = value


def copy_from_existing(expected: StatefulSet, existing: StatefulSet) -> None:
    """Copy the fields that must not change from ``existing`` into ``expected``."""
    # Changes to volume claim templates and selectors are forbidden.
    expected.volume_claim_templates = list(existing.volume_claim_templates)
    expected.selector = copy.deepcopy(existing.selector)
    _copy_initial_master_nodes(expected.containers, existing.containers,
                               ELASTICSEARCH_MASTER_NAME)


def get_pvc_names(stateful_set: StatefulSet) -> list[str]:
    """Return the expected PVC names: ``{template}-{sts name}-{ordinal}``."""
    return [
        f"{template}-{stateful_set.name}-{ordinal}"
        for template in stateful_set.volume_claim_templates
        for ordinal in range(stateful_set.replicas)
    ]