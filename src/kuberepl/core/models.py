#!/usr/bin/env python3
"""
KUBEREPL CORE MODELS
--------------------
Defines the fundamental data structures used across the shell: the handle
for a remote object the operator can select, and the three shapes a
selection can take.

Author: KubeRepl Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ObjKind(Enum):
    """
    Closed set of object kinds the shell can list and select.

    Each member carries the REST prefix and plural resource name used to
    build paths against the API server.
    """
    POD = ("Pod", "/api/v1", "pods", True)
    NODE = ("Node", "/api/v1", "nodes", False)
    SERVICE = ("Service", "/api/v1", "services", True)
    DEPLOYMENT = ("Deployment", "/apis/apps/v1", "deployments", True)
    REPLICASET = ("ReplicaSet", "/apis/apps/v1", "replicasets", True)
    STATEFULSET = ("StatefulSet", "/apis/apps/v1", "statefulsets", True)
    CONFIGMAP = ("ConfigMap", "/api/v1", "configmaps", True)
    SECRET = ("Secret", "/api/v1", "secrets", True)
    JOB = ("Job", "/apis/batch/v1", "jobs", True)

    def __init__(self, display: str, prefix: str, plural: str, namespaced: bool):
        self.display = display
        self.prefix = prefix
        self.plural = plural
        self.namespaced = namespaced

    def list_path(self, namespace: Optional[str] = None) -> str:
        """Path of the collection, scoped to `namespace` when the kind allows it."""
        if self.namespaced and namespace:
            return f"{self.prefix}/namespaces/{namespace}/{self.plural}"
        return f"{self.prefix}/{self.plural}"


@dataclass(frozen=True)
class SelectedObject:
    """
    Opaque handle to a remote resource. Immutable once constructed.
    """
    kind: ObjKind
    name: str
    namespace: Optional[str] = None
    containers: Tuple[str, ...] = ()    # Declared container order (pods only)
    node_name: Optional[str] = None     # Node a pod is scheduled on, if known

    @classmethod
    def from_item(cls, kind: ObjKind, item: Dict[str, Any]) -> "SelectedObject":
        """Builds a handle from one entry of a list response."""
        metadata = item.get("metadata") or {}
        spec = item.get("spec") or {}
        containers: Tuple[str, ...] = ()
        node_name = None
        if kind is ObjKind.POD:
            containers = tuple(c.get("name", "") for c in spec.get("containers") or [])
            node_name = spec.get("nodeName")
        return cls(
            kind=kind,
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace") if kind.namespaced else None,
            containers=containers,
            node_name=node_name,
        )

    @property
    def is_pod(self) -> bool:
        return self.kind is ObjKind.POD

    @property
    def is_cluster_scoped(self) -> bool:
        return not self.kind.namespaced

    def api_path(self) -> str:
        """REST path of this single object."""
        return f"{self.kind.list_path(self.namespace)}/{self.name}"

    def qualified_name(self) -> str:
        """Kind and name, plus namespace unless the kind is cluster-scoped."""
        if self.is_cluster_scoped or not self.namespace:
            return f"{self.kind.display} {self.name}"
        return f"{self.kind.display} {self.name} in namespace {self.namespace}"


class Selection:
    """Base for the three selection shapes."""

    def objects(self) -> Tuple[SelectedObject, ...]:
        return ()


@dataclass(frozen=True)
class NoSelection(Selection):
    pass


@dataclass(frozen=True)
class Single(Selection):
    obj: SelectedObject

    def objects(self) -> Tuple[SelectedObject, ...]:
        return (self.obj,)


@dataclass(frozen=True)
class Range(Selection):
    """An ordered, never-empty run of previously listed objects."""
    items: Tuple[SelectedObject, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.items:
            raise ValueError("A Range must contain at least one object")

    def objects(self) -> Tuple[SelectedObject, ...]:
        return self.items
