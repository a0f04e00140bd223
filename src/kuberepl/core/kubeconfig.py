#!/usr/bin/env python3
"""
KUBEREPL KUBECONFIG READER
--------------------------
Loads contexts, clusters and users from a kubeconfig file and resolves a
context name into everything the cluster client needs to connect.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from kuberepl.core.errors import ConfigError, NoContextError

logger = logging.getLogger("kuberepl.kubeconfig")


def default_kubeconfig_path() -> Path:
    env_value = os.environ.get("KUBECONFIG")
    if env_value:
        # Only the first entry of a multi-file KUBECONFIG is honoured
        return Path(env_value.split(os.pathsep)[0]).expanduser()
    return Path.home() / ".kube" / "config"


@dataclass
class ClusterEntry:
    server: str
    certificate_authority: Optional[str] = None
    certificate_authority_data: Optional[str] = None
    insecure_skip_tls_verify: bool = False


@dataclass
class UserEntry:
    token: Optional[str] = None
    client_certificate: Optional[str] = None
    client_certificate_data: Optional[str] = None
    client_key: Optional[str] = None
    client_key_data: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None


@dataclass
class KubeContext:
    """A fully resolved context: the cluster to talk to and who to talk as."""
    name: str
    cluster: ClusterEntry
    user: UserEntry = field(default_factory=UserEntry)
    namespace: Optional[str] = None


class KubeConfig:
    def __init__(self, raw: Dict[str, Any], source: Optional[Path] = None):
        self.source = source
        self.current_context: Optional[str] = raw.get("current-context") or None
        self._contexts = self._index(raw.get("contexts"), "context")
        self._clusters = self._index(raw.get("clusters"), "cluster")
        self._users = self._index(raw.get("users"), "user")

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "KubeConfig":
        path = Path(path) if path else default_kubeconfig_path()
        if not path.exists():
            logger.warning(f"No kubeconfig found at {path}")
            return cls({}, path)
        try:
            raw = YAML(typ="safe").load(path.read_text(encoding="utf-8")) or {}
        except (OSError, YAMLError) as e:
            raise ConfigError(f"Could not read kubeconfig {path}: {e}")
        if not isinstance(raw, dict):
            raise ConfigError(f"Kubeconfig {path} must be a mapping")
        return cls(raw, path)

    @staticmethod
    def _index(entries: Optional[List[Dict[str, Any]]], key: str) -> Dict[str, Dict[str, Any]]:
        indexed = {}
        for entry in entries or []:
            if isinstance(entry, dict) and entry.get("name"):
                indexed[entry["name"]] = entry.get(key) or {}
        return indexed

    def context_names(self) -> List[str]:
        return sorted(self._contexts)

    def has_context(self, name: str) -> bool:
        return name in self._contexts

    def server_for(self, name: str) -> Optional[str]:
        """API server address of a context, or None if it names no known cluster."""
        ctx = self._contexts.get(name) or {}
        cluster = self._clusters.get(ctx.get("cluster", ""))
        return cluster.get("server") if cluster else None

    def resolve(self, name: str) -> KubeContext:
        if name not in self._contexts:
            raise NoContextError(f"Unknown context '{name}'")
        ctx = self._contexts[name]
        cluster_raw = self._clusters.get(ctx.get("cluster", ""))
        if not cluster_raw or not cluster_raw.get("server"):
            raise ConfigError(f"Context '{name}' has no cluster with a server address")

        cluster = ClusterEntry(
            server=str(cluster_raw["server"]).rstrip("/"),
            certificate_authority=cluster_raw.get("certificate-authority"),
            certificate_authority_data=cluster_raw.get("certificate-authority-data"),
            insecure_skip_tls_verify=bool(cluster_raw.get("insecure-skip-tls-verify", False)),
        )
        user_raw = self._users.get(ctx.get("user", ""), {})
        user = UserEntry(
            token=user_raw.get("token"),
            client_certificate=user_raw.get("client-certificate"),
            client_certificate_data=user_raw.get("client-certificate-data"),
            client_key=user_raw.get("client-key"),
            client_key_data=user_raw.get("client-key-data"),
            username=user_raw.get("username"),
            password=user_raw.get("password"),
        )
        return KubeContext(name=name, cluster=cluster, user=user, namespace=ctx.get("namespace"))
