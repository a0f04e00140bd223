#!/usr/bin/env python3
"""
KUBEREPL SESSION
----------------
The process-lifetime state of one shell: where the operator is, what is
selected, which port-forwards are running, the cancellation token shared by
foreground operations, and the temp directory that editor log files live in.

A Session is a context manager; leaving it stops every forward and removes
the temp directory.

Author: KubeRepl Team
Date: 2026-10-18
"""

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Optional

from kuberepl.client.cluster import ClusterClient
from kuberepl.core.cancel import CancellationToken
from kuberepl.core.config import SessionConfig
from kuberepl.core.errors import ForwardError, NoContextError
from kuberepl.core.kubeconfig import KubeConfig
from kuberepl.core.output import OutputSink
from kuberepl.forward.supervisor import PortForwardSupervisor
from kuberepl.selection.model import SelectionModel

logger = logging.getLogger("kuberepl.session")


class Session:
    def __init__(self, kubeconfig: KubeConfig, config: SessionConfig, sink: OutputSink,
                 client_factory: Callable = ClusterClient, popen: Callable = subprocess.Popen):
        self.kubeconfig = kubeconfig
        self.config = config
        self.sink = sink
        self.popen = popen
        self.selection = SelectionModel()
        self.cancel_token = CancellationToken()
        self.forwards = PortForwardSupervisor(kubectl=config.kubectl, popen=popen)
        self._tempdir = tempfile.TemporaryDirectory(prefix="kuberepl-")
        self.temp_dir = Path(self._tempdir.name)
        self._client_factory = client_factory
        self._client = None
        self.closed = False

    @property
    def context_name(self) -> Optional[str]:
        return self.selection.context

    @property
    def namespace(self) -> Optional[str]:
        return self.selection.namespace

    def set_context(self, name: str) -> bool:
        """Switches to `name`; returns False if it was already current."""
        if not self.kubeconfig.has_context(name):
            raise NoContextError(f"Unknown context '{name}'")
        if not self.selection.set_context(name):
            return False
        self._client = None
        logger.info(f"Switched to context {name}")
        return True

    def set_namespace(self, name: Optional[str]):
        self.selection.set_namespace(name)

    def require_context(self) -> str:
        if not self.selection.context:
            raise NoContextError()
        return self.selection.context

    def client(self):
        """Client for the current context, created on first use."""
        context = self.require_context()
        if self._client is None:
            self._client = self._client_factory(self.kubeconfig.resolve(context), self.temp_dir)
        return self._client

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self.forwards.stop_all()
        except ForwardError as e:
            logger.error(f"Not every port-forward stopped cleanly: {e}")
        finally:
            self._tempdir.cleanup()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
