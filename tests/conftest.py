"""
Shared fakes: an in-process cluster client, scripted child processes, and a
Session wired to both so tests exercise the real command code paths.
"""

import io
import threading

import pytest

from kuberepl.client.cluster import ApiStatus, LogStream
from kuberepl.core.config import SessionConfig
from kuberepl.core.errors import TransportError
from kuberepl.core.kubeconfig import KubeConfig
from kuberepl.core.models import ObjKind, SelectedObject
from kuberepl.core.output import BufferSink
from kuberepl.core.session import Session

KUBECONFIG = {
    "current-context": "dev",
    "contexts": [
        {"name": "dev", "context": {"cluster": "dev-cluster", "user": "dev-user", "namespace": "web"}},
        {"name": "prod", "context": {"cluster": "prod-cluster", "user": "dev-user"}},
    ],
    "clusters": [
        {"name": "dev-cluster", "cluster": {"server": "https://dev.example:6443/", "insecure-skip-tls-verify": True}},
        {"name": "prod-cluster", "cluster": {"server": "https://prod.example:6443"}},
    ],
    "users": [{"name": "dev-user", "user": {"token": "s3cr3t"}}],
}


def pod(name, namespace="prod", containers=("app",)):
    return SelectedObject(ObjKind.POD, name, namespace, tuple(containers))


def pod_item(name, namespace="default", containers=("app",), phase="Running"):
    return {
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"containers": [{"name": c} for c in containers], "nodeName": "node-1"},
        "status": {"phase": phase, "containerStatuses": [{"name": c, "ready": True} for c in containers]},
    }


class FakeClient:
    """Records every call; answers from dictionaries keyed by path."""

    def __init__(self):
        self.responses = {}
        self.streams = {}
        self.delete_status = ApiStatus(200, {"status": "Success"})
        self.calls = []

    def get(self, path, timeout=20.0):
        self.calls.append(("get", path))
        if path not in self.responses:
            raise TransportError(f"404 from {path}: not found", status=404)
        return self.responses[path]

    def get_stream(self, path, timeout, follow):
        self.calls.append(("stream", path, timeout, follow))
        source = self.streams.get(path, self.streams.get("*"))
        if source is None:
            raise TransportError(f"404 from {path}: not found", status=404)
        return source if isinstance(source, LogStream) else LogStream(iter(source))

    def delete(self, path, body=None, confirm=True):
        self.calls.append(("delete", path, body))
        return self.delete_status


class FakeProcess:
    def __init__(self, argv, output=b"", exit_code=0, **kwargs):
        self.argv = argv
        self.exit_code = exit_code
        self.kwargs = kwargs
        self.stdout = io.BytesIO(output) if kwargs.get("stdout") is not None else None
        self.returncode = None
        self.terminated = False
        self.killed = False

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def kill(self):
        self.killed = True
        self.returncode = -9

    def wait(self, timeout=None):
        if self.returncode is None:
            self.returncode = self.exit_code
        return self.returncode


class FakePopen:
    """Stands in for subprocess.Popen and remembers every process it made."""

    def __init__(self, output=b"", error=None, exit_code=0):
        self.output = output
        self.error = error
        self.exit_code = exit_code
        self.processes = []

    def __call__(self, argv, **kwargs):
        if self.error is not None:
            raise self.error
        proc = FakeProcess(argv, self.output, self.exit_code, **kwargs)
        self.processes.append(proc)
        return proc


def blocking_chunks(chunks, release: threading.Event):
    """Yields `chunks`, then blocks like a followed stream until released."""
    yield from chunks
    release.wait(5)


@pytest.fixture
def sink():
    return BufferSink()


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def popen():
    return FakePopen()


@pytest.fixture
def session(client, popen, sink, tmp_path):
    config = SessionConfig(path=tmp_path / "config.yaml")
    s = Session(KubeConfig(KUBECONFIG), config, sink,
                client_factory=lambda ctx, workdir: client, popen=popen)
    s.set_context("dev")
    yield s
    s.close()
