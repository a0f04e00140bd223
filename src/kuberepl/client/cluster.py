#!/usr/bin/env python3
"""
KUBEREPL CLUSTER CLIENT
-----------------------
Thin REST client for one kubeconfig context. The shell only ever builds
path strings; this module turns them into authenticated HTTP calls and maps
every failure onto TransportError.

Author: KubeRepl Team
Date: 2026-10-18
"""

import base64
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional

import requests

from kuberepl.core.errors import TransportError
from kuberepl.core.kubeconfig import KubeContext

logger = logging.getLogger("kuberepl.client")

DEFAULT_TIMEOUT = 20.0


@dataclass
class ApiStatus:
    code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.code < 300


class LogStream:
    """
    Byte stream over an iterator of chunks. Exposes read(n) and readline()
    so file and console consumers can use whichever granularity they need.
    """

    def __init__(self, chunks: Iterator[bytes], on_close: Optional[Callable[[], None]] = None):
        self._chunks = chunks
        self._buffer = b""
        self._eof = False
        self._on_close = on_close

    def _fill(self) -> bool:
        if self._eof:
            return False
        try:
            chunk = next(self._chunks)
        except StopIteration:
            self._eof = True
            return False
        except requests.RequestException as e:
            self._eof = True
            raise TransportError(f"Stream interrupted: {e}")
        self._buffer += chunk
        return True

    def read(self, size: int = -1) -> bytes:
        """Returns up to `size` bytes; b"" only at end of stream."""
        if size is None or size < 0:
            while self._fill():
                pass
            data, self._buffer = self._buffer, b""
            return data
        while not self._buffer and self._fill():
            pass
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def readline(self) -> bytes:
        """Returns one line including its newline; the last line may lack one."""
        while b"\n" not in self._buffer and self._fill():
            pass
        idx = self._buffer.find(b"\n")
        if idx < 0:
            data, self._buffer = self._buffer, b""
            return data
        data, self._buffer = self._buffer[:idx + 1], self._buffer[idx + 1:]
        return data

    def close(self):
        self._eof = True
        if self._on_close:
            self._on_close()
            self._on_close = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class ClusterClient:
    """
    Authenticated access to a single API server.

    Args:
        context: Resolved kubeconfig context.
        workdir: Directory for certificate material that arrives inline
            (base64 `*-data` fields) and must exist as files for requests.
    """

    def __init__(self, context: KubeContext, workdir: Path):
        self.context = context
        self.base_url = context.cluster.server
        self.http = requests.Session()
        self._configure_tls(Path(workdir))
        self._configure_auth(Path(workdir))

    def _materialise(self, workdir: Path, label: str, data: str) -> str:
        target = workdir / f"{self.context.name}-{label}.pem".replace("/", "_")
        target.write_bytes(base64.b64decode(data))
        target.chmod(0o600)
        return str(target)

    def _configure_tls(self, workdir: Path):
        cluster = self.context.cluster
        if cluster.insecure_skip_tls_verify:
            self.http.verify = False
        elif cluster.certificate_authority_data:
            self.http.verify = self._materialise(workdir, "ca", cluster.certificate_authority_data)
        elif cluster.certificate_authority:
            self.http.verify = cluster.certificate_authority

    def _configure_auth(self, workdir: Path):
        user = self.context.user
        if user.token:
            self.http.headers["Authorization"] = f"Bearer {user.token}"
        elif user.username and user.password:
            self.http.auth = (user.username, user.password)

        cert = user.client_certificate
        key = user.client_key
        if user.client_certificate_data:
            cert = self._materialise(workdir, "cert", user.client_certificate_data)
        if user.client_key_data:
            key = self._materialise(workdir, "key", user.client_key_data)
        if cert and key:
            self.http.cert = (cert, key)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _raise_for_status(self, response: requests.Response, path: str):
        if response.ok:
            return
        message = response.reason
        try:
            message = response.json().get("message", message)
        except ValueError:
            pass
        raise TransportError(f"{response.status_code} from {path}: {message}", status=response.status_code)

    def get(self, path: str, timeout: Optional[float] = DEFAULT_TIMEOUT) -> Dict[str, Any]:
        logger.debug(f"GET {path}")
        try:
            response = self.http.get(self._url(path), timeout=timeout)
        except requests.RequestException as e:
            raise TransportError(f"Request to {path} failed: {e}")
        self._raise_for_status(response, path)
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {path}: {e}")

    def get_stream(self, path: str, timeout: Optional[float], follow: bool) -> LogStream:
        """
        Opens a streaming GET. `timeout` of None blocks indefinitely, which is
        what following a log needs; `follow` only affects chunking.
        """
        logger.debug(f"STREAM {path} (timeout={timeout}, follow={follow})")
        try:
            response = self.http.get(self._url(path), timeout=timeout, stream=True)
        except requests.RequestException as e:
            raise TransportError(f"Request to {path} failed: {e}")
        if not response.ok:
            try:
                self._raise_for_status(response, path)
            finally:
                response.close()
        chunk_size = None if follow else 1024
        return LogStream(response.iter_content(chunk_size=chunk_size), on_close=response.close)

    def delete(self, path: str, body: Optional[str] = None, confirm: bool = True) -> ApiStatus:
        """
        Issues a DELETE. Non-2xx answers are returned, not raised, so the
        caller can report what the server said about this one object.
        `confirm` is the caller's assertion that the operator agreed.
        """
        if not confirm:
            raise TransportError(f"Refusing to delete {path} without confirmation")
        logger.debug(f"DELETE {path}")
        headers = {"Content-Type": "application/json"} if body else {}
        try:
            response = self.http.delete(self._url(path), data=body, headers=headers, timeout=DEFAULT_TIMEOUT)
        except requests.RequestException as e:
            raise TransportError(f"Delete of {path} failed: {e}")
        try:
            payload = response.json()
        except ValueError:
            payload = response.text
        return ApiStatus(code=response.status_code, body=payload)


def dumps_body(body: Dict[str, Any]) -> str:
    return json.dumps(body, separators=(",", ":"))
