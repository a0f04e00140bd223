#!/usr/bin/env python3
"""
KUBEREPL PORT-FORWARD SUPERVISOR
--------------------------------
Starts `kubectl port-forward` processes in the background and keeps track
of them for the rest of the session.

Each forward gets a monotonically increasing internal id. Operators address
forwards by their position in the current list; that position is turned
into an id at call time so a stop never hits the wrong process after the
list has shifted.

Author: KubeRepl Team
Date: 2026-10-18
"""

import codecs
import itertools
import logging
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from kuberepl.core.errors import ForwardError, ForwarderNotFoundError, ForwardNotFoundError
from kuberepl.forward.buffer import DEFAULT_CAPACITY, OutputBuffer
from kuberepl.forward.ports import validate_port_specs

logger = logging.getLogger("kuberepl.forward")

READ_SIZE = 128
STOP_TIMEOUT = 5.0


@dataclass
class PortForward:
    forward_id: int
    pod: str
    namespace: str
    context: str
    ports: List[str]
    process: Any
    output: OutputBuffer = field(default_factory=OutputBuffer)

    def status(self) -> str:
        """'Running', or how the child exited. Exited forwards stay listed until stopped."""
        code = self.process.poll()
        if code is None:
            return "Running"
        return f"Exited with code {code}"


@dataclass(frozen=True)
class ForwardHandle:
    index: int
    forward_id: int


@dataclass(frozen=True)
class ForwardInfo:
    index: int
    pod: str
    ports: List[str]
    status: str


def capture_output(stream, buffer: OutputBuffer, label: str):
    """Copies the child's stdout into `buffer` until the pipe closes."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    read = getattr(stream, "read1", stream.read)
    try:
        while True:
            chunk = read(READ_SIZE)
            if not chunk:
                break
            buffer.append(decoder.decode(chunk))
        buffer.append(decoder.decode(b"", final=True))
    except (OSError, ValueError) as e:
        logger.warning(f"Error reading output of {label}: {e}")
    finally:
        try:
            stream.close()
        except OSError:
            pass


class PortForwardSupervisor:
    """
    Args:
        kubectl: Binary used to forward.
        popen: Process launcher; injectable for tests.
        buffer_capacity: Characters of output kept per forward.
    """

    def __init__(self, kubectl: str = "kubectl", popen: Callable = subprocess.Popen,
                 buffer_capacity: int = DEFAULT_CAPACITY, stop_timeout: float = STOP_TIMEOUT):
        self.kubectl = kubectl
        self.popen = popen
        self.buffer_capacity = buffer_capacity
        self.stop_timeout = stop_timeout
        self._forwards: Dict[int, PortForward] = {}
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._forwards)

    def build_command(self, pod: str, namespace: str, context: str, ports: List[str]) -> List[str]:
        return [self.kubectl, "--namespace", namespace, "--context", context, "port-forward", pod, *ports]

    def start(self, pod: str, namespace: str, context: str, port_specs: List[str]) -> ForwardHandle:
        ports = validate_port_specs(port_specs)
        argv = self.build_command(pod, namespace, context, ports)
        try:
            process = self.popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except FileNotFoundError:
            raise ForwarderNotFoundError(self.kubectl)
        except OSError as e:
            raise ForwardError(f"Couldn't execute {self.kubectl}, not forwarding. Error is: {e}")

        forward = PortForward(
            forward_id=next(self._ids),
            pod=pod,
            namespace=namespace,
            context=context,
            ports=list(ports),
            process=process,
            output=OutputBuffer(self.buffer_capacity),
        )
        if process.stdout is not None:
            threading.Thread(
                target=capture_output,
                args=(process.stdout, forward.output, f"port-forward to {pod}"),
                name=f"kuberepl-pf-{forward.forward_id}",
                daemon=True,
            ).start()

        self._forwards[forward.forward_id] = forward
        logger.info(f"Started port-forward {forward.forward_id} to {namespace}/{pod}: {', '.join(ports)}")
        return ForwardHandle(index=len(self._forwards) - 1, forward_id=forward.forward_id)

    def _id_at(self, index: int) -> Optional[int]:
        if index < 0:
            return None
        ids = list(self._forwards)
        return ids[index] if index < len(ids) else None

    def list(self) -> List[ForwardInfo]:
        return [
            ForwardInfo(index=i, pod=pf.pod, ports=list(pf.ports), status=pf.status())
            for i, pf in enumerate(self._forwards.values())
        ]

    def get(self, index: int) -> Optional[PortForward]:
        forward_id = self._id_at(index)
        return self._forwards.get(forward_id) if forward_id is not None else None

    def output(self, index: int) -> Optional[str]:
        forward = self.get(index)
        return forward.output.snapshot() if forward else None

    def stop(self, index: int):
        """Terminates the forward at `index`; later entries shift down by one."""
        forward_id = self._id_at(index)
        if forward_id is None:
            raise ForwardNotFoundError(index)
        self._stop_by_id(forward_id)

    def _stop_by_id(self, forward_id: int):
        forward = self._forwards[forward_id]
        process = forward.process
        try:
            if process.poll() is None:
                process.terminate()
                try:
                    process.wait(timeout=self.stop_timeout)
                except subprocess.TimeoutExpired:
                    logger.warning(f"Port-forward {forward_id} ignored terminate, killing it")
                    process.kill()
                    process.wait(timeout=self.stop_timeout)
        except ProcessLookupError:
            pass
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ForwardError(f"Failed to stop port-forward to {forward.pod}: {e}")
        del self._forwards[forward_id]
        logger.info(f"Stopped port-forward {forward_id} to {forward.pod}")

    def stop_all(self):
        """Stops every forward, reporting the first failure after trying them all."""
        first_error = None
        for forward_id in list(self._forwards):
            try:
                self._stop_by_id(forward_id)
            except ForwardError as e:
                logger.error(str(e))
                first_error = first_error or e
        if first_error:
            raise first_error
