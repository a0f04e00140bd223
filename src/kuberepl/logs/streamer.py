#!/usr/bin/env python3
"""
KUBEREPL LOG STREAMER
---------------------
Fetches container logs and delivers them to one of three sinks:

1. Console: a background reader pushes lines into a bounded queue and the
   foreground drains it with a one second poll, so an interrupt stops a
   follow promptly even while the network read is blocked.
2. File: bytes are copied chunk by chunk into a templated path.
3. Editor: logs land in a session temp file which is then opened in the
   operator's editor (fire-and-forget).

Cancellation is cooperative everywhere: the session's token is checked at
every poll or chunk boundary and the transport is never torn down mid-read.

Author: KubeRepl Team
Date: 2026-10-18
"""

import logging
import os
import queue
import subprocess
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from kuberepl.core.cancel import CancellationToken
from kuberepl.core.errors import (
    KubeReplError,
    LogIOError,
    NoContainerError,
    NoEditorConfiguredError,
    TransportError,
)
from kuberepl.core.models import SelectedObject
from kuberepl.core.output import OutputSink
from kuberepl.logs.request import ConsoleOutput, EditorOutput, FileOutput, LogRequest, template_fields
from kuberepl.logs.template import expand_path_template

logger = logging.getLogger("kuberepl.logs")

CHUNK_SIZE = 1024
POLL_INTERVAL = 1.0
QUEUE_DEPTH = 512

_CLOSED = object()


class StreamOutcome(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def pick_container(obj: SelectedObject, sink: OutputSink, explicit: Optional[str] = None) -> str:
    """
    Explicit choice wins; otherwise a lone container, otherwise the first
    declared container with a warning.
    """
    if explicit:
        return explicit
    if not obj.containers:
        raise NoContainerError(f"{obj.qualified_name()} has no containers")
    if len(obj.containers) > 1:
        logger.info(f"{obj.name} has containers {list(obj.containers)}, using {obj.containers[0]}")
        sink.writeln("Pod has multiple containers, picking the first one")
    return obj.containers[0]


def copy_to_file(stream, path: Path, token: CancellationToken, chunk_size: int = CHUNK_SIZE) -> StreamOutcome:
    """
    Copies `stream` into `path` until EOF or cancellation. Whatever was read
    before a cancellation is flushed intact.
    """
    try:
        if path.parent and not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as fh:
            while not token.cancelled:
                data = stream.read(chunk_size)
                if not data:
                    return StreamOutcome.COMPLETED
                fh.write(data)
            return StreamOutcome.CANCELLED
    except OSError as e:
        raise LogIOError(f"Error writing logs to {path}: {e}")


def pump_lines(stream, channel: "queue.Queue", token: CancellationToken, consumer_gone: threading.Event):
    """
    Background half of console streaming: reads newline-terminated lines
    and hands them to the foreground. Always finishes by closing the channel.
    """
    def hand_off(item) -> bool:
        while not consumer_gone.is_set():
            try:
                channel.put(item, timeout=POLL_INTERVAL)
                return True
            except queue.Full:
                if token.cancelled:
                    return False
        return False

    try:
        while True:
            line = stream.readline()
            if not line:
                break
            if not hand_off(line):
                return
    except KubeReplError as e:
        hand_off(e)
    except Exception as e:
        # A read racing with close() from the foreground lands here
        if not consumer_gone.is_set():
            logger.debug(f"Log reader stopped: {e!r}")
            hand_off(TransportError(f"Log stream failed: {e}"))
    hand_off(_CLOSED)


def drain_to_sink(channel: "queue.Queue", sink: OutputSink, token: CancellationToken,
                  poll_interval: float = POLL_INTERVAL) -> StreamOutcome:
    """Foreground half of console streaming."""
    while not token.cancelled:
        try:
            item = channel.get(timeout=poll_interval)
        except queue.Empty:
            continue
        if item is _CLOSED:
            return StreamOutcome.COMPLETED
        if isinstance(item, KubeReplError):
            raise item
        sink.write(item.decode("utf-8", errors="replace"))
    return StreamOutcome.CANCELLED


class LogStreamer:
    """
    Args:
        popen: Process launcher used for the editor; injectable for tests.
        poll_interval: Receive timeout of the console consumer loop.
    """

    def __init__(self, popen: Callable = subprocess.Popen, poll_interval: float = POLL_INTERVAL):
        self.popen = popen
        self.poll_interval = poll_interval

    def stream(self, request: LogRequest, session, sink: OutputSink) -> StreamOutcome:
        obj = request.target
        if not obj.is_pod:
            raise NoContainerError(f"Logs only available on a pod, not {obj.kind.display}")

        container = pick_container(obj, sink, request.container)
        output = request.output

        # Resolve everything that can fail locally before touching the network
        file_path = None
        editor = None
        if isinstance(output, FileOutput):
            file_path = Path(expand_path_template(output.template, template_fields(obj)))
        elif isinstance(output, EditorOutput):
            editor = self.resolve_editor(output.command, session.config.editor)

        client = session.client()
        log_stream = client.get_stream(request.path(container), request.timeout, request.follow)
        token = session.cancel_token
        token.reset()
        logger.debug(f"Streaming logs of {obj.name}/{container} ({type(output).__name__})")

        try:
            if isinstance(output, FileOutput):
                outcome = copy_to_file(log_stream, file_path, token)
                if outcome is StreamOutcome.CANCELLED:
                    sink.writeln(f"Cancelled, partial logs left in {file_path}")
                else:
                    sink.writeln(f"Wrote logs to {file_path}")
                return outcome
            if isinstance(output, EditorOutput):
                return self._to_editor(log_stream, obj, container, editor, session, sink)
            return self._to_console(log_stream, sink, token)
        finally:
            log_stream.close()

    @staticmethod
    def resolve_editor(override: Optional[str], configured: Optional[str]) -> str:
        editor = override or configured or os.environ.get("EDITOR")
        if not editor or not editor.strip():
            raise NoEditorConfiguredError()
        return editor

    def _to_editor(self, log_stream, obj: SelectedObject, container: str, editor: str,
                   session, sink: OutputSink) -> StreamOutcome:
        stamp = datetime.now().astimezone().isoformat()
        path = Path(session.temp_dir) / f"{obj.name}_{container}_{stamp}.log"
        outcome = copy_to_file(log_stream, path, session.cancel_token)
        if outcome is StreamOutcome.CANCELLED:
            sink.writeln("Log download cancelled, not starting editor")
            return outcome

        sink.writeln("Logs downloaded, starting editor")
        argv = editor.split() + [str(path)]
        try:
            self.popen(argv)
        except OSError as e:
            raise LogIOError(f"Could not start editor '{argv[0]}': {e}")
        logger.debug(f"Started editor {argv}")
        return outcome

    def _to_console(self, log_stream, sink: OutputSink, token: CancellationToken) -> StreamOutcome:
        channel: "queue.Queue" = queue.Queue(maxsize=QUEUE_DEPTH)
        consumer_gone = threading.Event()
        reader = threading.Thread(
            target=pump_lines,
            args=(log_stream, channel, token, consumer_gone),
            name="kuberepl-log-reader",
            daemon=True,
        )
        reader.start()
        try:
            return drain_to_sink(channel, sink, token, self.poll_interval)
        finally:
            consumer_gone.set()
