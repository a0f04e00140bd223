"""
The `logs` command: turns parsed options into one LogRequest per selected
object and runs them through the streamer in selection order.
"""

from dataclasses import dataclass
from typing import Optional

from kuberepl.core.output import OutputSink
from kuberepl.logs.request import (
    ConsoleOutput,
    EditorOutput,
    FileOutput,
    LogRequest,
    OutputMode,
    parse_duration,
    parse_timestamp,
)
from kuberepl.logs.streamer import LogStreamer, StreamOutcome


@dataclass
class LogOptions:
    container: Optional[str] = None
    follow: bool = False
    tail: Optional[int] = None
    previous: bool = False
    since: Optional[str] = None
    since_time: Optional[str] = None
    editor: bool = False
    editor_command: Optional[str] = None
    output: Optional[str] = None

    def output_mode(self) -> OutputMode:
        if self.output:
            return FileOutput(self.output)
        if self.editor:
            return EditorOutput(self.editor_command)
        return ConsoleOutput()


def run_logs(session, sink: OutputSink, options: LogOptions, streamer: Optional[LogStreamer] = None):
    streamer = streamer or LogStreamer(popen=session.popen)
    since = parse_duration(options.since) if options.since else None
    since_time = parse_timestamp(options.since_time) if options.since_time else None
    mode = options.output_mode()
    # Conflicting flags fail once, before any object is touched
    LogRequest.check_options(since, since_time, options.follow, mode)

    def action(obj, out: OutputSink):
        request = LogRequest(
            target=obj,
            container=options.container,
            tail_lines=options.tail,
            since=since,
            since_time=since_time,
            follow=options.follow,
            previous=options.previous,
            output=mode,
        )
        if streamer.stream(request, session, out) is StreamOutcome.CANCELLED:
            out.writeln("")
            out.writeln("Log streaming cancelled")

    return session.selection.apply_to_selection(sink, session.config.range_separator, action)
