"""
`port-forward` and `port-forwards`: start a forward to the selected pod and
list, inspect or stop running forwards by their display index.
"""

from typing import List, Optional

from kuberepl.cli.formatter import KubeFormatter
from kuberepl.core.confirm import ask
from kuberepl.core.errors import ForwardNotFoundError, NoSelectionError
from kuberepl.core.output import OutputSink

formatter = KubeFormatter()


def start_forward(session, sink: OutputSink, ports: List[str]):
    pod = session.selection.current_pod()
    if pod is None:
        raise NoSelectionError("No active pod (select a single pod first)")
    context = session.require_context()
    handle = session.forwards.start(pod.name, pod.namespace or "default", context, ports)
    sink.writeln(f"Forwarding port(s): {', '.join(ports)} (index {handle.index})")
    return handle


def port_forwards(session, sink: OutputSink, action: str = "list", index: Optional[int] = None):
    supervisor = session.forwards
    if index is None:
        if action != "list":
            sink.writeln(f"'{action}' needs an index (try without args to get a list)")
            return
        forwards = supervisor.list()
        if not forwards:
            sink.writeln("No active port forwards")
            return
        sink.render(formatter.forwards_table(forwards))
        return

    forward = supervisor.get(index)
    if forward is None:
        raise ForwardNotFoundError(index)
    summary = f"Pod: {forward.pod}, Port(s): {', '.join(forward.ports)}"

    if action == "stop":
        if not ask(sink, f"Stop port-forward: {summary}  [y/N]? ", session.cancel_token):
            sink.writeln("Not stopping")
            return
        supervisor.stop(index)
        sink.writeln("Stopped")
    elif action == "output":
        sink.writeln(f"{summary} Output:")
        sink.write(forward.output.snapshot())
        sink.writeln("")
    else:
        sink.writeln(f"{summary} [{forward.status()}]")
