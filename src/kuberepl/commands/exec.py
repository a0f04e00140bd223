"""
The `exec` command: runs `kubectl exec` against each selected pod, either in
the foreground attached to this terminal or in a new terminal window.
"""

import logging
from typing import List, Optional

from kuberepl.core.config import DEFAULT_TERMINAL
from kuberepl.core.errors import ExecError
from kuberepl.core.models import SelectedObject
from kuberepl.core.output import OutputSink
from kuberepl.logs.streamer import pick_container

logger = logging.getLogger("kuberepl.commands.exec")


def it_flag(tty: bool, stdin: bool) -> Optional[str]:
    return {(True, True): "-it", (True, False): "-t", (False, True): "-i"}.get((tty, stdin))


def kubectl_exec_args(kubectl: str, obj: SelectedObject, context: str, command: List[str],
                      container: Optional[str], tty: bool = True, stdin: bool = True) -> List[str]:
    args = [kubectl, "--namespace", obj.namespace or "default", "--context", context, "exec"]
    flag = it_flag(tty, stdin)
    if flag:
        args.append(flag)
    args.append(obj.name)
    if container:
        args.extend(["-c", container])
    args.append("--")
    args.extend(command)
    return args


def exec_on_pod(session, obj: SelectedObject, sink: OutputSink, command: List[str],
                container: Optional[str] = None, terminal: Optional[str] = None,
                use_terminal: bool = False, tty: bool = True, stdin: bool = True):
    if not obj.is_pod:
        sink.writeln("Exec only possible on pods")
        return
    context = session.require_context()
    if container is None and len(obj.containers) > 1:
        container = pick_container(obj, sink)
    args = kubectl_exec_args(session.config.kubectl, obj, context, command, container, tty, stdin)

    try:
        if use_terminal:
            term = terminal or session.config.terminal or DEFAULT_TERMINAL
            sink.writeln(f"Starting on {obj.name} in terminal")
            session.popen(term.split() + args)
            return
        code = session.popen(args).wait()
    except FileNotFoundError as e:
        raise ExecError(f"Could not find {e.filename or args[0]} binary. Is it in your PATH?")
    except OSError as e:
        raise ExecError(f"Could not launch exec: {e}")
    if code != 0:
        logger.debug(f"{args} exited with {code}")
        sink.writeln(f"kubectl exited abnormally ({code})")
