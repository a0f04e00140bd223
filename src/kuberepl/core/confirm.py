"""
Safety gate for destructive actions. Every object of a range is asked about
separately; a decline only skips that one object.
"""

from typing import Optional

from kuberepl.core.cancel import CancellationToken
from kuberepl.core.models import SelectedObject
from kuberepl.core.output import OutputSink

AFFIRMATIVE = ("y", "yes")


def ask(sink: OutputSink, prompt: str, token: Optional[CancellationToken] = None) -> bool:
    """
    True only for an explicit y/yes. EOF on input, or an interrupt while the
    prompt was open (`token` set), counts as a refusal.
    """
    answer = sink.read_line(prompt)
    if answer is None:
        sink.writeln("")
        return False
    if token is not None and token.cancelled:
        sink.writeln("Interrupted")
        return False
    return answer.strip().lower() in AFFIRMATIVE


def confirm_destructive(obj: SelectedObject, sink: OutputSink, verb: str = "Delete",
                        token: Optional[CancellationToken] = None) -> bool:
    return ask(sink, f"{verb} {obj.qualified_name()} [y/N]? ", token)
