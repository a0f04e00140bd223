#!/usr/bin/env python3
"""
KUBEREPL OUTPUT SINKS
---------------------
Every piece of operator-facing text goes through an OutputSink. The console
sink renders through Rich; the buffer sink keeps everything in memory so
command logic can be exercised without a terminal.
"""

import io
from typing import Iterable, List, Optional

from rich.console import Console


class OutputSink:
    """Line-oriented writer plus the one interactive primitive: reading a line."""

    def write(self, text: str):
        raise NotImplementedError

    def writeln(self, text: str = ""):
        self.write(text + "\n")

    def render(self, renderable):
        """Writes a Rich renderable (tables, panels). Plain sinks fall back to str()."""
        self.writeln(str(renderable))

    def read_line(self, prompt: str = "") -> Optional[str]:
        """Returns one line of operator input, or None on EOF."""
        raise NotImplementedError


class ConsoleSink(OutputSink):
    """Sink backed by a Rich console (stdout by default)."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def write(self, text: str):
        # Log lines and object names must not be interpreted as markup
        self.console.print(text, end="", markup=False, highlight=False, soft_wrap=True)
        self.console.file.flush()

    def render(self, renderable):
        self.console.print(renderable)

    def read_line(self, prompt: str = "") -> Optional[str]:
        try:
            return self.console.input(prompt, markup=False)
        except EOFError:
            return None


class BufferSink(OutputSink):
    """In-memory sink. Scripted `inputs` answer read_line calls in order."""

    def __init__(self, inputs: Optional[Iterable[str]] = None):
        self.chunks: List[str] = []
        self.prompts: List[str] = []
        self._inputs = list(inputs or [])

    def write(self, text: str):
        self.chunks.append(text)

    def render(self, renderable):
        buffer = io.StringIO()
        Console(width=200, file=buffer, color_system=None).print(renderable)
        self.chunks.append(buffer.getvalue())

    def read_line(self, prompt: str = "") -> Optional[str]:
        self.prompts.append(prompt)
        self.write(prompt)
        if not self._inputs:
            return None
        return self._inputs.pop(0)

    @property
    def text(self) -> str:
        return "".join(self.chunks)

    def lines(self) -> List[str]:
        return self.text.splitlines()

