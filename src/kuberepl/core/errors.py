#!/usr/bin/env python3
"""
KUBEREPL ERRORS
---------------
Exception hierarchy shared by every subsystem of the shell. All errors are
recovered at the command boundary by the dispatcher; none of them end the
session.

Author: KubeRepl Team
Date: 2026-10-18
"""

from typing import Optional


class KubeReplError(Exception):
    """Base class for every error the shell reports to the operator."""


class NoSelectionError(KubeReplError):
    def __init__(self, message: str = "No object selected (list objects and select one first)"):
        super().__init__(message)


class InvalidRangeError(KubeReplError):
    pass


class NoContextError(KubeReplError):
    def __init__(self, message: str = "No active context (use 'context <name>')"):
        super().__init__(message)


class ConfigError(KubeReplError):
    pass


class InvalidRequestError(KubeReplError):
    """Raised when a request is built from conflicting options."""


class NoContainerError(KubeReplError):
    pass


class PathTemplateError(KubeReplError):
    pass


class NoEditorConfiguredError(KubeReplError):
    def __init__(self, message: str = "No editor configured: pass --editor, 'set editor' or export EDITOR"):
        super().__init__(message)


class TransportError(KubeReplError):
    """A remote API or network failure, surfaced verbatim and never retried."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class LogIOError(KubeReplError):
    """Local file or process I/O failure."""


class ForwardError(KubeReplError):
    pass


class InvalidPortSpecError(ForwardError):
    pass


class ForwarderNotFoundError(ForwardError):
    def __init__(self, binary: str):
        super().__init__(f"Could not find {binary} binary. Is it in your PATH?")
        self.binary = binary


class ForwardNotFoundError(ForwardError):
    def __init__(self, index: int):
        super().__init__(f"Invalid port-forward index {index} (try 'port-forwards' to get a list)")
        self.index = index


class ExecError(KubeReplError):
    pass
