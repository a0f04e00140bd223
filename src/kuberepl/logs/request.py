#!/usr/bin/env python3
"""
KUBEREPL LOG REQUEST
--------------------
Everything a log fetch needs, validated once at construction so the
streamer never has to second-guess its input.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Union
from urllib.parse import quote

from kuberepl.core.errors import InvalidRequestError
from kuberepl.core.models import SelectedObject

ONE_SHOT_TIMEOUT = 20.0

_DURATION_PART = re.compile(r"(\d+)\s*([a-zA-Z]+)")
_UNITS = {
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "d": 86400, "day": 86400, "days": 86400,
}


def parse_duration(text: str) -> timedelta:
    """
    Parses human durations such as '5s', '2m', '3m5s' or '1h2min5sec'.
    """
    compact = (text or "").strip()
    if not compact:
        raise InvalidRequestError("Empty duration")
    total = 0
    consumed = 0
    for match in _DURATION_PART.finditer(compact):
        if compact[consumed:match.start()].strip():
            break
        unit = match.group(2).lower()
        if unit not in _UNITS:
            raise InvalidRequestError(f"Unknown duration unit '{unit}' in '{text}'")
        total += int(match.group(1)) * _UNITS[unit]
        consumed = match.end()
    if consumed == 0 or compact[consumed:].strip():
        raise InvalidRequestError(f"Invalid duration '{text}' (examples: 5s, 2m, 3m5s, 1h2min5sec)")
    return timedelta(seconds=total)


def parse_timestamp(text: str) -> datetime:
    """Parses an RFC3339 timestamp such as 1996-12-19T16:39:57-08:00."""
    try:
        value = datetime.fromisoformat(text.strip())
    except ValueError:
        raise InvalidRequestError(f"Invalid RFC3339 date '{text}' (example: 1996-12-19T16:39:57-08:00)")
    if value.tzinfo is None:
        raise InvalidRequestError(f"Date '{text}' needs a UTC offset")
    return value


@dataclass(frozen=True)
class ConsoleOutput:
    pass


@dataclass(frozen=True)
class FileOutput:
    template: str


@dataclass(frozen=True)
class EditorOutput:
    command: Optional[str] = None   # Overrides the session and $EDITOR choices


OutputMode = Union[ConsoleOutput, FileOutput, EditorOutput]


@dataclass(frozen=True)
class LogRequest:
    target: SelectedObject
    container: Optional[str] = None
    tail_lines: Optional[int] = None
    since: Optional[timedelta] = None
    since_time: Optional[datetime] = None
    follow: bool = False
    previous: bool = False
    output: OutputMode = field(default_factory=ConsoleOutput)

    def __post_init__(self):
        self.check_options(self.since, self.since_time, self.follow, self.output)
        if self.tail_lines is not None and self.tail_lines < 0:
            raise InvalidRequestError("--tail must be a non-negative number")

    @staticmethod
    def check_options(since, since_time, follow: bool, output: OutputMode):
        """Rejects option combinations that cannot be honoured together."""
        if since is not None and since_time is not None:
            raise InvalidRequestError("--since and --since-time are mutually exclusive")
        if follow and not isinstance(output, ConsoleOutput):
            raise InvalidRequestError("--follow cannot be combined with --editor or --output")

    @property
    def timeout(self) -> Optional[float]:
        """Following runs until cancelled; one-shot fetches must not hang."""
        return None if self.follow else ONE_SHOT_TIMEOUT

    def since_seconds(self, now: Optional[datetime] = None) -> Optional[int]:
        if self.since is not None:
            return int(self.since.total_seconds())
        if self.since_time is not None:
            now = now or datetime.now(timezone.utc)
            return max(0, int((now - self.since_time).total_seconds()))
        return None

    def query_args(self, now: Optional[datetime] = None) -> List[str]:
        args: List[str] = []
        if self.follow:
            args.append("follow=true")
        if self.previous:
            args.append("previous=true")
        if self.tail_lines is not None:
            args.append(f"tailLines={self.tail_lines}")
        seconds = self.since_seconds(now)
        if seconds is not None:
            args.append(f"sinceSeconds={seconds}")
        return args

    def path(self, container: str, now: Optional[datetime] = None) -> str:
        namespace = self.target.namespace or "default"
        args = [f"container={quote(container)}"] + self.query_args(now)
        return f"/api/v1/namespaces/{namespace}/pods/{self.target.name}/log?{'&'.join(args)}"


def template_fields(obj: SelectedObject, now: Optional[datetime] = None) -> Dict[str, str]:
    return {
        "name": obj.name,
        "namespace": obj.namespace or "unknown",
        "time": (now or datetime.now().astimezone()).isoformat(),
    }
