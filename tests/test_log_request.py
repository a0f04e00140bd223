from datetime import datetime, timedelta, timezone

import pytest

from kuberepl.core.errors import InvalidRequestError, PathTemplateError
from kuberepl.logs.request import (
    ConsoleOutput,
    EditorOutput,
    FileOutput,
    LogRequest,
    parse_duration,
    parse_timestamp,
    template_fields,
)
from kuberepl.logs.template import expand_path_template

from conftest import pod


@pytest.mark.parametrize("text, seconds", [
    ("5s", 5),
    ("2m", 120),
    ("3m5s", 185),
    ("1h2min5sec", 3725),
    ("1d", 86400),
])
def test_parse_duration(text, seconds):
    assert parse_duration(text) == timedelta(seconds=seconds)


@pytest.mark.parametrize("text", ["", "5", "abc", "5x", "5s junk"])
def test_parse_duration_rejects(text):
    with pytest.raises(InvalidRequestError):
        parse_duration(text)


def test_parse_timestamp_requires_offset():
    assert parse_timestamp("1996-12-19T16:39:57-08:00").utcoffset() == timedelta(hours=-8)
    with pytest.raises(InvalidRequestError):
        parse_timestamp("1996-12-19T16:39:57")
    with pytest.raises(InvalidRequestError):
        parse_timestamp("yesterday")


def test_since_and_since_time_are_exclusive():
    with pytest.raises(InvalidRequestError):
        LogRequest(pod("web-1"), since=timedelta(seconds=5),
                   since_time=datetime.now(timezone.utc))


@pytest.mark.parametrize("output", [FileOutput("x.log"), EditorOutput()])
def test_follow_only_goes_to_console(output):
    with pytest.raises(InvalidRequestError):
        LogRequest(pod("web-1"), follow=True, output=output)


def test_timeout_depends_on_follow():
    assert LogRequest(pod("web-1"), follow=True).timeout is None
    assert LogRequest(pod("web-1")).timeout == 20.0


def test_path_carries_all_options():
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    request = LogRequest(pod("web-1"), follow=True, previous=True, tail_lines=50,
                         since_time=now - timedelta(minutes=2))
    assert request.path("app", now) == (
        "/api/v1/namespaces/prod/pods/web-1/log?container=app"
        "&follow=true&previous=true&tailLines=50&sinceSeconds=120"
    )


def test_default_output_is_console():
    assert LogRequest(pod("web-1")).output == ConsoleOutput()


def test_template_expansion():
    assert expand_path_template("{name}-{namespace}.log", {"name": "web-1", "namespace": "prod"}) == "web-1-prod.log"


@pytest.mark.parametrize("template", ["{bogus}.log", "{}.log", "{0}.log", "{name"])
def test_template_errors(template):
    with pytest.raises(PathTemplateError):
        expand_path_template(template, {"name": "web-1", "namespace": "prod"})


def test_template_fields_substitute_unknown_namespace():
    fields = template_fields(pod("web-1", namespace=None))
    assert fields["namespace"] == "unknown"
    assert fields["name"] == "web-1"
