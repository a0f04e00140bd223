import os
import signal

import pytest

from kuberepl.cli.main import KubeReplCLI, build_arg_parser, expand_aliases, interrupts_cancel
from kuberepl.core.cancel import CancellationToken
from kuberepl.core.config import SessionConfig
from kuberepl.core.models import NoSelection, Range, Single
from kuberepl.core.output import BufferSink

from conftest import pod_item


@pytest.fixture
def cli(session, client):
    client.responses["/api/v1/pods"] = {"items": [pod_item(f"web-{i}") for i in range(4)]}
    return KubeReplCLI(session)


def test_listing_then_select_index(cli, session):
    cli.execute("pods")
    cli.execute("2")
    assert isinstance(session.selection.selection, Single)
    assert session.selection.selection.obj.name == "web-2"
    assert cli.prompt() == "[dev][none][web-2] > "


def test_bare_range_selects_in_listing_order(cli, session, sink):
    cli.execute("pods")
    cli.execute("3,0..2")
    selection = session.selection.selection
    assert isinstance(selection, Range)
    assert [o.name for o in selection.objects()] == ["web-0", "web-1", "web-3"]

    cli.execute("range")
    assert "web-3" in sink.text
    assert "[3 objects]" in cli.prompt()


def test_out_of_range_reported_not_raised(cli, session, sink):
    cli.execute("pods")
    cli.execute("1..9")
    assert "Error:" in sink.text
    assert session.selection.selection.objects() == ()


def test_select_without_listing(cli, sink):
    cli.execute("select 0")
    assert "No objects listed" in sink.text


def test_bad_usage_keeps_shell_alive(cli, sink):
    cli.execute("logs --tail lots")
    cli.execute("nonsense")
    cli.execute('describe "unterminated')
    assert sink.text.count("error") >= 2
    assert not cli.quit


def test_command_without_selection(cli, sink):
    cli.execute("logs")
    assert "Error: No object selected" in sink.text


def test_context_switch_clears_selection(cli, session):
    cli.execute("pods")
    cli.execute("0")
    cli.execute("context prod")
    assert session.context_name == "prod"
    assert session.selection.last_objects == ()
    assert session.selection.selection.objects() == ()


def test_unknown_context(cli, session, sink):
    cli.execute("ctx staging")
    assert "Unknown context 'staging'" in sink.text
    assert session.context_name == "dev"


def test_set_range_separator_persists(cli, session):
    cli.execute("set range_separator '>> {name}'")
    assert session.config.range_separator == ">> {name}"
    assert SessionConfig.load(session.config.path).range_separator == ">> {name}"


def test_delete_over_range_with_answers(session, client):
    client.responses["/api/v1/pods"] = {"items": [pod_item("a"), pod_item("b")]}
    session.sink = BufferSink(["n", "y"])
    cli = KubeReplCLI(session)
    cli.execute("pods")
    cli.execute("*")
    cli.execute("delete --now")
    deletes = [c for c in client.calls if c[0] == "delete"]
    assert [c[1] for c in deletes] == ["/api/v1/namespaces/default/pods/b"]
    assert '"gracePeriodSeconds": 1' in deletes[0][2]


def test_port_forward_requires_pod(cli, sink):
    cli.execute("pf 8080")
    assert "Error: No active pod" in sink.text


def test_port_forward_via_commands(cli, session, popen, sink):
    cli.execute("pods")
    cli.execute("1")
    cli.execute("pf 8080:80 9090")
    cli.execute("pfs")
    assert popen.processes[0].argv[-3:] == ["web-1", "8080:80", "9090"]
    assert "Running" in sink.text
    cli.execute("pfs output 3")
    assert "Error: Invalid port-forward index 3" in sink.text


def test_invalid_port_spec(cli, sink, popen):
    cli.execute("pods")
    cli.execute("0")
    cli.execute("pf 8080:http")
    assert "Error:" in sink.text
    assert popen.processes == []


def test_logs_through_dispatcher(cli, session, client, sink):
    client.streams["*"] = [b"line one\n", b"line two\n"]
    cli.execute("pods")
    cli.execute("0")
    cli.execute("logs --tail 5")
    assert "line one" in sink.text and "line two" in sink.text
    stream_call = [c for c in client.calls if c[0] == "stream"][0]
    assert stream_call[1].endswith("tailLines=5")
    assert stream_call[2] == 20.0


def test_quit_stops_batch(cli):
    cli.run(["quit", "pods"])
    assert cli.quit


def test_entry_point_arguments():
    args = build_arg_parser().parse_args(["--context", "prod", "-n", "kube-system", "-c", "pods", "-c", "0"])
    assert args.context == "prod"
    assert args.namespace == "kube-system"
    assert args.commands == ["pods", "0"]


def test_describe_yaml_and_json(session, client, sink):
    client.responses["/api/v1/pods"] = {"items": [pod_item("web-0")]}
    client.responses["/api/v1/namespaces/default/pods/web-0"] = {
        "kind": "Pod",
        "metadata": {"name": "web-0", "managedFields": [{"manager": "kubectl"}]},
    }
    cli = KubeReplCLI(session)
    cli.execute("pods")
    cli.execute("0")
    cli.execute("describe -y")
    assert "kind: Pod" in sink.text
    assert "managedFields" not in sink.text
    cli.execute("describe --json")
    assert '"kind": "Pod"' in sink.text


def test_non_ascii_digit_reports_error(cli, session, sink):
    cli.execute("pods")
    cli.execute("²")
    cli.execute("select ²")
    assert "Error: Invalid range term '²'" in sink.text
    assert isinstance(session.selection.selection, NoSelection)
    assert not cli.quit


def test_alias_expands_and_persists(cli, session, client, sink):
    cli.execute("alias p 'pods -r web-[12]'")
    assert "aliased p = 'pods -r web-[12]'" in sink.text
    cli.execute("p")
    assert [o.name for o in session.selection.last_objects] == ["web-1", "web-2"]

    reloaded = SessionConfig.load(session.config.path)
    assert reloaded.aliases == {"p": "pods -r web-[12]"}

    cli.execute("aliases")
    assert "alias p = 'pods -r web-[12]'" in sink.text


def test_alias_is_not_expanded_twice(cli, session):
    cli.execute("alias pods 'pods -r web-3'")
    cli.execute("alias ls pods")
    cli.execute("ls")
    assert [o.name for o in session.selection.last_objects] == ["web-3"]


@pytest.mark.parametrize("name", ["alias", "unalias", "3", "1..2"])
def test_reserved_alias_names_rejected(cli, session, sink, name):
    cli.execute(f"alias {name} pods")
    assert "error" in sink.text
    assert session.config.aliases == {}


def test_unalias(cli, session, sink):
    cli.execute("alias p pods")
    cli.execute("unalias p")
    cli.execute("unalias p")
    assert "unaliased: p" in sink.text
    assert "no such alias: p" in sink.text
    assert SessionConfig.load(session.config.path).aliases == {}


def test_interrupt_cancels_token_and_restores_handler():
    token = CancellationToken()
    before = signal.getsignal(signal.SIGINT)
    with interrupts_cancel(token):
        os.kill(os.getpid(), signal.SIGINT)
        # Python runs the handler at the next bytecode boundary
        assert token.wait(1)
    assert token.cancelled
    assert signal.getsignal(signal.SIGINT) is before


def test_execute_resets_stale_cancellation(session, client):
    client.responses["/api/v1/pods"] = {"items": [pod_item("a")]}
    session.sink = BufferSink(["y"])
    cli = KubeReplCLI(session)
    cli.execute("pods")
    cli.execute("0")
    session.cancel_token.cancel()
    cli.execute("delete")
    assert [c[1] for c in client.calls if c[0] == "delete"] == ["/api/v1/namespaces/default/pods/a"]


def test_expand_aliases_only_touches_first_word():
    aliases = {"logs": "logs -e", "el": "logs --tail 50", "p": "pods"}
    assert expand_aliases(["el", "app"], aliases) == ["logs", "-e", "--tail", "50", "app"]
    assert expand_aliases(["describe", "p"], aliases) == ["describe", "p"]
    assert expand_aliases(["logs"], aliases) == ["logs", "-e"]
