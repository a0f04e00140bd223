#!/usr/bin/env python3
"""
KUBEREPL CLI - Interactive Shell
--------------------------------
Reads command lines, parses them with argparse, and routes them into the
session. Every command runs to completion before the next prompt; while a
command runs, ^C cancels it cooperatively instead of killing the shell.

Author: KubeRepl Team
Date: 2026-10-18
"""

import argparse
import logging
import os
import shlex
import signal
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.panel import Panel

from kuberepl.cli.formatter import KubeFormatter
from kuberepl.commands.exec import exec_on_pod
from kuberepl.commands.forwards import port_forwards, start_forward
from kuberepl.commands.listing import list_contexts, list_namespaces, list_objects
from kuberepl.commands.logs import LogOptions, run_logs
from kuberepl.commands.objects import (
    build_delete_body,
    delete_object,
    describe_object,
    print_containers,
    print_events,
)
from kuberepl.core.cancel import CancellationToken
from kuberepl.core.config import SETTABLE_OPTIONS, SessionConfig
from kuberepl.core.errors import KubeReplError
from kuberepl.core.kubeconfig import KubeConfig
from kuberepl.core.models import NoSelection, ObjKind, Single
from kuberepl.core.output import ConsoleSink, OutputSink
from kuberepl.core.session import Session
from kuberepl.selection.ranges import looks_like_range

logger = logging.getLogger("kuberepl.cli")

VERSION = "1.0.0"

LISTINGS = {
    "pods": (ObjKind.POD, []),
    "nodes": (ObjKind.NODE, []),
    "services": (ObjKind.SERVICE, ["svc"]),
    "deployments": (ObjKind.DEPLOYMENT, ["deps"]),
    "replicasets": (ObjKind.REPLICASET, ["rs"]),
    "statefulsets": (ObjKind.STATEFULSET, ["ss"]),
    "configmaps": (ObjKind.CONFIGMAP, ["cm"]),
    "secrets": (ObjKind.SECRET, []),
    "jobs": (ObjKind.JOB, ["job"]),
}


class UsageExit(Exception):
    """argparse wanted to exit (bad usage or --help); the shell keeps running."""


class ShellArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports through the sink and never exits the process."""

    def __init__(self, *args, sink: Optional[OutputSink] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.sink = sink

    def _print_message(self, message, file=None):
        if message and self.sink is not None:
            self.sink.write(message)
        elif message:
            super()._print_message(message, file)

    def exit(self, status=0, message=None):
        if message:
            self._print_message(message)
        raise UsageExit(status)

    def error(self, message):
        self.exit(2, f"{self.prog}: error: {message}\n")


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "yes", "1"):
        return True
    if lowered in ("false", "no", "0"):
        return False
    raise argparse.ArgumentTypeError(f"'{value}' is not a boolean (true/false)")


def non_negative(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a number")
    if number < 0:
        raise argparse.ArgumentTypeError(f"'{value}' must not be negative")
    return number


RESERVED_ALIASES = ("alias", "unalias")


def alias_name(value: str) -> str:
    if value in RESERVED_ALIASES or (value.isascii() and value.isdigit()):
        raise argparse.ArgumentTypeError("alias cannot be \"alias\", \"unalias\", or a number")
    if looks_like_range(value):
        raise argparse.ArgumentTypeError(f"alias cannot be a range expression like '{value}'")
    return value


def expand_aliases(words: List[str], aliases: Dict[str, str]) -> List[str]:
    """
    Replaces a leading alias with its expansion, bash style: the first word of
    the result is expanded again, but never with an alias already used.
    """
    used = set()
    while words and words[0] in aliases and words[0] not in used:
        used.add(words[0])
        words = shlex.split(aliases[words[0]]) + words[1:]
    return words


@contextmanager
def interrupts_cancel(token: CancellationToken):
    """While active, SIGINT flips `token` instead of raising KeyboardInterrupt."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, lambda _signum, _frame: token.cancel())
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


class KubeReplCLI:
    """
    Shell wrapper that translates command lines into session actions.
    """

    def __init__(self, session: Session):
        self.session = session
        self.sink = session.sink
        self.formatter = KubeFormatter()
        self.quit = False
        self.parser = ShellArgumentParser(prog="kuberepl", add_help=False, sink=self.sink)
        self._setup_commands()

    def _command(self, subparsers, name: str, help_text: str, handler, aliases: Optional[List[str]] = None):
        parser = subparsers.add_parser(name, help=help_text, description=help_text,
                                       aliases=aliases or [], sink=self.sink)
        parser.set_defaults(handler=handler)
        return parser

    def _setup_commands(self):
        """Configures every command the shell understands."""
        subparsers = self.parser.add_subparsers(dest="command", metavar="Command",
                                                parser_class=ShellArgumentParser)
        cmd = lambda *a, **kw: self._command(subparsers, *a, **kw)

        cmd("quit", "Quit the shell", self.do_quit, ["q", "exit"])
        cmd("help", "Show available commands", self.do_help)

        p = cmd("context", "Set the current context (clears the selection). "
                           "With no argument, lists available contexts.", self.do_context, ["ctx"])
        p.add_argument("context", nargs="?")
        cmd("contexts", "List available contexts", self.do_contexts, ["ctxs"])
        p = cmd("namespace", "Set the current namespace (no argument to clear namespace)", self.do_namespace, ["ns"])
        p.add_argument("namespace", nargs="?")
        cmd("clear", "Clear the currently selected object", self.do_clear)
        cmd("range", "List the objects in the current selection", self.do_range)
        p = cmd("select", "Select an object or range from the last listing (e.g. 3, 1..4, 0,2, *)", self.do_select)
        p.add_argument("expr")

        for name, (kind, aliases) in LISTINGS.items():
            p = cmd(name, f"Get {kind.plural}" + (" (in current namespace if set)" if kind.namespaced else ""),
                    self.do_list, aliases)
            p.set_defaults(kind=kind)
            p.add_argument("-l", "--label", help="Label selector (example: app=nginx)")
            p.add_argument("-r", "--regex", help="Filter by the specified regex")
        p = cmd("namespaces", "Get namespaces in current context", self.do_namespaces)
        p.add_argument("-r", "--regex", help="Filter namespaces by the specified regex")

        p = cmd("logs", "Get logs from a container in the current pod(s)", self.do_logs)
        p.add_argument("container", nargs="?", help="Container to get logs from")
        p.add_argument("-f", "--follow", action="store_true", help="Follow the logs as new records arrive (stop with ^C)")
        p.add_argument("-t", "--tail", type=non_negative, help="Number of lines from the end of the logs to show")
        p.add_argument("-p", "--previous", action="store_true", help="Return previous terminated container logs")
        since = p.add_mutually_exclusive_group()
        since.add_argument("--since", help="Only return logs newer than a relative duration, e.g. 5s, 2m, 3m5s")
        since.add_argument("--since-time", help="Only return logs newer than an RFC3339 date")
        sink_group = p.add_mutually_exclusive_group()
        sink_group.add_argument("-e", "--editor", nargs="?", const="", default=None,
                                help="Open fetched logs in an editor (optionally the given editor command)")
        sink_group.add_argument("-o", "--output",
                                help="Write logs to a file; the path may use {name}, {namespace} and {time}")

        p = cmd("describe", "Describe the active object(s)", self.do_describe)
        fmt = p.add_mutually_exclusive_group()
        fmt.add_argument("-j", "--json", action="store_true", help="Print the full description in json")
        fmt.add_argument("-y", "--yaml", action="store_true", help="Print the full description in yaml (the default)")

        p = cmd("exec", "Exec the specified command on the active pod(s)", self.do_exec)
        p.add_argument("-c", "--container", help="Exec in the specified container")
        p.add_argument("-t", "--terminal", nargs="?", const="", default=None,
                       help="Run in a new terminal (optionally the given terminal command)")
        p.add_argument("-T", "--tty", nargs="?", type=parse_bool, const=True, default=True)
        p.add_argument("-i", "--stdin", nargs="?", type=parse_bool, const=True, default=True)
        p.add_argument("exec_command", nargs=argparse.REMAINDER, help="The command to execute")

        p = cmd("delete", "Delete the active object(s) (asks for confirmation)", self.do_delete)
        timing = p.add_mutually_exclusive_group()
        timing.add_argument("-g", "--gracePeriod", dest="grace", type=non_negative,
                            help="Seconds before the object should be deleted")
        timing.add_argument("--now", action="store_true", help="Signal immediate shutdown (grace period of 1)")
        timing.add_argument("--force", action="store_true", help="Force immediate deletion")
        p.add_argument("-c", "--cascade", type=parse_bool, default=True,
                       help="If true (the default), dependant objects are deleted")

        cmd("containers", "List containers on the active pod(s)", self.do_containers, ["conts"])
        cmd("events", "Get events for the active object(s)", self.do_events)

        p = cmd("port-forward", "Forward one (or more) local ports to the active pod", self.do_port_forward, ["pf"])
        p.add_argument("ports", nargs="+", help="[local]:[remote] port specifications")
        p = cmd("port-forwards", "List or control active port forwards", self.do_port_forwards, ["pfs"])
        p.add_argument("action", nargs="?", default="list", choices=["list", "output", "stop"])
        p.add_argument("index", nargs="?", type=non_negative)

        p = cmd("alias", "Define or display aliases", self.do_alias, ["aliases"])
        p.add_argument("alias", nargs="?", type=alias_name,
                       help="The short version of the command. Cannot be 'alias', 'unalias', or a number.")
        p.add_argument("expanded", nargs="?", help="What the short version of the command should expand to")
        p = cmd("unalias", "Remove an alias", self.do_unalias)
        p.add_argument("alias", help="Short version of alias to remove")

        p = cmd("set", "Set shell options", self.do_set)
        p.add_argument("option", choices=SETTABLE_OPTIONS)
        p.add_argument("value")
        cmd("env", "Print information about the current environment", self.do_env)
        cmd("utc", "Print current time in UTC", self.do_utc)

    # --- session navigation ---

    def do_quit(self, args):
        self.quit = True

    def do_help(self, args):
        self.parser.print_help()

    def do_context(self, args):
        if args.context:
            self.session.set_context(args.context)
        else:
            list_contexts(self.session, self.sink)

    def do_contexts(self, args):
        list_contexts(self.session, self.sink, verbose=False)

    def do_namespace(self, args):
        self.session.set_namespace(args.namespace)

    def do_clear(self, args):
        self.session.selection.clear_selection()

    def do_range(self, args):
        selection = self.session.selection.selection
        if isinstance(selection, NoSelection):
            self.sink.writeln("Nothing selected")
            return
        objects = []
        self.session.selection.apply_to_selection(self.sink, None, lambda obj, _out: objects.append(obj))
        self.sink.render(self.formatter.range_table(objects))

    def do_select(self, args):
        self.session.selection.select(args.expr)

    def do_list(self, args):
        list_objects(self.session, self.sink, args.kind, args.label, args.regex)

    def do_namespaces(self, args):
        list_namespaces(self.session, self.sink, args.regex)

    # --- object commands ---

    def _separator(self) -> str:
        return self.session.config.range_separator

    def do_logs(self, args):
        options = LogOptions(
            container=args.container,
            follow=args.follow,
            tail=args.tail,
            previous=args.previous,
            since=args.since,
            since_time=args.since_time,
            editor=args.editor is not None,
            editor_command=args.editor or None,
            output=args.output,
        )
        run_logs(self.session, self.sink, options)

    def do_describe(self, args):
        self.session.selection.apply_to_selection(
            self.sink, self._separator(),
            lambda obj, out: describe_object(self.session, obj, out, as_json=args.json))

    def do_exec(self, args):
        command = list(args.exec_command)
        if command and command[0] == "--":
            command = command[1:]
        if not command:
            self.sink.writeln("exec: a command to run is required")
            return
        self.session.require_context()
        self.session.selection.apply_to_selection(
            self.sink, self._separator(),
            lambda obj, out: exec_on_pod(
                self.session, obj, out, command,
                container=args.container,
                terminal=args.terminal or None,
                use_terminal=args.terminal is not None,
                tty=args.tty,
                stdin=args.stdin,
            ))

    def do_delete(self, args):
        body = build_delete_body(grace=args.grace, cascade=args.cascade, now=args.now, force=args.force)
        self.session.selection.apply_to_selection(
            self.sink, self._separator(),
            lambda obj, out: delete_object(self.session, obj, out, body))

    def do_containers(self, args):
        self.session.selection.apply_to_selection(
            self.sink, self._separator(), lambda obj, out: print_containers(self.session, obj, out))

    def do_events(self, args):
        self.session.selection.apply_to_selection(
            self.sink, self._separator(), lambda obj, out: print_events(self.session, obj, out))

    def do_port_forward(self, args):
        start_forward(self.session, self.sink, args.ports)

    def do_port_forwards(self, args):
        port_forwards(self.session, self.sink, args.action, args.index)

    # --- settings ---

    def do_set(self, args):
        self.session.config.set_option(args.option, args.value)
        self.session.config.save()
        self.sink.writeln(f"Set {args.option} to '{args.value}'")

    def do_alias(self, args):
        config = self.session.config
        if args.alias is None:
            for alias, expanded in config.aliases.items():
                self.sink.writeln(f"alias {alias} = '{expanded}'")
            return
        if args.expanded is None:
            self.sink.writeln("alias: an expansion is required (alias NAME EXPANSION)")
            return
        config.set_alias(args.alias, args.expanded)
        config.save()
        self.sink.writeln(f"aliased {args.alias} = '{args.expanded}'")

    def do_unalias(self, args):
        config = self.session.config
        if not config.remove_alias(args.alias):
            self.sink.writeln(f"no such alias: {args.alias}")
            return
        config.save()
        self.sink.writeln(f"unaliased: {args.alias}")

    def do_env(self, args):
        config = self.session.config
        self.sink.writeln(f"Context: {self.session.context_name or 'none'}")
        self.sink.writeln(f"Namespace: {self.session.namespace or 'none'}")
        self.sink.writeln(f"Selection: {self.selection_label()}")
        self.sink.writeln(f"Editor: {config.editor or os.environ.get('EDITOR') or 'none'}")
        self.sink.writeln(f"Terminal: {config.terminal or 'default'}")
        self.sink.writeln(f"Range separator: {config.range_separator}")
        self.sink.writeln(f"Port forwards: {len(self.session.forwards)}")
        self.sink.writeln(f"Kubeconfig: {self.session.kubeconfig.source}")

    def do_utc(self, args):
        self.sink.writeln(str(datetime.now(timezone.utc)))

    # --- loop ---

    def selection_label(self) -> str:
        selection = self.session.selection.selection
        if isinstance(selection, NoSelection):
            return "none"
        if isinstance(selection, Single):
            return selection.obj.name
        return f"{len(selection.objects())} objects"

    def prompt(self) -> str:
        return (f"[{self.session.context_name or 'none'}]"
                f"[{self.session.namespace or 'none'}]"
                f"[{self.selection_label()}] > ")

    def execute(self, line: str):
        """Runs one command line. Errors are reported, never raised."""
        try:
            words = shlex.split(line)
        except ValueError as e:
            self.sink.writeln(f"Error: {e}")
            return
        if not words:
            return
        try:
            words = expand_aliases(words, self.session.config.aliases)
        except ValueError as e:
            self.sink.writeln(f"Error: bad alias expansion: {e}")
            return
        if not words:
            return
        # A bare index or range expression is shorthand for 'select'
        if len(words) == 1 and looks_like_range(words[0]):
            words = ["select", words[0]]

        try:
            args = self.parser.parse_args(words)
        except UsageExit:
            return
        if not getattr(args, "handler", None):
            self.parser.print_help()
            return

        self.session.cancel_token.reset()
        try:
            with interrupts_cancel(self.session.cancel_token):
                args.handler(args)
        except KubeReplError as e:
            logger.debug(f"Command '{words[0]}' failed: {e!r}")
            self.sink.writeln(f"Error: {e}")

    def print_header(self):
        self.sink.render(Panel.fit(
            f"[bold cyan]KubeRepl v{VERSION}[/bold cyan]\n"
            "Type 'help' for commands, 'quit' to leave.",
            title="[bold white]Interactive Kubernetes Shell[/bold white]",
            border_style="cyan",
        ))

    def run(self, commands: Optional[List[str]] = None):
        """Runs `commands` if given, otherwise the interactive loop until quit or EOF."""
        if commands:
            for line in commands:
                self.execute(line)
                if self.quit:
                    break
            return

        self.print_header()
        while not self.quit:
            try:
                line = self.sink.read_line(self.prompt())
            except KeyboardInterrupt:
                self.sink.writeln("")
                continue
            if line is None:
                self.sink.writeln("")
                break
            self.execute(line)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kuberepl",
        description="KubeRepl - interactive Kubernetes administration shell",
    )
    parser.add_argument("-v", "--version", action="version", version=f"kuberepl v{VERSION}")
    parser.add_argument("--context", help="Context to start in (default: kubeconfig current-context)")
    parser.add_argument("-n", "--namespace", help="Namespace to start in")
    parser.add_argument("--kubeconfig", type=Path, help="Path to kubeconfig")
    parser.add_argument("--config", type=Path, help="Path to the shell's config file")
    parser.add_argument("-c", "--command", action="append", dest="commands",
                        help="Run this command line and exit (repeatable)")
    parser.add_argument("--log-level", default=os.environ.get("KUBEREPL_LOG_LEVEL", "WARNING"),
                        help="Logging level (default: WARNING)")
    return parser


def main(argv: Optional[List[str]] = None):
    """Application entry point with interrupt handling."""
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    console = Console()
    sink = ConsoleSink(console)

    try:
        kubeconfig = KubeConfig.load(args.kubeconfig)
        config = SessionConfig.load(args.config)
    except KubeReplError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    with Session(kubeconfig, config, sink) as session:
        start_context = args.context or kubeconfig.current_context
        try:
            if start_context:
                session.set_context(start_context)
        except KubeReplError as e:
            console.print(f"[bold yellow]Warning:[/bold yellow] {e}")
        if args.namespace:
            session.set_namespace(args.namespace)
        try:
            KubeReplCLI(session).run(args.commands)
        except KeyboardInterrupt:
            console.print("\n[bold red]Terminated by user.[/bold red]")
            sys.exit(1)


if __name__ == "__main__":
    main()
