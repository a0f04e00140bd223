#!/usr/bin/env python3
"""
KUBEREPL LISTING COMMANDS
-------------------------
Fetch a collection from the cluster, print it with indices, and record the
printed rows as the last listing so the operator can select from it.
"""

import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from kuberepl.cli.formatter import KubeFormatter
from kuberepl.core.errors import InvalidRequestError, KubeReplError
from kuberepl.core.models import ObjKind, SelectedObject, Single
from kuberepl.core.output import OutputSink

logger = logging.getLogger("kuberepl.commands.listing")

formatter = KubeFormatter()


def compile_filter(pattern: Optional[str]):
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidRequestError(f"Invalid regex '{pattern}': {e}")


def list_path(session, kind: ObjKind, label: Optional[str] = None) -> str:
    path = kind.list_path(session.namespace)
    params = {}
    if label:
        params["labelSelector"] = label
    # With a node selected, pods are scoped to that node
    selection = session.selection.selection
    if kind is ObjKind.POD and isinstance(selection, Single) and selection.obj.kind is ObjKind.NODE:
        params["fieldSelector"] = f"spec.nodeName={selection.obj.name}"
    if params:
        path = f"{path}?{urlencode(params)}"
    return path


def _pod_phase(item: Dict[str, Any]) -> str:
    status = item.get("status") or {}
    if (item.get("metadata") or {}).get("deletionTimestamp"):
        return "Terminating"
    for cs in status.get("containerStatuses") or []:
        waiting = (cs.get("state") or {}).get("waiting")
        if waiting:
            return waiting.get("reason", "ContainerCreating")
    return status.get("phase", "Unknown")


def _pod_ready(item: Dict[str, Any]) -> str:
    statuses = (item.get("status") or {}).get("containerStatuses") or []
    ready = sum(1 for cs in statuses if cs.get("ready"))
    return f"{ready}/{len(statuses)}"


def _node_state(item: Dict[str, Any]) -> str:
    for cond in (item.get("status") or {}).get("conditions") or []:
        if cond.get("type") == "Ready":
            state = "Ready" if cond.get("status") == "True" else "Not Ready"
            break
    else:
        state = "Unknown"
    if (item.get("spec") or {}).get("unschedulable"):
        state += ",SchedulingDisabled"
    return state


def _extra_columns(kind: ObjKind, items: List[Dict[str, Any]]):
    if kind is ObjKind.POD:
        return [("Ready", [_pod_ready(i) for i in items]), ("Phase", [_pod_phase(i) for i in items])]
    if kind is ObjKind.NODE:
        return [("State", [_node_state(i) for i in items])]
    if kind is ObjKind.SERVICE:
        return [("ClusterIP", [str((i.get("spec") or {}).get("clusterIP", "")) for i in items])]
    return []


def list_objects(session, sink: OutputSink, kind: ObjKind, label: Optional[str] = None,
                 regex: Optional[str] = None) -> List[SelectedObject]:
    """
    Lists `kind` and records the printed rows as the last listing. A failed
    fetch clears the last listing before the error propagates.
    """
    name_filter = compile_filter(regex)
    path = list_path(session, kind, label)
    try:
        payload = session.client().get(path)
    except KubeReplError:
        session.selection.clear_listing()
        raise

    items = [i for i in payload.get("items") or [] if isinstance(i, dict)]
    if name_filter:
        items = [i for i in items if name_filter.search((i.get("metadata") or {}).get("name", ""))]

    objects = [SelectedObject.from_item(kind, item) for item in items]
    session.selection.record_listing(objects)
    logger.debug(f"Listed {len(objects)} {kind.plural} from {path}")

    if not objects:
        sink.writeln(f"No {kind.plural} found")
        return objects
    show_ns = kind.namespaced and session.namespace is None
    sink.render(formatter.objects_table(objects, show_ns, _extra_columns(kind, items)))
    return objects


def list_namespaces(session, sink: OutputSink, regex: Optional[str] = None) -> List[str]:
    name_filter = compile_filter(regex)
    payload = session.client().get("/api/v1/namespaces")
    names = [(i.get("metadata") or {}).get("name", "") for i in payload.get("items") or []]
    if name_filter:
        names = [n for n in names if name_filter.search(n)]
    for name in names:
        sink.writeln(name)
    return names


def list_contexts(session, sink: OutputSink, verbose: bool = True):
    names = session.kubeconfig.context_names()
    if not verbose:
        for name in names:
            sink.writeln(name)
        return
    rows = [(name, session.kubeconfig.server_for(name) or "[no cluster for context]") for name in names]
    sink.render(formatter.contexts_table(rows, session.context_name))
