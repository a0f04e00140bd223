#!/usr/bin/env python3
"""
KUBEREPL OBJECT COMMANDS
------------------------
Commands that act on the current selection: delete (behind the
confirmation gate), describe, containers and events. Each function here is
the per-object action handed to SelectionModel.apply_to_selection.

Author: KubeRepl Team
Date: 2026-10-18
"""

import io
import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from ruamel.yaml import YAML

from kuberepl.client.cluster import dumps_body
from kuberepl.core.confirm import confirm_destructive
from kuberepl.core.errors import InvalidRequestError
from kuberepl.core.models import ObjKind, SelectedObject
from kuberepl.core.output import OutputSink

logger = logging.getLogger("kuberepl.commands.objects")


def build_delete_body(grace: Optional[int] = None, cascade: bool = True,
                      now: bool = False, force: bool = False) -> Dict[str, Any]:
    """
    DeleteOptions for a delete. A grace period of zero is a force delete, so
    an explicit 0 is raised to 1; only --force sends 0.
    """
    if sum(1 for flag in (grace is not None, now, force) if flag) > 1:
        raise InvalidRequestError("--gracePeriod, --now and --force are mutually exclusive")
    body: Dict[str, Any] = {
        "kind": "DeleteOptions",
        "apiVersion": "v1",
        "propagationPolicy": "Foreground" if cascade else "Orphan",
    }
    if grace is not None:
        body["gracePeriodSeconds"] = max(1, grace)
    elif force:
        body["gracePeriodSeconds"] = 0
    elif now:
        body["gracePeriodSeconds"] = 1
    return body


def delete_object(session, obj: SelectedObject, sink: OutputSink, body: Dict[str, Any]) -> bool:
    """Deletes `obj` if the operator confirms. Returns True only if the server accepted it."""
    if not obj.is_cluster_scoped and not obj.namespace:
        sink.writeln(f"Don't know namespace for {obj.name}")
        return False
    if not confirm_destructive(obj, sink, token=session.cancel_token):
        sink.writeln("Not deleting")
        return False

    # Services reject a DeleteOptions body
    payload = None if obj.kind is ObjKind.SERVICE else dumps_body(body)
    status = session.client().delete(obj.api_path(), payload, True)
    if status.ok:
        logger.info(f"Deleted {obj.qualified_name()}")
        sink.writeln("Deleted")
        return True
    message = status.body.get("message", status.body) if isinstance(status.body, dict) else status.body
    sink.writeln(f"Failed to delete: {status.code} {message}")
    return False


def describe_object(session, obj: SelectedObject, sink: OutputSink, as_json: bool = False):
    raw = session.client().get(obj.api_path())
    if as_json:
        sink.writeln(json.dumps(raw, indent=2))
        return
    metadata = raw.get("metadata") or {}
    metadata.pop("managedFields", None)
    buffer = io.StringIO()
    yaml = YAML()
    yaml.default_flow_style = False
    yaml.dump(raw, buffer)
    sink.write(buffer.getvalue())


def containers_string(pod: Dict[str, Any]) -> str:
    statuses = (pod.get("status") or {}).get("containerStatuses")
    if not statuses:
        return "<No Containers>\n"
    specs = {c.get("name"): c for c in (pod.get("spec") or {}).get("containers") or []}
    lines: List[str] = []
    for cs in statuses:
        state = ", ".join((cs.get("state") or {}).keys()) or "unknown"
        lines.append(f"Name:\t{cs.get('name')}")
        lines.append(f"  Image:\t{cs.get('image')}")
        lines.append(f"  State:\t{state}")
        lines.append(f"  Ready:\t{cs.get('ready', False)}")
        mounts = (specs.get(cs.get("name")) or {}).get("volumeMounts")
        if mounts:
            lines.append("  Volumes:")
            for vol in mounts:
                lines.append(f"   {vol.get('name')}")
                lines.append(f"    Path:\t{vol.get('mountPath')}")
                lines.append(f"    Sub-Path:\t{vol.get('subPath', '')}")
                lines.append(f"    Read-Only:\t{vol.get('readOnly', False)}")
        else:
            lines.append("  No Volumes")
        lines.append("")
    return "\n".join(lines) + "\n"


def print_containers(session, obj: SelectedObject, sink: OutputSink):
    if not obj.is_pod:
        sink.writeln("containers only possible on a Pod")
        return
    sink.write(containers_string(session.client().get(obj.api_path())))


def format_event(event: Dict[str, Any]) -> str:
    return (
        f"{event.get('lastTimestamp') or 'unknown'} - {event.get('message', '')}\n"
        f" count: {event.get('count') or 1}\n"
        f" reason: {event.get('reason', '')}\n"
    )


def events_path(obj: SelectedObject) -> str:
    selector = f"involvedObject.name={obj.name}"
    if obj.namespace:
        selector += f",involvedObject.namespace={obj.namespace}"
        base = f"/api/v1/namespaces/{obj.namespace}/events"
    else:
        base = "/api/v1/events"
    return f"{base}?{urlencode({'fieldSelector': selector})}"


def print_events(session, obj: SelectedObject, sink: OutputSink):
    items = session.client().get(events_path(obj)).get("items") or []
    if not items:
        sink.writeln("No events")
        return
    # Events without a timestamp sort first; RFC3339 UTC strings order lexically
    items.sort(key=lambda e: (e.get("lastTimestamp") is not None, e.get("lastTimestamp") or ""))
    for event in items:
        sink.writeln(format_event(event))
