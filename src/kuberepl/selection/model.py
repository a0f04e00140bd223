#!/usr/bin/env python3
"""
KUBEREPL SELECTION MODEL
------------------------
Tracks where the operator is (context, namespace) and what they are
pointing at (nothing, one object, or an ordered range), and gives every
object-scoped command one shared way of iterating its targets.

Author: KubeRepl Team
Date: 2026-10-18
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from kuberepl.core.errors import InvalidRangeError, KubeReplError, NoSelectionError
from kuberepl.core.models import NoSelection, Range, SelectedObject, Selection, Single
from kuberepl.core.output import OutputSink
from kuberepl.selection.ranges import parse_range

logger = logging.getLogger("kuberepl.selection")

Action = Callable[[SelectedObject, OutputSink], None]


def render_separator(separator: str, obj: SelectedObject) -> str:
    """Expands {name}/{namespace}/{kind} for the object that follows the separator."""
    try:
        return separator.format_map({
            "name": obj.name,
            "namespace": obj.namespace or "",
            "kind": obj.kind.display,
        })
    except (KeyError, IndexError, ValueError, AttributeError):
        return separator


class SelectionModel:
    def __init__(self, context: Optional[str] = None, namespace: Optional[str] = None):
        self.context = context
        self.namespace = namespace
        self.selection: Selection = NoSelection()
        self._last_objects: Tuple[SelectedObject, ...] = ()

    @property
    def last_objects(self) -> Tuple[SelectedObject, ...]:
        return self._last_objects

    def set_context(self, name: Optional[str]) -> bool:
        """
        Switches context. Objects listed under the old context are meaningless
        in the new one, so the selection and last listing are dropped.
        Returns False when `name` is already the current context.
        """
        if name is not None and name == self.context:
            return False
        self.context = name
        self.clear_selection()
        self.clear_listing()
        return True

    def set_namespace(self, name: Optional[str]):
        self.namespace = name or None

    def record_listing(self, objects: Sequence[SelectedObject]):
        self._last_objects = tuple(objects)

    def clear_listing(self):
        self._last_objects = ()

    def clear_selection(self):
        self.selection = NoSelection()

    def select_object(self, obj: SelectedObject):
        self.selection = Single(obj)

    def select_index(self, index: int) -> SelectedObject:
        if not self._last_objects:
            raise InvalidRangeError("No objects listed to select from (run a listing command first)")
        if index < 0 or index >= len(self._last_objects):
            raise InvalidRangeError(f"Index {index} out of range (last listing has {len(self._last_objects)} objects)")
        obj = self._last_objects[index]
        self.selection = Single(obj)
        return obj

    def resolve_range(self, expr: str) -> Range:
        indices = parse_range(expr, len(self._last_objects))
        return Range(tuple(self._last_objects[i] for i in indices))

    def select(self, expr: str) -> Selection:
        """A bare index selects one object; anything else selects a Range."""
        expr = expr.strip()
        if expr.isascii() and expr.isdigit():
            self.select_index(int(expr))
        else:
            self.selection = self.resolve_range(expr)
        return self.selection

    def current_pod(self) -> Optional[SelectedObject]:
        if isinstance(self.selection, Single) and self.selection.obj.is_pod:
            return self.selection.obj
        return None

    def apply_to_selection(self, sink: OutputSink, separator: Optional[str], action: Action) -> List[Tuple[SelectedObject, KubeReplError]]:
        """
        Runs `action` once per selected object, in order, writing `separator`
        between consecutive objects of a Range.

        A failure in one object's action is reported and iteration moves on to
        the next object.

        Returns:
            (object, error) pairs for every object whose action failed.

        Raises:
            NoSelectionError: nothing is selected; `action` never runs.
        """
        if isinstance(self.selection, NoSelection):
            raise NoSelectionError()

        failures = []
        # Snapshot so an action cannot change what is being iterated
        targets = self.selection.objects()
        for position, obj in enumerate(targets):
            if position > 0 and separator is not None:
                sink.writeln(render_separator(separator, obj))
            try:
                action(obj, sink)
            except KubeReplError as e:
                logger.debug(f"Action failed on {obj.qualified_name()}: {e}")
                sink.writeln(f"Error: {e}")
                failures.append((obj, e))
        return failures
