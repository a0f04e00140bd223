# src/kuberepl/cli/formatter.py
from typing import Iterable, List, Optional, Sequence, Tuple

from rich.table import Table

from kuberepl.core.models import SelectedObject
from kuberepl.forward.supervisor import ForwardInfo


class KubeFormatter:
    """
    KubeFormatter: builds the Rich tables the shell prints.
    Rendering is left to the output sink so the same tables work against an
    in-memory sink in tests.
    """

    def objects_table(self, objects: Sequence[SelectedObject], show_namespace: bool,
                      extra: Optional[List[Tuple[str, List[str]]]] = None) -> Table:
        """
        Indexed listing of objects. The index column is what the operator
        types to select.
        """
        table = Table(show_header=True, header_style="bold magenta", box=None)
        table.add_column("####", justify="right", style="dim")
        table.add_column("Name", style="cyan")
        if show_namespace:
            table.add_column("Namespace")
        for title, _values in extra or []:
            table.add_column(title)

        for i, obj in enumerate(objects):
            row = [str(i), obj.name]
            if show_namespace:
                row.append(obj.namespace or "")
            row.extend(values[i] for _title, values in extra or [])
            table.add_row(*row)
        return table

    def range_table(self, objects: Iterable[SelectedObject]) -> Table:
        table = Table(show_header=True, header_style="bold magenta", box=None)
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Namespace")
        for obj in objects:
            table.add_row(obj.name, obj.kind.display, obj.namespace or "")
        return table

    def contexts_table(self, rows: Iterable[Tuple[str, str]], current: Optional[str]) -> Table:
        table = Table(show_header=True, header_style="bold magenta", box=None)
        table.add_column("Context", style="bold red")
        table.add_column("Api Server Address")
        for name, server in rows:
            marker = "* " if name == current else ""
            table.add_row(f"{marker}{name}", server)
        return table

    def forwards_table(self, forwards: Iterable[ForwardInfo]) -> Table:
        table = Table(show_header=True, header_style="bold magenta", box=None)
        table.add_column("####", justify="right", style="dim")
        table.add_column("Pod", style="cyan")
        table.add_column("Ports")
        table.add_column("Status")
        for pf in forwards:
            color = "green" if pf.status == "Running" else "yellow"
            table.add_row(str(pf.index), pf.pod, ", ".join(pf.ports), f"[{color}]{pf.status}[/{color}]")
        return table
