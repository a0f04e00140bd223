"""
Output path templates for log files, e.g. "logs/{namespace}/{name}-{time}.log".
"""

from string import Formatter
from typing import Mapping

from kuberepl.core.errors import PathTemplateError


def expand_path_template(template: str, fields: Mapping[str, str]) -> str:
    """
    Substitutes `fields` into `template`.

    Raises:
        PathTemplateError: the template names a field that is not provided,
        uses a positional field, or is otherwise malformed.
    """
    try:
        for _literal, field_name, _spec, _conv in Formatter().parse(template):
            if field_name is None:
                continue
            root = field_name.split(".")[0].split("[")[0]
            if not root or root.isdigit():
                raise PathTemplateError(f"Can't generate output path: positional field in '{template}'")
            if root not in fields:
                raise PathTemplateError(
                    f"Can't generate output path: unknown field '{{{root}}}' "
                    f"(available: {', '.join('{' + k + '}' for k in fields)})"
                )
        path = template.format_map(dict(fields))
    except (ValueError, KeyError, IndexError, AttributeError) as e:
        raise PathTemplateError(f"Can't generate output path from '{template}': {e}")
    if not path:
        raise PathTemplateError("Can't generate output path: template expanded to an empty string")
    return path
