#!/usr/bin/env python3
"""
KUBEREPL SESSION CONFIG
-----------------------
Operator preferences that survive between sessions: editor and terminal
commands, the separator printed between objects of a range, the
kubectl binary used for exec and port-forwarding, and command aliases.

Stored as YAML with ruamel's round-trip loader so hand-written comments in
the file are kept when the shell saves a changed value.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Optional

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.error import YAMLError

from kuberepl.core.errors import ConfigError

logger = logging.getLogger("kuberepl.config")

DEFAULT_RANGE_SEPARATOR = "--- {name} [{namespace}] ---"
DEFAULT_TERMINAL = "xterm -e"
SETTABLE_OPTIONS = ("editor", "terminal", "range_separator")


def default_config_path() -> Path:
    base = os.environ.get("KUBEREPL_CONFIG_DIR")
    root = Path(base) if base else Path.home() / ".kuberepl"
    return root / "config.yaml"


@dataclass
class SessionConfig:
    editor: Optional[str] = None
    terminal: Optional[str] = None
    range_separator: str = DEFAULT_RANGE_SEPARATOR
    kubectl: str = "kubectl"
    aliases: Dict[str, str] = field(default_factory=dict)
    path: Optional[Path] = None

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "SessionConfig":
        """Reads the config file; a missing file yields the defaults."""
        path = Path(path) if path else default_config_path()
        config = cls(path=path)
        if not path.exists():
            return config

        try:
            data = YAML().load(path.read_text(encoding="utf-8"))
        except (OSError, YAMLError) as e:
            raise ConfigError(f"Could not read config {path}: {e}")

        if data is None:
            return config
        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must be a mapping")

        for f in fields(cls):
            if f.name in ("path", "aliases"):
                continue
            if f.name in data and data[f.name] is not None:
                setattr(config, f.name, str(data[f.name]))

        aliases = data.get("aliases") or {}
        if not isinstance(aliases, dict):
            raise ConfigError(f"'aliases' in {path} must be a mapping of alias to expansion")
        config.aliases = {str(k): str(v) for k, v in aliases.items()}
        return config

    def set_option(self, option: str, value: str):
        if option not in SETTABLE_OPTIONS:
            raise ConfigError(f"Invalid option '{option}'. Possible values are: {', '.join(SETTABLE_OPTIONS)}")
        setattr(self, option, value)

    def set_alias(self, alias: str, expanded: str):
        self.aliases[alias] = expanded

    def remove_alias(self, alias: str) -> bool:
        return self.aliases.pop(alias, None) is not None

    def save(self):
        """Writes the config back, preserving comments already in the file."""
        if self.path is None:
            return
        yaml = YAML()
        doc = CommentedMap()
        try:
            if self.path.exists():
                loaded = yaml.load(self.path.read_text(encoding="utf-8"))
                if isinstance(loaded, CommentedMap):
                    doc = loaded
            for f in fields(self):
                if f.name == "path":
                    continue
                value = getattr(self, f.name)
                if f.name == "aliases":
                    value = dict(value) or None
                if value is None:
                    doc.pop(f.name, None)
                else:
                    doc[f.name] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as fh:
                yaml.dump(doc, fh)
        except (OSError, YAMLError) as e:
            raise ConfigError(f"Could not write config {self.path}: {e}")
        logger.debug("Saved config to %s", self.path)
