"""Minimal YAML emitter for plain data.

Supports None, booleans, numbers, strings, lists/tuples and dicts. Mapping
order is preserved, keys are trimmed, and keys containing spaces are
double-quoted. Keys that trim to the same text collapse into one; the
last value wins and the first position is kept. Keys up to 1000
characters are written as `key: value`; longer ones use the explicit
`? key` form, since YAML caps implicit keys at 1024 characters. String
values are always double-quoted. Anything else (sets, callables,
arbitrary objects) is rejected rather than tagged.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import yaml

from stopwatch.core.exceptions import UnrepresentableValueError

_STR_TAG = "tag:yaml.org,2002:str"
_MAP_TAG = "tag:yaml.org,2002:map"
_MAX_SIMPLE_KEY = 1000


class PlainDataDumper(yaml.SafeDumper):
    """SafeDumper restricted to plain JSON-like data."""

    def ignore_aliases(self, data: Any) -> bool:
        return True

    def check_simple_key(self) -> bool:
        # PyYAML alone falls back to "? key" from 128 characters on
        if isinstance(self.event, yaml.ScalarEvent):
            if self.analysis is None:
                self.analysis = self.analyze_scalar(self.event.value)
            return (
                len(self.analysis.scalar) <= _MAX_SIMPLE_KEY
                and not self.analysis.empty
                and not self.analysis.multiline
            )
        return super().check_simple_key()


def _represent_str(dumper: PlainDataDumper, data: str) -> yaml.ScalarNode:
    return dumper.represent_scalar(_STR_TAG, data, style='"')


def _represent_mapping(dumper: PlainDataDumper, data: dict) -> yaml.MappingNode:
    trimmed: dict[str, Any] = {}
    for raw_key, value in data.items():
        trimmed[str(raw_key).strip()] = value

    pairs: list[tuple[yaml.Node, yaml.Node]] = []
    node = yaml.MappingNode(_MAP_TAG, pairs, flow_style=False)
    for key, value in trimmed.items():
        key_node = yaml.ScalarNode(_STR_TAG, key, style='"' if " " in key else None)
        pairs.append((key_node, dumper.represent_data(value)))
    return node


def _represent_sequence(dumper: PlainDataDumper, data: list | tuple) -> yaml.SequenceNode:
    return dumper.represent_sequence("tag:yaml.org,2002:seq", list(data), flow_style=False)


def _reject(dumper: PlainDataDumper, data: Any) -> yaml.Node:
    if callable(data):
        raise UnrepresentableValueError("function")
    raise UnrepresentableValueError(type(data).__name__)


PlainDataDumper.add_representer(str, _represent_str)
PlainDataDumper.add_representer(dict, _represent_mapping)
PlainDataDumper.add_representer(list, _represent_sequence)
PlainDataDumper.add_representer(tuple, _represent_sequence)
PlainDataDumper.add_representer(set, _reject)
PlainDataDumper.add_representer(frozenset, _reject)
PlainDataDumper.add_multi_representer(object, _reject)


def _trim_trailing_whitespace(text: str) -> str:
    return "\n".join(line.rstrip() for line in text.split("\n"))


def to_yaml(data: Any) -> str:
    """Convert plain data to a YAML document.

    Raises:
        UnrepresentableValueError: If ``data`` contains a set, a callable or
            any other non-plain value.
    """
    text = yaml.dump(
        data,
        Dumper=PlainDataDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=sys.maxsize,
    )
    return _trim_trailing_whitespace(text)


def write_yaml(path: Path, data: Any) -> None:
    """Emit ``data`` to ``path``; nothing is written if emission fails."""
    content = to_yaml(data)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
