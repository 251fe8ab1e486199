"""Serialization helpers for analysis output."""

from .yaml_emitter import PlainDataDumper, to_yaml, write_yaml

__all__ = ["PlainDataDumper", "to_yaml", "write_yaml"]
