"""
Serialization helpers for modifiers, value slots and structures.

Schemas are plain nested dicts of scalars and lists, so they round-trip
through JSON and YAML unchanged. Rebuilding a modifier from its schema
resolves the prototype by name in a registry and re-applies the exported
configuration, which reproduces the same evaluation behavior.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

import yaml

from modelkit.modifiers import Modifier, PrototypeRegistry, ValueSlot
from modelkit.structure import Structure


def modifier_to_dict(m: Modifier) -> Dict[str, Any]:
    return m.get_schema()


def modifier_from_dict(d: Dict[str, Any], registry: Optional[PrototypeRegistry] = None) -> Modifier:
    return Modifier.from_schema(d, registry)


def slot_to_dict(s: ValueSlot) -> Dict[str, Any]:
    return s.get_schema()


def slot_from_dict(d: Dict[str, Any], registry: Optional[PrototypeRegistry] = None) -> ValueSlot:
    slot = ValueSlot(name=d["name"], nullable=d.get("nullable", False), registry=registry)
    for m in d.get("modifiers", []):
        slot.add_modifier(modifier_from_dict(m, registry))
    return slot


def slot_to_json(s: ValueSlot) -> str:
    return json.dumps(slot_to_dict(s), sort_keys=True)


def slot_from_json(s: str, registry: Optional[PrototypeRegistry] = None) -> ValueSlot:
    d = json.loads(s)
    return slot_from_dict(d, registry)


def slot_to_yaml(s: ValueSlot) -> str:
    return yaml.safe_dump(slot_to_dict(s))


def slot_from_yaml(s: str, registry: Optional[PrototypeRegistry] = None) -> ValueSlot:
    d = yaml.safe_load(s)
    return slot_from_dict(d, registry)


def structure_to_dict(s: Structure) -> Dict[str, Any]:
    """Persisted view: transient properties are left out."""
    return s.to_dict(persisted_view=True)


def structure_from_dict(cls: type, d: Dict[str, Any]) -> Structure:
    return cls.from_persisted(d)


def structure_to_yaml(s: Structure) -> str:
    return yaml.safe_dump(structure_to_dict(s))


def structure_from_yaml(cls: type, s: str) -> Structure:
    return structure_from_dict(cls, yaml.safe_load(s) or {})
