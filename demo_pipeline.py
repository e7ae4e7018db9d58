#!/usr/bin/env python3
"""
Demo: managed properties and a validation pipeline.

Builds a small structure, then validates a few usernames through a value
slot and prints what each modifier says about them.
"""

from modelkit import Declaration, Immutable, PropertyMode, Structure
from modelkit.config import configure_logging
from modelkit.modifiers import ValueSlot
from modelkit.rules import integer, string
from modelkit.serialization import slot_to_yaml, structure_to_yaml


class User(Structure):
    declarations = {
        "id": Declaration(mode=PropertyMode.WRITE_ONCE, rule=integer()),
        "username": Declaration(rule=string(non_empty=True), required=True),
        "session": Declaration(transient=True, nullable=True, default=None),
    }


def build_username_slot() -> ValueSlot:
    slot = ValueSlot("username", rule=string())
    slot.add_filter("truncate", length=12)
    slot.add_constraint("length_range", min_value=3, max_value=12)
    slot.add_constraint("wildcards", values=["admin*", "root"], insensitive=True, negate=True)
    return slot


def main():
    configure_logging()

    print("=" * 80)
    print("PROPERTIES")
    print("=" * 80)

    user = User(id=1, username="ada")
    user.session = "3f2a"
    print(user)
    try:
        user.id = 2
    except Immutable as e:
        print(f"Refused: {e}")
    print("\nPersisted view:")
    print(structure_to_yaml(user))

    print("=" * 80)
    print("PIPELINE")
    print("=" * 80)

    slot = build_username_slot()
    for label in slot.modifier_labels():
        print(f"  - {label}")

    for candidate in ["ada", "x", "Administrator", "a_very_long_username_indeed", 42]:
        if slot.try_set_value(candidate):
            print(f"\n{candidate!r:32} -> accepted as {slot.get_value()!r}")
            slot.unset_value()
        else:
            print(f"\n{candidate!r:32} -> rejected")
            for message in slot.error.messages:
                print(f"    {message}")

    print("\nSchema:")
    print(slot_to_yaml(slot))


if __name__ == "__main__":
    main()
