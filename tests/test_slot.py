"""
Tests for ValueSlot: a value guarded by a type rule and a pipeline.
"""

from datetime import datetime

import pytest

from modelkit.exceptions import AlreadyInitialized, InvalidValue, NotInitialized
from modelkit.modifiers import Constraint, ValueSlot
from modelkit.modifiers.slot import DEFAULT_ERROR_MESSAGE, NULL_ERROR_MESSAGE
from modelkit.rules import integer, string


@pytest.fixture
def username():
    slot = ValueSlot("username", rule=string())
    slot.add_filter("truncate", length=5)
    slot.add_constraint("length_range", min_value=2, max_value=5)
    return slot


class TestValueSlotSetValue:
    """Test validation through the slot."""

    def test_filtered_value_is_stored(self, username):
        username.set_value("hello world")
        assert username.get_value() == "hello"
        assert username.is_initialized
        assert not username.has_error

    def test_constraint_failure(self, username):
        with pytest.raises(InvalidValue) as excinfo:
            username.set_value("a")
        result = excinfo.value.result
        assert result.name == "username"
        assert result.value == "a"
        assert result.failures[0].code == "constraint.length_range"
        assert result.message == "Only between 2 and 5 characters is allowed."
        assert username.error is result
        with pytest.raises(NotInitialized, match="Last error"):
            username.get_value()

    def test_rejected_value_keeps_previous(self, username):
        username.set_value("abc")
        assert not username.try_set_value("a")
        assert username.get_value() == "abc"
        assert username.has_error

    def test_rule_applies_before_modifiers(self, username):
        username.set_value(123)
        assert username.get_value() == "123"

    def test_rule_failure(self):
        slot = ValueSlot("count", rule=integer())
        with pytest.raises(InvalidValue) as excinfo:
            slot.set_value("many")
        assert excinfo.value.result.message == DEFAULT_ERROR_MESSAGE
        assert "integer" in excinfo.value.diagnostic
        assert excinfo.value.result.messages == [DEFAULT_ERROR_MESSAGE]

    def test_none_not_nullable(self, username):
        with pytest.raises(InvalidValue) as excinfo:
            username.set_value(None)
        assert excinfo.value.result.message == NULL_ERROR_MESSAGE

    def test_none_nullable_skips_modifiers(self):
        slot = ValueSlot("note", rule=string(), nullable=True)
        slot.add_constraint("length", value=3)
        slot.set_value(None)
        assert slot.get_value() is None

    def test_success_clears_previous_error(self, username):
        assert not username.try_set_value("a")
        assert username.try_set_value("abc")
        assert username.error is None
        assert all(not m.has_error for m in username.modifiers())

    def test_several_failures_joined(self):
        slot = ValueSlot("code")
        slot.add_constraint("values", values=["abc"])
        slot.add_constraint("wildcards", values=["x*"])
        with pytest.raises(InvalidValue) as excinfo:
            slot.set_value("zzz")
        result = excinfo.value.result
        assert len(result.failures) == 2
        assert result.message == "; ".join(result.messages)


class TestValueSlotModifiers:
    """Test modifier management."""

    def test_cannot_add_after_value(self, username):
        username.set_value("abc")
        with pytest.raises(AlreadyInitialized):
            username.add_constraint("minimum", value=1)
        with pytest.raises(AlreadyInitialized):
            username.add_modifier(Constraint.build("minimum", {"value": 1}))
        username.unset_value()
        username.add_constraint("wildcards", values=["*"])
        assert len(username.pipeline) == 3

    def test_labels_and_messages(self):
        slot = ValueSlot("age", rule=integer())
        slot.add_constraint("minimum", value=18)
        slot.add_constraint("maximum", value=99, exclusive=True)
        assert slot.modifier_labels() == [
            "Minimum allowed value: 18",
            "Maximum allowed value: 99 (exclusive)",
        ]
        assert slot.modifier_messages() == [
            "Only a value greater than or equal to 18 is allowed.",
            "Only a value less than 99 is allowed.",
        ]

    def test_schema(self, username):
        schema = username.get_schema()
        assert schema["name"] == "username"
        assert schema["nullable"] is False
        assert [m["name"] for m in schema["modifiers"]] == ["truncate", "length_range"]

    def test_clone(self, username):
        copy = username.clone()
        copy.set_value("abc")
        assert not username.is_initialized
        assert copy.get_value() == "abc"
        assert repr(copy) == "ValueSlot('username', modifiers=2)"

    def test_clone_of_empty_slot(self, username):
        """A slot without a value clones into a slot without a value."""
        copy = username.clone()
        assert not copy.is_initialized
        with pytest.raises(NotInitialized):
            copy.get_value()
        copy.add_constraint("length", value=3)
        assert len(copy.modifiers()) == 3

    def test_timestamp_out_of_range(self):
        slot = ValueSlot("created")
        slot.add_filter("timestamp_format", value="%Y", timezone="America/New_York")
        assert not slot.try_set_value(datetime.min)
        assert slot.has_error
        assert not slot.is_initialized
