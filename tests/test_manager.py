"""
Tests for PropertiesManager.

These tests verify:
    - Declaration and initialize-once lifecycle
    - Write-once and manager-wide readonly semantics
    - Lazy materialization through a builder
    - Persisted initialization and unset restoring persisted values
    - Scope-aware and persisted views
    - Cloning
"""

import pytest

from modelkit.exceptions import (
    AlreadyDeclared,
    AlreadyInitialized,
    Immutable,
    Inaccessible,
    InvalidProperty,
    InvalidValue,
    NotInitialized,
    PropertyNotFound,
    RequiredMissing,
)
from modelkit.manager import ManagerState, PropertiesManager
from modelkit.property import Declaration, Property, PropertyMode
from modelkit.rules import integer, string


class Owner:
    pass


class SubOwner(Owner):
    pass


@pytest.fixture
def owner():
    return Owner()


def make_manager(owner, **declarations):
    manager = PropertiesManager(owner)
    manager.declare_all(declarations)
    return manager


class TestDeclaration:
    """Test property declaration."""

    def test_declare_with_options(self, owner):
        manager = PropertiesManager(owner)
        prop = manager.declare("age", rule=integer())
        assert isinstance(prop, Property)
        assert manager.has("age")
        assert "age" in manager
        assert manager.names() == ["age"]

    def test_duplicate_declaration(self, owner):
        manager = PropertiesManager(owner)
        manager.declare("age")
        with pytest.raises(AlreadyDeclared):
            manager.declare("age")

    def test_declare_after_initialize(self, owner):
        manager = PropertiesManager(owner)
        manager.initialize()
        with pytest.raises(AlreadyInitialized):
            manager.declare("late")

    def test_declaration_and_options_are_exclusive(self, owner):
        manager = PropertiesManager(owner)
        with pytest.raises(TypeError):
            manager.declare("x", Declaration(), rule=integer())

    def test_base_mode(self, owner):
        """Declarations without a mode take the manager's mode."""
        manager = PropertiesManager(owner, mode=PropertyMode.READ_ONLY)
        manager.declare("x")
        manager.declare("y", mode=PropertyMode.READ_WRITE)
        assert manager.property("x").mode is PropertyMode.READ_ONLY
        assert manager.property("y").mode is PropertyMode.READ_WRITE

    def test_unknown_property(self, owner):
        manager = PropertiesManager(owner)
        manager.initialize()
        with pytest.raises(PropertyNotFound):
            manager.get("nope")
        assert not manager.has("nope")
        assert not manager.isset("nope")


class TestInitialization:
    """Test the initialize-once lifecycle."""

    def test_initialize_sets_values(self, owner):
        manager = make_manager(owner, age=Declaration(rule=integer()))
        assert manager.initialize({"age": "30"}) == {}
        assert manager.get("age") == 30
        assert manager.is_initialized
        assert not manager.is_persisted

    def test_initialize_twice(self, owner):
        manager = make_manager(owner)
        manager.initialize()
        with pytest.raises(AlreadyInitialized):
            manager.initialize()

    def test_unknown_name_fails(self, owner):
        manager = make_manager(owner, age=Declaration())
        with pytest.raises(PropertyNotFound) as excinfo:
            manager.initialize({"age": 1, "color": "red"})
        assert excinfo.value.name == "color"

    def test_remainder_collects_unknown_names(self, owner):
        manager = make_manager(owner, age=Declaration())
        rest = manager.initialize({"age": 1, "color": "red"}, remainder=True)
        assert rest == {"color": "red"}
        assert manager.get("age") == 1

    def test_required_missing(self, owner):
        """All missing required names are reported together."""
        manager = make_manager(
            owner,
            a=Declaration(required=True),
            b=Declaration(required=True),
            c=Declaration(),
        )
        with pytest.raises(RequiredMissing) as excinfo:
            manager.initialize({"c": 1})
        assert excinfo.value.names == ["a", "b"]
        assert not manager.is_initialized

    def test_read_only_written_at_initialization(self, owner):
        manager = make_manager(owner, x=Declaration(mode=PropertyMode.READ_ONLY))
        manager.initialize({"x": 1})
        assert manager.get("x") == 1
        with pytest.raises(Inaccessible):
            manager.set("x", 2)

    def test_strict_read_only_cannot_be_initialized(self, owner):
        manager = make_manager(owner, x=Declaration(mode=PropertyMode.STRICT_READ_ONLY, default=1))
        with pytest.raises(Inaccessible):
            manager.initialize({"x": 2})

    def test_strict_read_only_cannot_be_loaded(self, owner):
        manager = make_manager(owner, x=Declaration(mode=PropertyMode.STRICT_READ_ONLY, default=1))
        with pytest.raises(Inaccessible):
            manager.initialize({"x": 2}, persisted=True)

    def test_invalid_initial_value(self, owner):
        manager = make_manager(owner, age=Declaration(rule=integer()))
        with pytest.raises(InvalidValue):
            manager.initialize({"age": "old"})

    def test_failed_initialization_stores_nothing(self, owner):
        """A rejected value leaves earlier values unwritten, so a retry works."""
        manager = make_manager(
            owner,
            a=Declaration(mode=PropertyMode.WRITE_ONCE),
            b=Declaration(rule=integer()),
        )
        with pytest.raises(InvalidValue):
            manager.initialize({"a": 1, "b": "bad"})
        assert not manager.is_initialized
        assert not manager.property("a").was_written()
        assert not manager.property("a").has_value()

        manager.initialize({"a": 2, "b": 3})
        assert manager.get("a") == 2
        assert manager.get("b") == 3

    def test_failed_persisted_initialization_stores_nothing(self, owner):
        manager = make_manager(owner, a=Declaration(), b=Declaration(rule=integer()))
        with pytest.raises(InvalidValue):
            manager.initialize({"a": 1, "b": "bad"}, persisted=True)
        assert not manager.property("a").has_value()
        assert not manager.is_persisted


class TestAccess:
    """Test get/set/unset through the manager."""

    def test_set_get_round_trip(self, owner):
        """A value passing the rule reads back as the rule's output."""
        manager = make_manager(owner, age=Declaration(rule=integer()), name=Declaration(rule=string()))
        manager.initialize()
        manager.set("age", "7").set("name", 12)
        assert manager.get("age") == 7
        assert manager.get("name") == "12"
        assert manager.isset("age")

    def test_rejected_value_keeps_previous(self, owner):
        manager = make_manager(owner, age=Declaration(rule=integer()))
        manager.initialize({"age": 1})
        with pytest.raises(InvalidValue):
            manager.set("age", "old")
        assert manager.get("age") == 1

    def test_write_once_after_set(self, owner):
        manager = make_manager(owner, id=Declaration(mode=PropertyMode.WRITE_ONCE))
        manager.initialize()
        manager.set("id", 1)
        with pytest.raises(Immutable):
            manager.set("id", 2)

    def test_unset_required(self, owner):
        """A required property cannot be emptied once given."""
        manager = make_manager(owner, email=Declaration(required=True), nick=Declaration(nullable=True))
        manager.initialize({"email": "a@b.c", "nick": "ab"})
        with pytest.raises(Inaccessible):
            manager.unset("email")
        assert manager.get("email") == "a@b.c"
        manager.unset("nick")
        assert not manager.isset("nick")

    def test_write_once_counts_initialization(self, owner):
        """A value given at initialization is the one allowed write."""
        manager = make_manager(owner, id=Declaration(mode=PropertyMode.WRITE_ONCE))
        manager.initialize({"id": 1})
        with pytest.raises(Immutable):
            manager.set("id", 2)

    def test_write_only(self, owner):
        manager = make_manager(owner, password=Declaration(mode=PropertyMode.WRITE_ONLY))
        manager.initialize({"password": "hunter2"})
        assert manager.isset("password")
        with pytest.raises(Inaccessible):
            manager.get("password")
        assert manager.get_all() == {}

    def test_defaulted(self, owner):
        manager = make_manager(owner, n=Declaration(default=3))
        manager.initialize()
        assert manager.defaulted("n")
        manager.set("n", 4)
        assert not manager.defaulted("n")
        manager.unset("n")
        assert manager.get("n") == 3

    def test_default_factory_called_once(self, owner):
        calls = []

        def factory():
            calls.append(1)
            return {"created": len(calls)}

        manager = make_manager(owner, meta=Declaration(default_factory=factory))
        manager.initialize()
        assert manager.get("meta") == {"created": 1}
        assert manager.get("meta") is manager.get("meta")
        assert len(calls) == 1


class TestReadonly:
    """Test the one-way manager readonly switch."""

    def test_readonly_blocks_mutation(self, owner):
        manager = make_manager(owner, x=Declaration(), y=Declaration(default=1))
        manager.initialize({"x": 1})
        manager.set_all_as_readonly()
        assert manager.is_readonly
        assert manager.state is ManagerState.READONLY
        with pytest.raises(Immutable):
            manager.set("x", 2)
        with pytest.raises(Immutable):
            manager.unset("y")
        assert manager.get("x") == 1
        assert manager.get("y") == 1

    def test_readonly_keeps_property_modes(self, owner):
        manager = make_manager(owner, x=Declaration())
        manager.initialize()
        manager.set_all_as_readonly()
        assert manager.property("x").mode is PropertyMode.READ_WRITE


class TestAutomatic:
    """Test automatic properties through the manager."""

    def test_computed_from_owner(self, owner):
        owner.first, owner.last = "Ada", "Lovelace"
        manager = make_manager(
            owner, full=Declaration(automatic=lambda o: f"{o.first} {o.last}")
        )
        manager.initialize()
        assert manager.get("full") == "Ada Lovelace"

    def test_not_given_at_initialization(self, owner):
        manager = make_manager(owner, full=Declaration(automatic=lambda o: "x"))
        with pytest.raises(Inaccessible):
            manager.initialize({"full": "y"})

    def test_not_set_before_persisted(self, owner):
        manager = make_manager(owner, full=Declaration(automatic=lambda o: "x"))
        manager.initialize()
        with pytest.raises(Inaccessible):
            manager.set("full", "y")

    def test_not_unset_before_persisted(self, owner):
        manager = make_manager(owner, full=Declaration(automatic=lambda o: "x"))
        manager.initialize()
        assert manager.get("full") == "x"
        with pytest.raises(Inaccessible):
            manager.unset("full")
        assert manager.get("full") == "x"

    def test_isset_does_not_compute(self, owner):
        """Asking isset leaves the single write of a write-once property unused."""
        calls = []

        def compute(o):
            calls.append(1)
            return "computed"

        manager = make_manager(
            owner, full=Declaration(mode=PropertyMode.WRITE_ONCE, automatic=compute)
        )
        manager.initialize({}, persisted=True)
        assert not manager.isset("full")
        assert calls == []
        assert not manager.property("full").was_written()
        manager.set("full", "given")
        assert manager.get("full") == "given"
        assert calls == []

    def test_loaded_when_persisted(self, owner):
        """Persisted data bypasses the computation."""
        calls = []

        def compute(o):
            calls.append(1)
            return "computed"

        manager = make_manager(owner, full=Declaration(automatic=compute))
        manager.initialize({"full": "stored"}, persisted=True)
        assert manager.get("full") == "stored"
        manager.set("full", "changed")
        assert manager.get("full") == "changed"
        assert calls == []


class TestPersisted:
    """Test initialization from persisted data."""

    def test_persisted_values_are_loaded(self, owner):
        manager = make_manager(owner, x=Declaration(mode=PropertyMode.READ_ONLY, rule=integer()))
        manager.initialize({"x": "5"}, persisted=True)
        assert manager.is_persisted
        assert manager.get("x") == 5

    def test_unset_restores_persisted_value(self, owner):
        manager = make_manager(owner, x=Declaration(), y=Declaration(default=0))
        manager.initialize({"x": [1]}, persisted=True)
        manager.get("x").append(2)
        manager.set("y", 9)
        manager.unset("x").unset("y")
        assert manager.get("x") == [1]
        assert manager.get("y") == 0


class TestLazy:
    """Test on-demand materialization."""

    def make_lazy(self, owner, calls):
        def builder(name):
            calls.append(name)
            if name.startswith("n_"):
                return Declaration(rule=integer(), default=0)
            return None
        return PropertiesManager(owner, builder=builder)

    def test_builder_materializes_once(self, owner):
        calls = []
        manager = self.make_lazy(owner, calls)
        manager.initialize()
        assert manager.is_lazy
        assert not manager.loaded("n_a")
        assert manager.get("n_a") == 0
        assert manager.loaded("n_a")
        manager.set("n_a", "4")
        assert manager.get("n_a") == 4
        assert calls == ["n_a"]

    def test_iteration_follows_first_reference(self, owner):
        calls = []
        manager = self.make_lazy(owner, calls)
        manager.initialize({"n_b": 1})
        manager.has("n_a")
        manager.has("n_c")
        assert list(manager) == ["n_b", "n_a", "n_c"]
        assert len(manager) == 3

    def test_unknown_name_not_memoized(self, owner):
        calls = []
        manager = self.make_lazy(owner, calls)
        assert not manager.has("other")
        assert not manager.has("other")
        assert calls == ["other", "other"]
        with pytest.raises(PropertyNotFound):
            manager.get("other")

    def test_builder_returning_garbage(self, owner):
        manager = PropertiesManager(owner, builder=lambda name: 42)
        with pytest.raises(InvalidProperty):
            manager.has("x")

    def test_builder_returning_wrong_name(self, owner):
        manager = PropertiesManager(owner, builder=lambda name: Property("other"))
        with pytest.raises(InvalidProperty):
            manager.get("x")

    def test_builder_cannot_change_after_initialize(self, owner):
        manager = PropertiesManager(owner)
        manager.initialize()
        with pytest.raises(AlreadyInitialized):
            manager.set_builder(lambda name: None)


class TestViews:
    """Test get_all views."""

    def test_get_all_order_and_skips(self, owner):
        manager = make_manager(
            owner,
            b=Declaration(),
            a=Declaration(default=1),
            unset=Declaration(),
            hidden=Declaration(mode=PropertyMode.WRITE_ONLY),
        )
        manager.initialize({"b": 2, "hidden": 3})
        assert list(manager.get_all().items()) == [("b", 2), ("a", 1)]

    def test_persisted_view_skips_transient(self, owner):
        manager = make_manager(owner, x=Declaration(), cache=Declaration(transient=True, default=0))
        manager.initialize({"x": 1})
        assert manager.get_all() == {"x": 1, "cache": 0}
        assert manager.get_all(persisted_view=True) == {"x": 1}

    def test_scope_bound_property(self, owner):
        manager = make_manager(owner, secret=Declaration(bind=Owner), public=Declaration())
        manager.initialize({"secret": "s", "public": "p"})
        with pytest.raises(Inaccessible):
            manager.get("secret")
        with pytest.raises(Inaccessible):
            manager.set("secret", "t")
        assert manager.get("secret", scope=Owner) == "s"
        manager.set("secret", "t", scope=SubOwner)
        assert manager.get_all() == {"public": "p"}
        assert manager.get_all(scope=Owner) == {"secret": "t", "public": "p"}


class TestClone:
    """Test cloning a manager for another owner."""

    def test_clone_is_independent(self, owner):
        manager = make_manager(owner, x=Declaration(), items=Declaration(default_factory=list))
        manager.initialize({"x": 1})
        manager.get("items").append("a")

        other = Owner()
        clone = manager.clone(other)
        clone.set("x", 2)
        clone.get("items").append("b")

        assert clone.owner is other
        assert manager.owner is owner
        assert manager.get("x") == 1
        assert manager.get("items") == ["a"]
        assert clone.get("items") == ["a", "b"]
        assert clone.is_initialized

    def test_clone_keeps_readonly_and_persisted(self, owner):
        manager = make_manager(owner, x=Declaration())
        manager.initialize({"x": 1}, persisted=True)
        manager.set_all_as_readonly()
        clone = manager.clone(Owner())
        assert clone.is_readonly
        assert clone.is_persisted
        with pytest.raises(Immutable):
            clone.set("x", 2)

    def test_clone_of_unset_property(self, owner):
        """A property without a value stays without one in the clone."""
        manager = make_manager(owner, x=Declaration(), y=Declaration(nullable=True))
        manager.initialize()
        clone = manager.clone(Owner())
        assert not clone.isset("x")
        assert not clone.property("x").has_value()
        with pytest.raises(NotInitialized):
            clone.get("x")
        clone.set("y", None)
        assert clone.get("y") is None
        assert not manager.property("y").has_value()
