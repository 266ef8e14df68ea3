"""Tests for CapabilityRegistry and the standard module set."""

from luaplug.capabilities.registry import CapabilityRegistry, standard_registry


class TestCapabilityRegistry:
    """Registration and lookup."""

    def test_register_and_lookup(self):
        registry = CapabilityRegistry()
        registry.register("greet", lambda instance: {}, "says hello")

        assert registry.has("greet")
        assert not registry.has("missing")
        assert registry.names() == ["greet"]
        assert registry.describe() == {"greet": "says hello"}

    def test_register_replaces(self):
        registry = CapabilityRegistry()
        registry.register("mod", lambda instance: {"v": 1})
        registry.register("mod", lambda instance: {"v": 2}, "second")

        assert registry.names() == ["mod"]
        assert registry.describe()["mod"] == "second"

    def test_names_sorted(self):
        registry = CapabilityRegistry()
        for name in ("zeta", "alpha", "mid"):
            registry.register(name, lambda instance: {})

        assert registry.names() == ["alpha", "mid", "zeta"]

    def test_copy_is_independent(self):
        registry = CapabilityRegistry()
        registry.register("one", lambda instance: {})

        clone = registry.copy()
        clone.register("two", lambda instance: {})

        assert registry.names() == ["one"]
        assert clone.names() == ["one", "two"]


class TestStandardRegistry:
    """Built-in module set."""

    def test_contains_every_builtin(self):
        names = standard_registry().names()

        assert names == sorted([
            "filepath", "http", "inspect", "ioutil", "json", "regexp",
            "strings", "tac", "tcp", "time", "xmlpath", "yaml",
        ])

    def test_does_not_include_plugin(self):
        assert not standard_registry().has("plugin")

    def test_every_module_described(self):
        assert all(standard_registry().describe().values())

    def test_fresh_registry_each_call(self):
        first = standard_registry()
        first.register("extra", lambda instance: {})

        assert not standard_registry().has("extra")
