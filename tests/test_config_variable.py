"""
ConfigVariable tests

Tests lazy defaults, overrides, freezing and the container freeze helpers.
"""

import pytest

from clipkg.lib.config_variable import (
    ConfigError,
    ConfigVariable,
    freeze_list,
    freeze_mapping,
    thaw,
)


class TestValues:
    """Test default, explicit and callback values"""

    def test_value(self):
        """Plain values are returned as-is"""
        assert ConfigVariable.fromValue(123).value == 123

    def test_callback_is_lazy_and_cached(self):
        """Callbacks run once, on first access"""
        calls = []

        def compute():
            calls.append(1)
            return "computed"

        variable = ConfigVariable.fromFunction(compute)
        assert calls == []
        assert variable.value == "computed"
        assert variable.value == "computed"
        assert calls == [1]

    def test_needs_exactly_one_source(self):
        """Either a value or a callback, not both or neither"""
        with pytest.raises(ValueError):
            ConfigVariable()
        with pytest.raises(ValueError):
            ConfigVariable(value=1, callback=lambda: 2)

    def test_set_value_overrides_callback(self):
        """Explicit value replaces the callback"""
        variable = ConfigVariable.fromFunction(lambda: "default")
        variable.value = "explicit"
        assert variable.value == "explicit"
        assert variable.fn is None

    def test_set_fn_overrides_value(self):
        """New callback replaces the cached value"""
        variable = ConfigVariable.fromValue("old")
        variable.fn = lambda: "new"
        assert variable.value == "new"

    def test_default_value_survives_override(self):
        """default_value reports the original default"""
        variable = ConfigVariable.fromFunction(lambda: "default")
        variable.value = "explicit"
        assert variable.default_value == "default"

    def test_none_is_a_value(self):
        """None is a legitimate cached value"""
        variable = ConfigVariable.fromFunction(lambda: None)
        assert variable.value is None


class TestFreeze:
    """Test freezing"""

    def test_set_after_freeze_fails(self):
        """Frozen variables refuse new values"""
        variable = ConfigVariable.fromValue(1, name="version")
        variable.freeze()
        assert variable.is_frozen
        with pytest.raises(ConfigError) as exc_info:
            variable.value = 2
        assert str(exc_info.value) == "Can't modify config variable 'version' after the build has started."

    def test_set_fn_after_freeze_fails(self):
        """Frozen variables refuse new callbacks"""
        variable = ConfigVariable.fromValue(1)
        variable.freeze()
        with pytest.raises(ConfigError):
            variable.fn = lambda: 2

    def test_freeze_transforms_cached_value(self):
        """Freeze transform applies to an already computed value"""
        variable = ConfigVariable.fromValue([1, 2], freeze=freeze_list)
        variable.freeze()
        assert variable.value == (1, 2)

    def test_freeze_transforms_lazy_value(self):
        """Freeze transform applies when a lazy value is computed later"""
        variable = ConfigVariable.fromFunction(lambda: {"a": [1]}, freeze=freeze_mapping)
        variable.freeze()
        value = variable.value
        with pytest.raises(TypeError):
            value["b"] = 2
        assert value["a"] == (1,)

    def test_freeze_twice(self):
        """Freezing is idempotent"""
        variable = ConfigVariable.fromValue([1], freeze=freeze_list)
        variable.freeze()
        variable.freeze()
        assert variable.value == (1,)


class TestHelpers:
    """Test container helpers"""

    def test_freeze_list_none(self):
        """None stays None"""
        assert freeze_list(None) is None

    def test_thaw(self):
        """thaw() restores plain dicts and lists"""
        frozen = freeze_mapping({"a": {"b": [1, {"c": 2}]}})
        assert thaw(frozen) == {"a": {"b": [1, {"c": 2}]}}
