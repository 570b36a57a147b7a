"""
Lazily-defaulted, overridable, freezable configuration values

A ConfigVariable holds one package setting in one of three states:

    default function -> computed on first read and cached
    explicit value   -> set by the user, replaces the default
    frozen           -> no further changes; the value is made immutable

Package configuration is collected before a build starts and frozen before
any artifact is produced, so every build step sees the same values.

Usage:
    name = ConfigVariable.fromFunction(lambda: pubspec_name)
    name.value = "my-tool"          # override
    name.freeze()
    name.value = "other"            # raises ConfigError
"""

from types import MappingProxyType
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

_UNSET: Any = object()


class ConfigError(Exception):
    """Raised when package configuration is missing, invalid or frozen"""
    pass


class ConfigVariable(Generic[T]):
    """
    A configuration value with a lazy default

    Attributes:
        name: Setting name used in error messages (e.g., "npm_package_json")
    """

    def __init__(
        self,
        name: str = "",
        value: Any = _UNSET,
        callback: Optional[Callable[[], T]] = None,
        freeze: Optional[Callable[[T], T]] = None,
    ) -> None:
        if (value is _UNSET) == (callback is None):
            raise ValueError("ConfigVariable needs exactly one of value or callback")
        self.name = name
        self._value: Any = value
        self._default_value: Any = value
        self._cached = value is not _UNSET
        self._callback = callback
        self._default_callback = callback
        self._freeze = freeze
        self._frozen = False

    @classmethod
    def fromValue(cls, value: T, name: str = "", freeze: Optional[Callable[[T], T]] = None) -> "ConfigVariable[T]":
        return cls(name=name, value=value, freeze=freeze)

    @classmethod
    def fromFunction(
        cls, callback: Callable[[], T], name: str = "", freeze: Optional[Callable[[T], T]] = None
    ) -> "ConfigVariable[T]":
        return cls(name=name, callback=callback, freeze=freeze)

    @property
    def value(self) -> T:
        """The current value, computing and caching the default if needed"""
        if not self._cached:
            self._value = self._callback()
            self._cached = True
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        self._mutable_check()
        self._callback = None
        self._value = value
        self._cached = True

    @property
    def fn(self) -> Optional[Callable[[], T]]:
        return self._callback

    @fn.setter
    def fn(self, callback: Callable[[], T]) -> None:
        """Replace the value with a lazily evaluated callback"""
        self._mutable_check()
        self._callback = callback
        self._value = _UNSET
        self._cached = False

    @property
    def default_value(self) -> T:
        """The original default, even if the value was overridden since"""
        if self._default_callback is not None:
            return self._default_callback()
        return self._default_value

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Mark the variable unmodifiable, applying the freeze transform"""
        if self._frozen:
            return
        self._frozen = True
        if self._freeze is None:
            return
        if self._cached:
            self._value = self._freeze(self._value)
        else:
            callback, transform = self._callback, self._freeze
            self._callback = lambda: transform(callback())

    def _mutable_check(self) -> None:
        if self._frozen:
            label = f" '{self.name}'" if self.name else ""
            raise ConfigError(f"Can't modify config variable{label} after the build has started.")

    def __str__(self) -> str:
        return str(self.value)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else ("cached" if self._cached else "lazy")
        return f"ConfigVariable({self.name!r}, {state})"


def freeze_list(value: Any) -> Any:
    return None if value is None else tuple(value)


def freeze_mapping(value: Any) -> Any:
    """Recursively turn dicts into read-only mappings and lists into tuples"""
    if isinstance(value, dict):
        return MappingProxyType({k: freeze_mapping(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(freeze_mapping(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of freeze_mapping, for serializing frozen values"""
    if isinstance(value, (dict, MappingProxyType)):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(v) for v in value]
    return value
