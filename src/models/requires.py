"""
Dependency declaration models

Defines the target audiences a JavaScript dependency can be declared for and
the immutable Dependency record that the assembler injects into wrappers.
"""

import re
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class DependencyTarget(Enum):
    """
    Runtime environments a dependency (or a wrapper) is meant for

    Mirrors the conditional-export keys used in an npm package.json, plus the
    two build-only audiences ``all`` and ``cli``.
    """
    ALL = "all"            # every wrapper and every CLI launcher
    CLI = "cli"            # CLI launchers only, never the library entry points
    NODE = "node"          # "node" conditional export (also seen by the CLI)
    BROWSER = "browser"    # "browser" conditional export
    DEFAULT = "default"    # "default" conditional export

    @classmethod
    def parse(cls, value: Any) -> "DependencyTarget":
        """
        Convert a user-facing value (string or enum) to a DependencyTarget

        Raises:
            ValueError: If the value names no known target
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            names = ", ".join(t.value for t in cls)
            raise ValueError(f"Unknown dependency target '{value}' (expected one of: {names})")


def identifier_fromPackage(package: str) -> str:
    """
    Derive a valid JS identifier from a module specifier

    Example:
        >>> identifier_fromPackage("@parcel/watcher")
        'parcel_watcher'
    """
    return re.sub(r'[^a-zA-Z0-9_]', '_', re.sub(r'^@', '', package, count=1))


@dataclass(frozen=True)
class Dependency:
    """
    One JavaScript package to load and hand to the compiled module

    Attributes:
        package: Argument passed to require()/import (e.g., "chokidar")
        identifier: Binding name inside the compiled module. Defaults to a
                    sanitized form of ``package``.
        target: Audience the dependency is injected for
        lazy: Load on first access instead of when the module loads
        optional: Resolve to null instead of failing when the package is absent

    Example:
        >>> Dependency("@parcel/watcher", target=DependencyTarget.NODE).identifier
        'parcel_watcher'
    """
    package: str
    identifier: str = field(default="")
    target: DependencyTarget = field(default=DependencyTarget.ALL)
    lazy: bool = field(default=False)
    optional: bool = field(default=False)

    def __post_init__(self) -> None:
        if not self.package:
            raise ValueError("Dependency package must be a non-empty string")
        if not self.identifier:
            object.__setattr__(self, "identifier", identifier_fromPackage(self.package))
            if not self.identifier:
                raise ValueError(f"Can't derive an identifier from package '{self.package}'")
        if not isinstance(self.target, DependencyTarget):
            object.__setattr__(self, "target", DependencyTarget.parse(self.target))

    @classmethod
    def fromDeclaration(cls, declaration: Any) -> "Dependency":
        """
        Build a Dependency from a pkg.yaml entry

        Accepts either a bare package string or a mapping with the keys
        ``package``, ``identifier``, ``target``, ``lazy`` and ``optional``.

        Raises:
            ValueError: If the declaration is malformed
        """
        if isinstance(declaration, cls):
            return declaration
        if isinstance(declaration, str):
            return cls(declaration)
        if not isinstance(declaration, dict):
            raise ValueError(f"Dependency declaration must be a string or mapping, got: {declaration!r}")

        fields: Dict[str, Any] = dict(declaration)
        package = fields.pop("package", None)
        if not isinstance(package, str) or not package:
            raise ValueError(f"Dependency declaration is missing a 'package' string: {declaration!r}")

        identifier: Optional[str] = fields.pop("identifier", None)
        target = DependencyTarget.parse(fields.pop("target", "all"))
        lazy = bool(fields.pop("lazy", False))
        optional = bool(fields.pop("optional", False))
        if fields:
            raise ValueError(f"Unknown dependency fields for '{package}': {', '.join(sorted(fields))}")

        return cls(package, identifier=identifier or "", target=target, lazy=lazy, optional=optional)

    def __str__(self) -> str:
        return f"const {self.identifier} = require('{self.package}') on {self.target.value}"
