"""
Module assembly data models

Type-safe structures returned by the ModuleAssembler.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..lib.requires import DependencySet


class ModuleFormat(Enum):
    """Module system a generated wrapper is written in"""
    CJS = "cjs"
    ESM = "esm"


@dataclass(frozen=True)
class ModuleWrapper:
    """
    One generated entry-point file

    Attributes:
        filename: File name relative to the npm package root
                  (e.g., "sass.node.js", "sass.browser.cjs", "sass.js")
        target: Wrapper audience ("node", "browser", "default", "cli"), or
                None for the injected compiled module itself
        format: CommonJS or ESM
        dependencies: Identifiers injected by this wrapper, in load order
        text: Full file contents

    Example:
        ModuleWrapper(
            filename="sass.default.js",
            target="default",
            format=ModuleFormat.CJS,
            dependencies=("chokidar",),
            text="const library = require('./sass.dart.js');\\n...",
        )
    """
    filename: str
    target: Optional[str]
    format: ModuleFormat
    dependencies: tuple
    text: str


@dataclass
class AssemblyResult:
    """
    Everything the assembler produced for one npm package

    Attributes:
        wrappers: Generated files in write order. The first entry is always
                  the injected compiled module.
        extracted: Implicit all-target dependencies synthesized for literal
                   ``self.require("...")`` calls with no declaration
        package_json: Fields to merge over the user's package.json
                      ("version", "bin", and optionally "main"/"exports")
    """
    wrappers: List[ModuleWrapper]
    extracted: "DependencySet"
    package_json: Dict[str, Any] = field(default_factory=dict)

    def files(self) -> Dict[str, str]:
        """Map of file name to contents, in write order"""
        return {wrapper.filename: wrapper.text for wrapper in self.wrappers}

    def wrapper_get(self, filename: str) -> Optional[ModuleWrapper]:
        """Look up a generated wrapper by file name"""
        for wrapper in self.wrappers:
            if wrapper.filename == filename:
                return wrapper
        return None
