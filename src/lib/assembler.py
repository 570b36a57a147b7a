"""
Multi-target JavaScript module assembler

Turns one compiled JavaScript module into the set of files an npm package
needs so that each runtime gets exactly the dependencies declared for it.

Files produced for a package named "sass":

    sass.core.js          compiled module wrapped in an exported load()
                          function that receives its dependencies
    <exe>.js              one CLI launcher per executable
    sass.default.js       "default" conditional export (when a module main
                          library is configured)
    sass.node.js          "node" conditional export (node declarations or ESM)
    sass.browser.js       "browser" conditional export (browser declarations)

With ESM exports enabled, file extensions follow these rules:

    .js   compiled module, CJS wrappers consumed by Node, ESM wrappers
          consumed by browsers and bundlers
    .cjs  CJS wrappers consumed outside Node
    .mjs  ESM wrapper consumed by Node (re-exports through the CJS wrapper so
          both loaders share one module instance)

Literal ``self.require("pkg")`` calls in the compiled module are rewritten
to ``self.<identifier>`` so bundlers don't see dynamic requires. Packages
required this way without a declaration get an implicit all-target one.
"""

import json
import re
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.assembly import AssemblyResult, ModuleFormat, ModuleWrapper
from ..models.requires import Dependency, DependencyTarget
from .config_variable import ConfigError
from .log import LOG
from .requires import DependencySet, TargetedDependencySet

DYNAMIC_REQUIRE = re.compile(r'self\.require\(("[^"]+")\)')

# The compiled module runs against its own global-like scope object.
SCOPE_PREAMBLE = (
    "var self = Object.create(globalThis);\n"
    "self.self = self;\n"
)

ESM_EXPORTS_CHANNEL = """\
// There's no reliable way to tell whether this file was loaded as an ES
// module or as CommonJS once a bundler has processed it, so load() is handed
// over through a stack on the global object. A stack lets several packages
// built this way depend on each other without clobbering their exports.
if (!globalThis._cliPkgExports) {
  globalThis._cliPkgExports = [];
}
let _cliPkgExports = {};
globalThis._cliPkgExports.push(_cliPkgExports);
"""

ESM_LIBRARY_POP = (
    "const library = globalThis._cliPkgExports.pop();\n"
    "if (globalThis._cliPkgExports.length === 0) delete globalThis._cliPkgExports;\n"
)


def entryPoint_default(index: int) -> str:
    """Export name used for the index-th executable when none is configured"""
    return f"cli_pkg_main_{index}_"


class ModuleAssembler:
    """
    Builds wrapper files and package.json fields for one npm package
    """

    def __init__(
        self,
        npm_name: str,
        requires: TargetedDependencySet,
        executables: Optional[Dict[str, str]] = None,
        esm_exports: Optional[Iterable[str]] = None,
        has_main_library: bool = False,
        force_strict_mode: bool = False,
    ) -> None:
        """
        Args:
            npm_name: The "name" field of package.json
            requires: User dependency declarations
            executables: Launcher name -> entry point exported by the
                         compiled module
            esm_exports: Names to re-export from ESM wrappers; None disables
                         ESM output
            has_main_library: Whether a module main library is configured,
                              i.e. the package is usable as a library
            force_strict_mode: Prefix the compiled module with "use strict"
        """
        self.npm_name = npm_name
        self.requires = requires
        self.executables = dict(executables or {})
        self.esm_exports = None if esm_exports is None else list(esm_exports)
        self.has_main_library = has_main_library
        self.force_strict_mode = force_strict_mode

    @property
    def core_filename(self) -> str:
        return f"{self.npm_name}.core.js"

    @property
    def supports_esm(self) -> bool:
        return self.esm_exports is not None

    def validate(self) -> None:
        """
        Check that the declarations can be honored

        Raises:
            ConfigError: If target-specific dependencies or ESM exports are
                         declared without a module main library
        """
        if self.has_main_library:
            return
        if self.requires.has_platform_targets:
            raise ConfigError(
                "If js_module_main_library isn't set, all js_requires must have "
                "target 'cli' or 'all'."
            )
        if self.supports_esm:
            raise ConfigError("If js_esm_exports is set, js_module_main_library must be set as well.")

    # -- compiled module -----------------------------------------------------

    def compiledModule_inject(self, compiled: str) -> Tuple[str, DependencySet]:
        """
        Wrap the compiled module so its dependencies are injected by load()

        Args:
            compiled: Compiled JavaScript text

        Returns:
            (wrapped module text, implicit dependencies extracted from
            literal self.require() calls)
        """
        extracted = DependencySet()

        def require_replace(match: re.Match) -> str:
            package = json.loads(match.group(1))
            declared = self.requires.find_package(package)
            if declared is not None:
                return f"self.{declared.identifier}"
            implicit = Dependency(package, target=DependencyTarget.ALL)
            if extracted.add(implicit):
                LOG(f"Synthesized implicit dependency for require('{package}')", level=2)
            return f"self.{implicit.identifier}"

        body = DYNAMIC_REQUIRE.sub(require_replace, compiled)

        parts: List[str] = []
        if self.force_strict_mode:
            parts.append('"use strict";\n')

        exports_variable = "exports"
        if self.supports_esm:
            parts.append(ESM_EXPORTS_CHANNEL)
            exports_variable = "_cliPkgExports"

        parts.append(f"{exports_variable}.load = function(_cliPkgRequires, _cliPkgExportParam) {{\n")
        parts.append(SCOPE_PREAMBLE)
        parts.append(f"self.exports = _cliPkgExportParam || {exports_variable};\n")

        for dependency in self.requires.unique().union(extracted):
            if dependency.lazy:
                # Lazy dependencies arrive as loader functions; expose them as getters.
                parts.append(
                    f"Object.defineProperty(self, '{dependency.identifier}', "
                    f"{{ get: _cliPkgRequires.{dependency.identifier} }});\n"
                )
            else:
                parts.append(f"self.{dependency.identifier} = _cliPkgRequires.{dependency.identifier};\n")

        parts.append(body)
        if not body.endswith("\n"):
            parts.append("\n")
        parts.append("}\n")
        return "".join(parts), extracted

    # -- wrapper text --------------------------------------------------------

    def loadCall_build(self, requires: Iterable[Dependency]) -> str:
        """
        Text of the library.load({...}) call that loads requires

        Example:
            library.load({
              chokidar: require("chokidar"),
            });
        """
        entries = list(requires)
        lines = ["library.load({" + ("\n" if entries else "")]
        for dependency in entries:
            lines.append(
                f"  {dependency.identifier}: {self.loader_expression(dependency)}"
                f"({json.dumps(dependency.package)}),\n"
            )
        lines.append("});\n")
        return "".join(lines)

    @staticmethod
    def loader_expression(dependency: Dependency) -> str:
        """JS function that loads a dependency honoring its lazy/optional flags"""
        identifier = dependency.identifier
        if dependency.lazy and dependency.optional:
            return (
                "(function(i){"
                "let r;"
                f"return function {identifier}(){{"
                "if(void 0!==r)return r;"
                "try{"
                "r=require(i)"
                "}catch(e){"
                "if('MODULE_NOT_FOUND'!==e.code)console.error(e);"
                "r=null"
                "}"
                "return r"
                "}"
                "})"
            )
        if dependency.lazy:
            return f"(function(i){{return function {identifier}(){{return require(i)}}}})"
        if dependency.optional:
            return (
                "(function(i){"
                "try{"
                "return require(i)"
                "}catch(e){"
                "if('MODULE_NOT_FOUND'!==e.code)console.error(e);"
                "return null"
                "}"
                "})"
            )
        return "require"

    def libraryLoad_header(self, declaration: str = "const") -> str:
        """Lines that load the compiled module and bind it to `library`"""
        if self.supports_esm:
            return f"require('./{self.core_filename}');\n" + ESM_LIBRARY_POP.replace("const", declaration, 1)
        return f"{declaration} library = require('./{self.core_filename}');\n"

    def requireWrapper_build(self, requires: Iterable[Dependency]) -> str:
        """CommonJS wrapper that loads, injects and re-exports the library"""
        return self.libraryLoad_header() + self.loadCall_build(requires) + "\nmodule.exports = library;\n"

    def importWrapper_build(self, requires: Iterable[Dependency]) -> str:
        """ESM wrapper that imports dependencies and re-exports esm_exports"""
        entries = list(requires)
        lines = [
            f"import * as {dependency.identifier} from {json.dumps(dependency.package)};\n"
            for dependency in entries
        ]
        lines.append(f"import {json.dumps('./' + self.core_filename)};\n\n")
        lines.append("const _cliPkgLibrary = globalThis._cliPkgExports.pop();\n")
        lines.append("if (globalThis._cliPkgExports.length === 0) delete globalThis._cliPkgExports;\n")
        lines.append("const _cliPkgExports = {};\n")
        identifiers = ", ".join(dependency.identifier for dependency in entries)
        lines.append(f"_cliPkgLibrary.load({{{identifiers}}}, _cliPkgExports);\n\n")
        for name in self.esm_exports or []:
            lines.append(f"export const {name} = _cliPkgExports.{name};\n")
        return "".join(lines)

    def nodeImportWrapper_build(self, cjs_filename: str) -> str:
        """ESM wrapper for Node that re-exports through the CJS wrapper"""
        lines = [f"import cjs from {json.dumps('./' + cjs_filename)};\n\n"]
        for name in self.esm_exports or []:
            lines.append(f"export const {name} = cjs.{name};\n")
        return "".join(lines)

    def executable_build(self, entry_point: str, requires: Iterable[Dependency]) -> str:
        """Node launcher script for one executable"""
        return (
            "#!/usr/bin/env node\n\n"
            + self.libraryLoad_header(declaration="var")
            + "\n"
            + self.loadCall_build(requires)
            + f"library.{entry_point}(process.argv.slice(2));\n"
        )

    def exportSpecifier_get(self, target: str, node: bool = False):
        """package.json "exports" value for one conditional target"""
        if self.supports_esm:
            return {
                "require": f"./{self.npm_name}.{target}.{'js' if node else 'cjs'}",
                "default": f"./{self.npm_name}.{target}.{'mjs' if node else 'js'}",
            }
        return f"./{self.npm_name}.{target}.js"

    def platformWrappers_build(
        self, target: DependencyTarget, requires: DependencySet
    ) -> List[ModuleWrapper]:
        """
        One or two wrappers for a conditional-export target

        Node gets a CJS .js wrapper plus (with ESM) an .mjs wrapper importing
        it. Other targets get a .js wrapper (ESM when enabled, CJS otherwise)
        plus a .cjs CommonJS wrapper when ESM is enabled.
        """
        node = target == DependencyTarget.NODE
        base = f"{self.npm_name}.{target.value}"
        identifiers = tuple(requires.identifiers)
        wrappers: List[ModuleWrapper] = []

        if not self.supports_esm:
            wrappers.append(ModuleWrapper(
                f"{base}.js", target.value, ModuleFormat.CJS, identifiers,
                self.requireWrapper_build(requires),
            ))
            return wrappers

        cjs_filename = f"{base}.{'js' if node else 'cjs'}"
        if node:
            esm_text = self.nodeImportWrapper_build(cjs_filename)
            wrappers.append(ModuleWrapper(f"{base}.mjs", target.value, ModuleFormat.ESM, identifiers, esm_text))
        else:
            esm_text = self.importWrapper_build(requires)
            wrappers.append(ModuleWrapper(f"{base}.js", target.value, ModuleFormat.ESM, identifiers, esm_text))
        wrappers.append(ModuleWrapper(
            cjs_filename, target.value, ModuleFormat.CJS, identifiers,
            self.requireWrapper_build(requires),
        ))
        return wrappers

    # -- whole package -------------------------------------------------------

    def assemble(
        self, compiled: str, version: str, package_json: Optional[Dict] = None
    ) -> AssemblyResult:
        """
        Produce every generated file and the final package.json

        Args:
            compiled: Compiled JavaScript module text
            version: Package version written to package.json
            package_json: The user's package.json contents

        Returns:
            AssemblyResult with wrappers in write order

        Raises:
            ConfigError: If validate() fails
        """
        self.validate()
        LOG(f"Assembling npm package {self.npm_name} {version}", level=2)

        core_text, extracted = self.compiledModule_inject(compiled)
        wrappers: List[ModuleWrapper] = [
            ModuleWrapper(self.core_filename, None, ModuleFormat.CJS, tuple(extracted.identifiers), core_text)
        ]

        node_requires = self.requires.for_target(DependencyTarget.NODE)
        browser_requires = self.requires.for_target(DependencyTarget.BROWSER)
        cli_requires = self.requires.resolve(DependencyTarget.CLI).union(extracted)

        for index, (name, entry_point) in enumerate(self.executables.items()):
            entry_point = entry_point or entryPoint_default(index)
            wrappers.append(ModuleWrapper(
                f"{name}.js", DependencyTarget.CLI.value, ModuleFormat.CJS,
                tuple(cli_requires.identifiers),
                self.executable_build(entry_point, cli_requires),
            ))

        if self.has_main_library:
            if node_requires or self.supports_esm:
                wrappers.extend(self.platformWrappers_build(
                    DependencyTarget.NODE, self.requires.resolve(DependencyTarget.NODE).union(extracted)
                ))
            if browser_requires:
                wrappers.extend(self.platformWrappers_build(
                    DependencyTarget.BROWSER, self.requires.resolve(DependencyTarget.BROWSER).union(extracted)
                ))
            wrappers.extend(self.platformWrappers_build(
                DependencyTarget.DEFAULT, self.requires.resolve(DependencyTarget.DEFAULT).union(extracted)
            ))

        for wrapper in wrappers:
            LOG(f"  {wrapper.filename}: {', '.join(wrapper.dependencies) or '(no dependencies)'}", level=3)

        package = self.packageJson_build(
            dict(package_json or {}), version, bool(node_requires), bool(browser_requires)
        )
        LOG(f"Generated {len(wrappers)} files ({len(extracted)} implicit dependencies)", level=2)
        return AssemblyResult(wrappers=wrappers, extracted=extracted, package_json=package)

    def packageJson_build(
        self, package_json: Dict, version: str, has_node: bool, has_browser: bool
    ) -> Dict:
        """
        Merge generated fields over the user's package.json

        Adds "version" and "bin"; with a module main library also "main";
        and a conditional "exports" map when any platform split exists.
        """
        result = dict(package_json)
        result["version"] = version
        result["bin"] = {name: f"{name}.js" for name in self.executables}

        if self.has_main_library:
            result["main"] = f"{self.npm_name}.{'node' if has_node else 'default'}.js"

        user_exports = package_json.get("exports")
        if isinstance(user_exports, dict) or has_node or has_browser or self.supports_esm:
            exports = dict(user_exports) if isinstance(user_exports, dict) else {}
            if has_browser:
                exports["browser"] = self.exportSpecifier_get("browser")
            if has_node or self.supports_esm:
                exports["node"] = self.exportSpecifier_get("node", node=True)
            if self.has_main_library:
                exports["default"] = self.exportSpecifier_get("default")
            result["exports"] = exports
        return result
