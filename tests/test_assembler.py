"""
Module assembler tests

Tests validation, dependency injection into the compiled module, wrapper
generation per target and the generated package.json fields.
"""

import pytest

from clipkg.lib.assembler import ModuleAssembler, entryPoint_default
from clipkg.lib.config_variable import ConfigError
from clipkg.lib.requires import TargetedDependencySet
from clipkg.models.assembly import ModuleFormat
from clipkg.models.requires import Dependency, DependencyTarget


NODE = DependencyTarget.NODE
BROWSER = DependencyTarget.BROWSER
CLI = DependencyTarget.CLI


def assembler(*requires, **kwargs) -> ModuleAssembler:
    kwargs.setdefault("executables", {"sass": ""})
    return ModuleAssembler("sass", TargetedDependencySet(requires), **kwargs)


class TestValidation:
    """Test configuration consistency checks"""

    def test_platform_target_needs_main_library(self):
        """node/browser/default declarations require a module main library"""
        with pytest.raises(ConfigError) as exc_info:
            assembler(Dependency("fs", target=NODE)).validate()
        assert str(exc_info.value) == (
            "If js_module_main_library isn't set, all js_requires must have target 'cli' or 'all'."
        )

    def test_esm_needs_main_library(self):
        """ESM exports require a module main library"""
        with pytest.raises(ConfigError) as exc_info:
            assembler(esm_exports=["compile"]).validate()
        assert str(exc_info.value) == "If js_esm_exports is set, js_module_main_library must be set as well."

    def test_cli_and_all_without_main_library(self):
        """cli and all declarations are fine for CLI-only packages"""
        assembler(Dependency("fs"), Dependency("readline", target=CLI)).validate()

    def test_anything_with_main_library(self):
        """With a main library every target is allowed"""
        assembler(Dependency("fs", target=BROWSER), esm_exports=["x"], has_main_library=True).validate()


class TestCompiledModule:
    """Test wrapping the compiled module"""

    def test_load_function_and_scope(self):
        """Module body moves inside exports.load"""
        text, extracted = assembler().compiledModule_inject("self.main = 1;\n")
        assert text.startswith("exports.load = function(_cliPkgRequires, _cliPkgExportParam) {\n")
        assert "var self = Object.create(globalThis);\n" in text
        assert "self.exports = _cliPkgExportParam || exports;\n" in text
        assert text.endswith("self.main = 1;\n}\n")
        assert not extracted

    def test_declared_require_rewritten(self):
        """Literal require of a declared package uses its identifier"""
        text, extracted = assembler(Dependency("@parcel/watcher", identifier="watcher")).compiledModule_inject(
            'var w = self.require("@parcel/watcher");'
        )
        assert 'var w = self.watcher;' in text
        assert "self.watcher = _cliPkgRequires.watcher;\n" in text
        assert not extracted

    def test_undeclared_require_extracted(self):
        """Undeclared literal requires become implicit all-target dependencies"""
        text, extracted = assembler().compiledModule_inject(
            'var a = self.require("fs"); var b = self.require("fs");'
        )
        assert "var a = self.fs; var b = self.fs;" in text
        assert extracted.identifiers == ["fs"]
        assert extracted.get("fs").target is DependencyTarget.ALL
        assert "self.fs = _cliPkgRequires.fs;\n" in text

    def test_lazy_dependency_getter(self):
        """Lazy dependencies are exposed through getters"""
        text, _ = assembler(Dependency("chokidar", lazy=True)).compiledModule_inject("")
        assert "Object.defineProperty(self, 'chokidar', { get: _cliPkgRequires.chokidar });\n" in text

    def test_strict_mode(self):
        """force_strict_mode prefixes "use strict" """
        text, _ = assembler(force_strict_mode=True).compiledModule_inject("")
        assert text.startswith('"use strict";\n')

    def test_esm_channel(self):
        """ESM packages hand load() over through globalThis"""
        text, _ = assembler(esm_exports=["compile"], has_main_library=True).compiledModule_inject("")
        assert "globalThis._cliPkgExports.push(_cliPkgExports);\n" in text
        assert "_cliPkgExports.load = function(" in text


class TestWrapperText:
    """Test the generated load calls"""

    def test_empty_load_call(self):
        """No dependencies gives an empty object"""
        assert assembler().loadCall_build([]) == "library.load({});\n"

    def test_load_call(self):
        """Each dependency is loaded by package name"""
        text = assembler().loadCall_build([Dependency("chokidar"), Dependency("@parcel/watcher")])
        assert text == (
            "library.load({\n"
            '  chokidar: require("chokidar"),\n'
            '  parcel_watcher: require("@parcel/watcher"),\n'
            "});\n"
        )

    def test_optional_loader(self):
        """Optional dependencies tolerate MODULE_NOT_FOUND"""
        expression = ModuleAssembler.loader_expression(Dependency("x", optional=True))
        assert "MODULE_NOT_FOUND" in expression
        assert "return null" in expression

    def test_lazy_loader(self):
        """Lazy dependencies are wrapped in a named loader function"""
        expression = ModuleAssembler.loader_expression(Dependency("x", lazy=True))
        assert expression == "(function(i){return function x(){return require(i)}})"

    def test_executable(self):
        """Launcher calls the entry point with the CLI arguments"""
        text = assembler().executable_build("main", [])
        assert text.startswith("#!/usr/bin/env node\n\nvar library = require('./sass.core.js');\n")
        assert text.endswith("library.main(process.argv.slice(2));\n")

    def test_node_import_wrapper(self):
        """Node ESM wrapper re-exports the CJS wrapper"""
        text = assembler(esm_exports=["compile", "info"]).nodeImportWrapper_build("sass.node.js")
        assert text == (
            'import cjs from "./sass.node.js";\n\n'
            "export const compile = cjs.compile;\n"
            "export const info = cjs.info;\n"
        )


class TestAssemble:
    """Test whole-package assembly"""

    def test_cli_only_package(self):
        """Without a main library only the core and launchers are written"""
        result = assembler(Dependency("fs")).assemble("", "1.0.0", {"name": "sass"})
        assert list(result.files()) == ["sass.core.js", "sass.js"]
        assert result.wrappers[0].target is None
        assert result.package_json["version"] == "1.0.0"
        assert result.package_json["bin"] == {"sass": "sass.js"}
        assert "main" not in result.package_json
        assert "exports" not in result.package_json

    def test_default_entry_point(self):
        """Unnamed entry points get the generated export name"""
        result = assembler(executables={"sass": "", "sass-watch": ""}).assemble("", "1.0.0")
        assert entryPoint_default(1) == "cli_pkg_main_1_"
        assert "library.cli_pkg_main_0_(" in result.files()["sass.js"]
        assert "library.cli_pkg_main_1_(" in result.files()["sass-watch.js"]

    def test_named_entry_point(self):
        """Configured entry points are used as-is"""
        result = assembler(executables={"sass": "runSass"}).assemble("", "1.0.0")
        assert "library.runSass(process.argv.slice(2));" in result.files()["sass.js"]

    def test_launcher_dependencies(self):
        """Launchers load cli, node and all dependencies, never browser ones"""
        result = assembler(
            Dependency("a"),
            Dependency("b", target=CLI),
            Dependency("c", target=NODE),
            Dependency("d", target=BROWSER),
            has_main_library=True,
        ).assemble("", "1.0.0")
        launcher = result.wrapper_get("sass.js")
        assert set(launcher.dependencies) == {"a", "b", "c"}
        assert launcher.target == "cli"

    def test_platform_wrappers(self):
        """Node and browser wrappers get their own dependencies"""
        result = assembler(
            Dependency("os"),
            Dependency("os", target=NODE, identifier="os"),
            Dependency("b", target=BROWSER),
            has_main_library=True,
        ).assemble("", "1.0.0", {"name": "sass"})
        files = result.files()
        assert list(files) == ["sass.core.js", "sass.js", "sass.node.js", "sass.browser.js", "sass.default.js"]
        assert result.wrapper_get("sass.node.js").dependencies == ("os",)
        assert "b" not in result.wrapper_get("sass.node.js").dependencies
        assert set(result.wrapper_get("sass.browser.js").dependencies) == {"b", "os"}
        assert result.wrapper_get("sass.default.js").dependencies == ("os",)
        assert files["sass.default.js"].endswith("\nmodule.exports = library;\n")

    def test_extracted_in_every_wrapper(self):
        """Implicit dependencies reach every wrapper"""
        result = assembler(has_main_library=True).assemble('self.require("fs");', "1.0.0")
        for wrapper in result.wrappers[1:]:
            assert "fs" in wrapper.dependencies

    def test_package_json_with_platforms(self):
        """main and exports follow the generated wrappers"""
        result = assembler(
            Dependency("c", target=NODE),
            Dependency("d", target=BROWSER),
            has_main_library=True,
        ).assemble("", "2.0.0", {"name": "sass", "description": "x"})
        package = result.package_json
        assert package["description"] == "x"
        assert package["main"] == "sass.node.js"
        assert package["exports"] == {
            "browser": "./sass.browser.js",
            "node": "./sass.node.js",
            "default": "./sass.default.js",
        }

    def test_library_without_platforms(self):
        """A plain library only gets a default wrapper"""
        result = assembler(has_main_library=True).assemble("", "1.0.0")
        assert list(result.files()) == ["sass.core.js", "sass.js", "sass.default.js"]
        assert result.package_json["main"] == "sass.default.js"
        assert "exports" not in result.package_json

    def test_esm_package(self):
        """ESM adds .mjs/.cjs wrappers and conditional export pairs"""
        result = assembler(esm_exports=["compile"], has_main_library=True).assemble("", "1.0.0")
        files = result.files()
        assert list(files) == [
            "sass.core.js", "sass.js",
            "sass.node.mjs", "sass.node.js",
            "sass.default.js", "sass.default.cjs",
        ]
        assert result.wrapper_get("sass.default.js").format is ModuleFormat.ESM
        assert result.wrapper_get("sass.default.cjs").format is ModuleFormat.CJS
        assert "export const compile = _cliPkgExports.compile;\n" in files["sass.default.js"]
        assert result.package_json["exports"] == {
            "node": {"require": "./sass.node.js", "default": "./sass.node.mjs"},
            "default": {"require": "./sass.default.cjs", "default": "./sass.default.js"},
        }

    def test_invalid_configuration_refused(self):
        """assemble() validates first"""
        with pytest.raises(ConfigError):
            assembler(Dependency("fs", target=NODE)).assemble("", "1.0.0")
