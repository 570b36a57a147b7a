"""
Package configuration loaded from pkg.yaml

pkg.yaml describes the package being released. Every field maps to a
ConfigVariable on PackageConfig so that callers can override values in code
before the build starts; unset fields fall back to lazily computed defaults
(e.g. package.json, README.md and CHANGELOG.md next to pkg.yaml).

Example pkg.yaml:

    name: sass
    version: 1.2.3
    human_name: Dart Sass
    homepage: https://github.com/sass/dart-sass
    executables:
      sass: cli_pkg_main_0_
    github:
      repo: sass/dart-sass
    js:
      module_main_library: lib/src/js.dart
      esm_exports: [compile, compileString]
      requires:
        - chokidar
        - package: immutable
          target: all
        - package: "@parcel/watcher"
          target: node
          optional: true
    npm:
      additional_files:
        types/index.d.ts: "export {};"
"""

import json
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.requires import Dependency
from .assembler import ModuleAssembler
from .config_variable import (
    ConfigError,
    ConfigVariable,
    freeze_list,
    freeze_mapping,
    thaw,
)
from .log import LOG
from .requires import TargetedDependencySet
from .version import distTag_fromVersion, version_validate

CONFIG_FILENAME = "pkg.yaml"


def text_readIfExists(path: Path) -> Optional[str]:
    return path.read_text(encoding="utf-8") if path.exists() else None


class PackageConfig:
    """
    All package settings for one release

    Attributes:
        root: Package root directory; relative paths resolve against it
        raw: Parsed pkg.yaml contents
    """

    def __init__(self, root: Path, data: Optional[Dict[str, Any]] = None) -> None:
        self.root = Path(root)
        self.raw: Dict[str, Any] = dict(data or {})

        github = self._section("github")
        js = self._section("js")
        npm = self._section("npm")

        # Shared
        self.name: ConfigVariable[str] = ConfigVariable.fromFunction(
            lambda: str(self._required("name")), name="name")
        self.version: ConfigVariable[str] = ConfigVariable.fromFunction(
            lambda: version_validate(str(self._required("version"))), name="version")
        self.human_name: ConfigVariable[str] = ConfigVariable.fromFunction(
            lambda: str(self.raw.get("human_name") or self.name.value), name="human_name")
        self.homepage: ConfigVariable[Optional[str]] = ConfigVariable.fromFunction(
            lambda: self.raw.get("homepage"), name="homepage")
        self.executables: ConfigVariable[Dict[str, str]] = ConfigVariable.fromFunction(
            self._executables_default, name="executables", freeze=freeze_mapping)

        # GitHub
        self.github_repo: ConfigVariable[Optional[str]] = ConfigVariable.fromFunction(
            lambda: github.get("repo"), name="github_repo")
        self.github_release_notes: ConfigVariable[Optional[str]] = ConfigVariable.fromFunction(
            lambda: github.get("release_notes"), name="github_release_notes")
        self.changelog: ConfigVariable[Optional[str]] = ConfigVariable.fromFunction(
            lambda: text_readIfExists(self.root / "CHANGELOG.md"), name="changelog")

        # JavaScript
        self.js_requires: ConfigVariable[List[Dependency]] = ConfigVariable.fromFunction(
            lambda: self._requires_parse(js.get("requires") or []),
            name="js_requires", freeze=freeze_list)
        self.js_esm_exports: ConfigVariable[Optional[List[str]]] = ConfigVariable.fromFunction(
            lambda: self._esmExports_parse(js.get("esm_exports")),
            name="js_esm_exports", freeze=freeze_list)
        self.js_module_main_library: ConfigVariable[Optional[str]] = ConfigVariable.fromFunction(
            lambda: js.get("module_main_library"), name="js_module_main_library")
        self.js_force_strict_mode: ConfigVariable[bool] = ConfigVariable.fromFunction(
            lambda: bool(js.get("force_strict_mode", False)), name="js_force_strict_mode")
        self.js_compiled_path: ConfigVariable[str] = ConfigVariable.fromFunction(
            lambda: str(js.get("compiled") or f"build/{self.npm_name}.js"), name="js_compiled_path")

        # npm
        self.npm_package_json: ConfigVariable[Dict[str, Any]] = ConfigVariable.fromFunction(
            lambda: self._packageJson_default(npm), name="npm_package_json", freeze=freeze_mapping)
        self.npm_readme: ConfigVariable[Optional[str]] = ConfigVariable.fromFunction(
            lambda: npm.get("readme") or text_readIfExists(self.root / "README.md"), name="npm_readme")
        self.npm_license: ConfigVariable[Optional[str]] = ConfigVariable.fromFunction(
            lambda: text_readIfExists(self.root / "LICENSE"), name="npm_license")
        self.npm_additional_files: ConfigVariable[Dict[str, str]] = ConfigVariable.fromFunction(
            lambda: dict(npm.get("additional_files") or {}), name="npm_additional_files", freeze=freeze_mapping)
        self.npm_dist_tag: ConfigVariable[str] = ConfigVariable.fromFunction(
            lambda: str(npm.get("dist_tag") or distTag_fromVersion(self.version.value)), name="npm_dist_tag")

    @classmethod
    def fromFile(cls, path: Path) -> "PackageConfig":
        """
        Load pkg.yaml

        Args:
            path: Path to pkg.yaml, or to the directory containing it

        Raises:
            ConfigError: If the file is missing or is not a YAML mapping
        """
        path = Path(path)
        if path.is_dir():
            path = path / CONFIG_FILENAME
        if not path.exists():
            raise ConfigError(f"Package configuration not found: {path}")

        try:
            with open(path, 'r', encoding="utf-8") as f:
                data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {path.name}: {e}")

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path.name} must contain a mapping at the top level.")

        LOG(f"Loaded package configuration from {path}", level=2)
        return cls(path.parent, data)

    # -- defaults ------------------------------------------------------------

    def _section(self, key: str) -> Dict[str, Any]:
        section = self.raw.get(key) or {}
        if not isinstance(section, dict):
            raise ConfigError(f"`{key}` must be a mapping in {CONFIG_FILENAME}.")
        return section

    def _required(self, key: str) -> Any:
        value = self.raw.get(key)
        if value is None or value == "":
            raise ConfigError(f"{CONFIG_FILENAME} must define `{key}`.")
        return value

    def _executables_default(self) -> Dict[str, str]:
        executables = self.raw.get("executables") or {}
        if isinstance(executables, list):
            return {str(name): "" for name in executables}
        if not isinstance(executables, dict):
            raise ConfigError("`executables` must be a list or mapping.")
        return {str(name): str(entry or "") for name, entry in executables.items()}

    @staticmethod
    def _requires_parse(declarations: Any) -> List[Dependency]:
        if not isinstance(declarations, list):
            raise ConfigError("`js.requires` must be a list.")
        try:
            return [Dependency.fromDeclaration(declaration) for declaration in declarations]
        except ValueError as e:
            raise ConfigError(f"Invalid js.requires entry: {e}")

    @staticmethod
    def _esmExports_parse(exports: Any) -> Optional[List[str]]:
        if exports is None:
            return None
        if not isinstance(exports, list):
            raise ConfigError("`js.esm_exports` must be a list of names.")
        return list(dict.fromkeys(str(name) for name in exports))

    def _packageJson_default(self, npm: Dict[str, Any]) -> Dict[str, Any]:
        inline = npm.get("package_json")
        if inline is not None:
            if not isinstance(inline, dict):
                raise ConfigError("`npm.package_json` must be a mapping.")
            return inline

        path = self.root / "package.json"
        if not path.exists():
            raise ConfigError("npm_package_json must be set to build an npm package.")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse package.json: {e}")
        if not isinstance(data, dict):
            raise ConfigError("package.json must contain a JSON object.")
        return data

    # -- derived values ------------------------------------------------------

    @property
    def npm_name(self) -> str:
        """The "name" field of package.json"""
        name = self.npm_package_json.value.get("name")
        if isinstance(name, str):
            return name
        if name is None:
            raise ConfigError("package.json must have a name field.")
        raise ConfigError("package.json's name field must be a string.")

    def requires_get(self) -> TargetedDependencySet:
        return TargetedDependencySet(self.js_requires.value)

    def assembler_build(self) -> ModuleAssembler:
        """ModuleAssembler configured from these settings"""
        return ModuleAssembler(
            npm_name=self.npm_name,
            requires=self.requires_get(),
            executables=dict(self.executables.value),
            esm_exports=self.js_esm_exports.value,
            has_main_library=self.js_module_main_library.value is not None,
            force_strict_mode=self.js_force_strict_mode.value,
        )

    def packageJson_get(self) -> Dict[str, Any]:
        """Mutable copy of the user's package.json"""
        return thaw(self.npm_package_json.value)

    def variables(self) -> Dict[str, ConfigVariable]:
        return {key: value for key, value in vars(self).items() if isinstance(value, ConfigVariable)}

    def freeze(self, npm: bool = False) -> None:
        """
        Freeze every variable; optionally validate the npm configuration

        Args:
            npm: Also check that dependency targets and ESM exports are
                 consistent with js_module_main_library

        Raises:
            ConfigError: If npm validation fails
        """
        for variable in self.variables().values():
            variable.freeze()
        if npm:
            self.assembler_build().validate()
