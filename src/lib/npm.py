"""
npm package building and publishing

NpmPackage writes the assembled JavaScript files, package.json, README,
LICENSE and any additional files into the npm build directory, and publishes
that directory with the npm CLI.
"""

import json
import shutil
import subprocess
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional

from ..config import appsettings
from ..models.assembly import AssemblyResult
from .config_variable import ConfigError
from .log import LOG


class NpmError(RuntimeError):
    pass


def relativePath_check(key: str) -> PurePosixPath:
    """
    Validate an additional-file key

    Raises:
        ConfigError: If key is absolute or points outside the package
    """
    path = PurePosixPath(key)
    if path.is_absolute() or Path(key).is_absolute() or ".." in path.parts:
        raise ConfigError(f"npm_additional_files keys must be relative paths,\n\"{key}\" isn't.")
    return path


def _run(cmd: List[str], *, cwd: Path) -> str:
    """
    Run a subprocess command, raising NpmError on failure.
    """
    try:
        result = subprocess.run(
            cmd, cwd=str(cwd), check=True, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True
        )
    except subprocess.CalledProcessError as e:
        raise NpmError(f"Command failed: {' '.join(cmd)}\n\n{e.stdout}") from e
    except OSError as e:
        raise NpmError(f"Could not run {cmd[0]}: {e}") from e
    return result.stdout


class NpmPackage:
    """
    The npm distribution of a package

    Attributes:
        config: PackageConfig describing the package
        directory: Where the package is written (default <root>/build/npm)
    """

    def __init__(self, config: Any, directory: Optional[Path] = None) -> None:
        self.config = config
        self.directory = Path(directory) if directory else config.root / appsettings.build_dir / "npm"

    def build(self, compiled: str) -> AssemblyResult:
        """
        Write the complete package for the compiled module

        The directory is removed and recreated first, so stale files from an
        earlier build never end up published.

        Args:
            compiled: Compiled JavaScript module text

        Returns:
            The AssemblyResult that was written

        Raises:
            ConfigError: If the configuration is inconsistent
        """
        self.config.freeze(npm=True)
        assembler = self.config.assembler_build()
        result = assembler.assemble(compiled, self.config.version.value, self.config.packageJson_get())

        if self.directory.exists():
            shutil.rmtree(self.directory)
        self.directory.mkdir(parents=True)
        LOG(f"Building npm package in {self.directory}", level=1)

        for filename, text in result.files().items():
            self._write(filename, text)
        self._write("package.json", json.dumps(result.package_json, indent=2) + "\n")

        readme = self.config.npm_readme.value
        if readme is not None:
            self._write("README.md", readme)
        license_text = self.config.npm_license.value
        if license_text is not None:
            self._write("LICENSE", license_text)

        for key, text in self.config.npm_additional_files.value.items():
            self._write(str(relativePath_check(key)), text)

        return result

    def _write(self, relative: str, text: str) -> Path:
        path = self.directory / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        LOG(f"Wrote {path}", level=2)
        return path

    def files(self) -> Dict[str, str]:
        """Contents of the built package, keyed by relative path"""
        return {
            path.relative_to(self.directory).as_posix(): path.read_text(encoding="utf-8")
            for path in sorted(self.directory.rglob("*")) if path.is_file()
        }

    def npmrc_append(self) -> Path:
        token = appsettings.npm_token
        if not token:
            raise ConfigError("npm_token must be set to deploy to npm (set NPM_TOKEN).")
        npmrc = self.config.root / ".npmrc"
        with open(npmrc, "a", encoding="utf-8") as f:
            f.write("\n" + appsettings.npmrc_line())
        return npmrc

    def deploy(self) -> str:
        """
        Publish the built package

        Returns:
            npm's output

        Raises:
            ConfigError: If no npm token is configured
            NpmError: If the package hasn't been built or npm publish fails
        """
        if not (self.directory / "package.json").exists():
            raise NpmError(f"No npm package found in {self.directory}; build it first.")

        self.npmrc_append()
        tag = self.config.npm_dist_tag.value
        # npm runs in the package root; the trailing slash stops npm reading
        # the path as a GitHub slug.
        root = self.config.root.resolve()
        directory = self.directory.resolve()
        target = f"{directory.relative_to(root).as_posix()}/" \
            if directory.is_relative_to(root) else f"{directory.as_posix()}/"
        cmd = ["npm", "publish", "--tag", tag, target]
        LOG(" ".join(cmd), level=1)
        output = _run(cmd, cwd=self.config.root)
        for line in output.splitlines():
            LOG(line, level=2)
        return output
