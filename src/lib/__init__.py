"""
clipkg - Release tooling for JavaScript packages

Changelog section extraction, dependency-injected module assembly, npm
packaging and GitHub releases.
"""

__version__ = "1.0.0"

from .scanner import Scanner
from .changelog import ChangelogExtractor, changelogSection_extract
from .requires import DependencySet, TargetedDependencySet
from .assembler import ModuleAssembler
from .config_variable import ConfigError, ConfigVariable
from .package import PackageConfig
from .npm import NpmError, NpmPackage
from .github import GitHubClient, GitHubError, releaseNotes_build
from .log import LOG, state_connectToLogger

__all__ = [
    "Scanner",
    "ChangelogExtractor",
    "changelogSection_extract",
    "DependencySet",
    "TargetedDependencySet",
    "ModuleAssembler",
    "ConfigError",
    "ConfigVariable",
    "PackageConfig",
    "NpmError",
    "NpmPackage",
    "GitHubClient",
    "GitHubError",
    "releaseNotes_build",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
