"""
clipkg - Release tooling for JavaScript packages

Extracts release notes from CHANGELOG.md, assembles multi-target npm packages
with injected dependencies, and publishes to npm and GitHub.
"""

__version__ = "1.0.0"

from .lib import (
    ChangelogExtractor,
    ModuleAssembler,
    PackageConfig,
    TargetedDependencySet,
    changelogSection_extract,
    LOG,
    state_connectToLogger,
)

__all__ = [
    "ChangelogExtractor",
    "ModuleAssembler",
    "PackageConfig",
    "TargetedDependencySet",
    "changelogSection_extract",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
