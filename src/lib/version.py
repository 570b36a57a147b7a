"""
Semantic version helpers used by the release steps
"""

import re
from typing import List, Union

from .config_variable import ConfigError

SEMVER = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)


def version_validate(version: str) -> str:
    """
    Return version unchanged if it is a valid semantic version

    Raises:
        ConfigError: If version isn't MAJOR.MINOR.PATCH[-pre][+build]
    """
    if not SEMVER.match(str(version)):
        raise ConfigError(f'"{version}" is not a valid semantic version.')
    return str(version)


def prerelease_components(version: str) -> List[Union[str, int]]:
    """
    Prerelease identifiers of version, numeric ones as ints

    Example:
        >>> prerelease_components("1.0.0-beta.2")
        ['beta', 2]
    """
    match = SEMVER.match(version_validate(version))
    prerelease = match.group("prerelease")
    if not prerelease:
        return []
    return [int(part) if part.isdigit() else part for part in prerelease.split(".")]


def prerelease_is(version: str) -> bool:
    return bool(prerelease_components(version))


def distTag_fromVersion(version: str) -> str:
    """
    npm distribution tag for version

    Returns:
        "latest" for releases, the leading prerelease identifier when it is
        not numeric (1.0.0-beta.1 -> "beta"), otherwise "pre"
    """
    components = prerelease_components(version)
    if not components:
        return "latest"
    first = components[0]
    return first if isinstance(first, str) else "pre"


def changelogAnchor_fromVersion(version: str) -> str:
    """GitHub heading anchor for "## <version>" (dots removed)"""
    return str(version).replace(".", "")
