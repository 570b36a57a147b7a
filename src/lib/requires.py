"""
Targeted JavaScript dependency sets

Two collections cooperate here:

- DependencySet: an ordered set of Dependency values that holds at most one
  entry per identifier. When built from an iterable, the first occurrence of
  an identifier wins.
- TargetedDependencySet: the user's ordered declaration list. The same
  identifier may be declared several times for different targets; resolution
  picks the most specific target and, among equals, the last declaration.

Example:
    >>> deps = TargetedDependencySet()
    >>> deps.add(Dependency("os"))
    >>> deps.add(Dependency("os", target=DependencyTarget.NODE))
    >>> [d.target.value for d in deps.resolve(DependencyTarget.NODE)]
    ['node']
    >>> [d.target.value for d in deps.resolve(DependencyTarget.BROWSER)]
    ['all']
"""

from typing import Dict, Iterable, Iterator, List, Optional, Union

from ..models.requires import Dependency, DependencyTarget

# Wrapper targets and the declaration targets they draw from, most specific first.
_RESOLUTION_ORDER: Dict[DependencyTarget, List[DependencyTarget]] = {
    DependencyTarget.ALL: [DependencyTarget.ALL],
    DependencyTarget.NODE: [DependencyTarget.NODE, DependencyTarget.ALL],
    DependencyTarget.BROWSER: [DependencyTarget.BROWSER, DependencyTarget.ALL],
    DependencyTarget.DEFAULT: [DependencyTarget.DEFAULT, DependencyTarget.ALL],
    DependencyTarget.CLI: [DependencyTarget.CLI, DependencyTarget.NODE, DependencyTarget.ALL],
}


class DependencySet:
    """
    Ordered set of Dependency values keyed by identifier
    """

    def __init__(self, dependencies: Iterable[Dependency] = ()) -> None:
        self._entries: Dict[str, Dependency] = {}
        for dependency in dependencies:
            self.add(dependency)

    def add(self, dependency: Dependency) -> bool:
        """
        Add a dependency unless its identifier is already present

        Returns:
            True if the dependency was added
        """
        if dependency.identifier in self._entries:
            return False
        self._entries[dependency.identifier] = dependency
        return True

    def get(self, identifier: str) -> Optional[Dependency]:
        return self._entries.get(identifier)

    def union(self, other: Iterable[Dependency]) -> "DependencySet":
        """Entries of self, then entries of other whose identifier is new"""
        return DependencySet([*self, *other])

    def difference(self, other: Iterable[Union[Dependency, str]]) -> "DependencySet":
        excluded = _identifiers(other)
        return DependencySet(d for d in self if d.identifier not in excluded)

    def intersection(self, other: Iterable[Union[Dependency, str]]) -> "DependencySet":
        included = _identifiers(other)
        return DependencySet(d for d in self if d.identifier in included)

    @property
    def identifiers(self) -> List[str]:
        return list(self._entries)

    def __iter__(self) -> Iterator[Dependency]:
        return iter(list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Dependency):
            return item.identifier in self._entries
        return item in self._entries

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencySet):
            return NotImplemented
        return list(self._entries.items()) == list(other._entries.items())

    def __repr__(self) -> str:
        return f"DependencySet({list(self._entries.values())!r})"


def _identifiers(items: Iterable[Union[Dependency, str]]) -> set:
    return {item.identifier if isinstance(item, Dependency) else item for item in items}


class TargetedDependencySet:
    """
    Ordered list of user dependency declarations with target resolution

    Precedence for a given identifier:
        - a declaration for the wrapper's own target beats an ``all`` one
        - CLI launchers see ``cli``, then ``node``, then ``all`` declarations
        - among declarations of the same target, the last one wins
    """

    def __init__(self, declarations: Iterable[Dependency] = ()) -> None:
        self._declarations: List[Dependency] = []
        for dependency in declarations:
            self.add(dependency)

    def add(self, dependency: Dependency) -> None:
        """Append a declaration"""
        self._declarations.append(dependency)

    @property
    def declarations(self) -> List[Dependency]:
        return list(self._declarations)

    def for_target(self, target: DependencyTarget) -> DependencySet:
        """
        Declarations whose target is exactly ``target``

        Declarations are scanned in reverse so the last one per identifier
        is kept. No fallback to ``all`` happens here.
        """
        return DependencySet(d for d in reversed(self._declarations) if d.target == target)

    def resolve(self, target: DependencyTarget) -> DependencySet:
        """
        Dependencies injected into a wrapper built for ``target``

        Example:
            declarations [os@all, os@node]:
                resolve(NODE)    -> [os@node]
                resolve(BROWSER) -> [os@all]
                resolve(CLI)     -> [os@node]
        """
        resolved = DependencySet()
        for source in _RESOLUTION_ORDER[target]:
            resolved = resolved.union(self.for_target(source))
        return resolved

    def find_package(self, package: str) -> Optional[Dependency]:
        """Last declaration whose package is ``package``, if any"""
        for dependency in reversed(self._declarations):
            if dependency.package == package:
                return dependency
        return None

    def unique(self) -> DependencySet:
        """One declaration per identifier, the last declared one"""
        return DependencySet(reversed(self._declarations))

    @property
    def has_platform_targets(self) -> bool:
        """Whether any declaration targets node, browser or default"""
        return any(
            d.target not in (DependencyTarget.ALL, DependencyTarget.CLI)
            for d in self._declarations
        )

    def __iter__(self) -> Iterator[Dependency]:
        return iter(list(self._declarations))

    def __len__(self) -> int:
        return len(self._declarations)
