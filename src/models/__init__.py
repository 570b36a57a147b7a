"""
Models package for clipkg

Contains data structures and type definitions for the release pipeline.
"""

from .state import ProgramState, pipeline
from .requires import Dependency, DependencyTarget, identifier_fromPackage
from .assembly import AssemblyResult, ModuleFormat, ModuleWrapper

__all__ = [
    "ProgramState",
    "pipeline",
    "Dependency",
    "DependencyTarget",
    "identifier_fromPackage",
    "AssemblyResult",
    "ModuleFormat",
    "ModuleWrapper",
]
