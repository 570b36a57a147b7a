"""
Program state model and pipeline helper

Defines ProgramState dataclass for the functional pipeline pattern and
the pipeline() helper for composing release stages.
"""

from pathlib import Path
from argparse import Namespace
from typing import Any, Optional, Type, TypeVar, Dict, Callable
from dataclasses import dataclass, field


PS = TypeVar("PS", bound="ProgramState")


@dataclass
class ProgramState:
    """
    Central state container for the release pipeline (state bus pattern).

    This dataclass carries all program state through the functional pipeline,
    with each stage adding new fields as the release progresses.

    Pipeline stages and their state additions:
        - Initial: inputdir, outputdir, verbosity, task, configFile, compiledFile
        - env_check: configPath, compiledPath, envOK
        - config_load: config
        - notes_extract: releaseNotes
        - npm_build: npmResult
        - npm_publish: npmOutput
        - github_publish: githubResult
        - results_report: (no additions, terminal stage)

    Attributes:
        inputdir: Package root containing pkg.yaml
        outputdir: Directory receiving release notes and the npm package
        verbosity: Logging verbosity level (1-3)
        task: One of "notes", "npm-package", "npm-deploy", "github-release"
        configFile: pkg.yaml filename (relative to inputdir)
        compiledFile: Compiled JavaScript module (relative to inputdir);
                      defaults to js.compiled from pkg.yaml
        envOK: Environment validation passed
        configPath: Resolved path to pkg.yaml
        compiledPath: Resolved path to the compiled module
        config: Loaded PackageConfig
        releaseNotes: Release notes text, or None without a changelog
        npmResult: AssemblyResult written to the npm directory
        npmOutput: Output of npm publish
        githubResult: Release object returned by GitHub
    """

    # CLI arguments
    inputdir: Optional[Path] = field(default=None)
    outputdir: Optional[Path] = field(default=None)
    verbosity: int = field(default=1)
    task: str = field(default="notes")
    configFile: str = field(default="pkg.yaml")
    compiledFile: Optional[str] = field(default=None)

    # Pipeline state
    envOK: bool = field(default=False)
    configPath: Path = field(default=Path("/"))
    compiledPath: Optional[Path] = field(default=None)
    config: Optional[Any] = field(default=None)  # PackageConfig at runtime
    releaseNotes: Optional[str] = field(default=None)
    npmResult: Optional[Any] = field(default=None)  # AssemblyResult at runtime
    npmOutput: Optional[str] = field(default=None)
    githubResult: Optional[Dict] = field(default=None)

    @classmethod
    def state_createFromNamespace(
        cls: Type["ProgramState"], options: Namespace, inputdir: Path, outputdir: Path
    ) -> "ProgramState":
        """
        Create ProgramState from argparse Namespace and directory paths.

        Args:
            options: Parsed CLI arguments (task, configFile, etc.)
            inputdir: Package root
            outputdir: Directory for release output

        Returns:
            ProgramState instance with all CLI options as attributes
        """
        options_dict = vars(options)

        import dataclasses
        valid_fields = {f.name for f in dataclasses.fields(cls)}

        # Only CLI options that are ProgramState fields
        filtered_options = {k: v for k, v in options_dict.items() if k in valid_fields}

        merged_args = {**filtered_options, "inputdir": Path(inputdir), "outputdir": Path(outputdir)}
        return cls(**merged_args)

    def copy(self: PS) -> PS:
        """
        Creates a shallow copy of the ProgramState instance.

        Returns:
            A new ProgramState instance.
        """
        return type(self)(**self.__dict__)


def pipeline(
    initial_state: ProgramState, *stages: Callable[[ProgramState], ProgramState]
) -> ProgramState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (ProgramState) -> ProgramState that receives
    the output of the previous stage and returns a new state.

    Example:
        final_state = pipeline(
            initial_state,
            env_check,
            config_load,
            notes_extract,
            results_report
        )

    This is equivalent to:
        results_report(notes_extract(config_load(env_check(initial_state))))
    """
    from functools import reduce
    return reduce(lambda state, stage: stage(state), stages, initial_state)
