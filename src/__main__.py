#!/usr/bin/env python3
"""
clipkg - Release tooling for JavaScript packages

Takes a package described by pkg.yaml and a compiled JavaScript module and
turns them into release artifacts: GitHub release notes cut from
CHANGELOG.md, a multi-target npm package whose dependencies are injected at
load time, and the corresponding npm and GitHub releases.

As an aside, this codebase leverages the ChRIS "plugin" concept/pattern as
general purpose python app development framework.

Tasks:
    notes           Write the release notes for the current version
    npm-package     Assemble the npm package into outputdir/npm
    npm-deploy      Assemble the npm package and publish it
    github-release  Create the GitHub release with the extracted notes

Usage:
    clipkg inputdir/ outputdir/ --task notes

Examples:
    # Release notes for the version in pkg.yaml
    clipkg . build/ --task notes

    # Build the npm package from an explicitly named compiled module
    clipkg . build/ --task npm-package --compiledFile build/sass.dart.js -vv

    # Publish (needs NPM_TOKEN / GITHUB_TOKEN in the environment)
    clipkg . build/ --task npm-deploy
    clipkg . build/ --task github-release
"""

import sys
from pathlib import Path
from argparse import ArgumentParser, Namespace, ArgumentDefaultsHelpFormatter

from chris_plugin import chris_plugin
from .config import appsettings
from .lib import (
    ConfigError,
    GitHubClient,
    GitHubError,
    NpmError,
    NpmPackage,
    PackageConfig,
    releaseNotes_build,
    __version__,
    LOG,
    state_connectToLogger,
)
from .lib.github import repo_resolve
from .models import ProgramState, pipeline


DISPLAY_TITLE = r"""
       _ _       _
   ___| (_)_ __ | | ____ _
  / __| | | '_ \| |/ / _` |
 | (__| | | |_) |   < (_| |
  \___|_|_| .__/|_|\_\__, |
          |_|        |___/

  Release tooling for JavaScript packages
"""

TASKS = ("notes", "npm-package", "npm-deploy", "github-release")

RELEASE_NOTES_FILE = "RELEASE_NOTES.md"

# Define CLI arguments
parser = ArgumentParser(
    description="clipkg - changelog extraction, npm packaging and GitHub releases",
    formatter_class=ArgumentDefaultsHelpFormatter,
)

parser.add_argument(
    "--task", default="notes", choices=TASKS, type=str, help="Release task to run"
)

parser.add_argument(
    "--configFile", default="pkg.yaml", type=str, help="Package configuration (relative to inputdir)"
)

parser.add_argument(
    "--compiledFile",
    default=None,
    type=str,
    help="Compiled JavaScript module (relative to inputdir). Defaults to js.compiled in pkg.yaml",
)

parser.add_argument(
    "-v",
    "--verbosity",
    action="count",
    default=1,
    help="Increase output verbosity (can be repeated: -v, -vv, -vvv)",
)

parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")


def fail(message: str, state: ProgramState) -> None:
    """Print message to stderr and exit with status 1"""
    print(f"Error: {message}", file=sys.stderr)
    if appsettings.debug_mode or state.verbosity >= 3:
        import traceback

        traceback.print_exc()
    sys.exit(1)


def env_check(inputstate: ProgramState) -> ProgramState:
    """
    Validate environment and resolve file paths.

    Returns:
        ProgramState with added fields:
            - configPath: Resolved path to pkg.yaml
            - envOK: True if environment is valid

    Exits:
        1 if pkg.yaml is missing or the task is unknown
    """
    state = inputstate.copy()

    if state.verbosity >= 2:
        LOG(DISPLAY_TITLE, level=2)

    LOG("Checking environment...", level=2)

    if state.task not in TASKS:
        print(f"Error: Unknown task: {state.task}", file=sys.stderr)
        sys.exit(1)

    config_path = state.inputdir / state.configFile
    if not config_path.exists():
        print(f"Error: Package configuration not found: {config_path}", file=sys.stderr)
        state.envOK = False
        sys.exit(1)
    state.configPath = config_path
    LOG(f"Package configuration: {config_path}", level=2)

    state.outputdir.mkdir(parents=True, exist_ok=True)
    LOG(f"Output directory: {state.outputdir}", level=2)

    state.envOK = True
    return state


def config_load(inputstate: ProgramState) -> ProgramState:
    """
    Load pkg.yaml into a PackageConfig.

    Returns:
        ProgramState with added fields:
            - config: PackageConfig
            - compiledPath: Compiled module path, for npm tasks

    Exits:
        1 if the configuration is invalid or the compiled module is missing
    """
    state = inputstate.copy()

    LOG("Loading package configuration...", level=1)
    try:
        state.config = PackageConfig.fromFile(state.configPath)
        LOG(f"Package {state.config.name.value} {state.config.version.value}", level=2)
        if state.task.startswith("npm"):
            compiled = state.compiledFile or state.config.js_compiled_path.value
            state.compiledPath = state.inputdir / compiled
    except ConfigError as e:
        fail(str(e), state)

    if state.compiledPath is not None and not state.compiledPath.exists():
        print(f"Error: Compiled module not found: {state.compiledPath}", file=sys.stderr)
        sys.exit(1)
    return state


def notes_extract(inputstate: ProgramState) -> ProgramState:
    """
    Extract release notes from CHANGELOG.md (or github.release_notes).

    Returns:
        ProgramState with added field:
            - releaseNotes: Notes text, or None without a changelog

    Exits:
        1 if the changelog has no section for the version or is malformed
    """
    state = inputstate.copy()

    LOG("Extracting release notes...", level=1)
    try:
        state.releaseNotes = releaseNotes_build(
            state.config, require_repo=(state.task == "github-release")
        )
    except (ConfigError, SyntaxError) as e:
        fail(str(e), state)

    if state.task == "notes":
        notes_file = state.outputdir / RELEASE_NOTES_FILE
        notes_file.write_text((state.releaseNotes or "") + "\n", encoding="utf-8")
        LOG(f"Wrote {notes_file}", level=2)
    return state


def npm_build(inputstate: ProgramState) -> ProgramState:
    """
    Assemble the npm package into outputdir/npm.

    Returns:
        ProgramState with added field:
            - npmResult: AssemblyResult for the written package

    Exits:
        1 on configuration or filesystem errors
    """
    state = inputstate.copy()

    LOG("Building npm package...", level=1)
    try:
        compiled = state.compiledPath.read_text(encoding="utf-8")
        package = NpmPackage(state.config, directory=state.outputdir / "npm")
        state.npmResult = package.build(compiled)
    except (ConfigError, OSError) as e:
        fail(str(e), state)
    return state


def npm_publish(inputstate: ProgramState) -> ProgramState:
    """
    Publish outputdir/npm with npm publish.

    Returns:
        ProgramState with added field:
            - npmOutput: npm's output

    Exits:
        1 if no token is configured or npm publish fails
    """
    state = inputstate.copy()

    LOG("Publishing to npm...", level=1)
    try:
        package = NpmPackage(state.config, directory=state.outputdir / "npm")
        state.npmOutput = package.deploy()
    except (ConfigError, NpmError) as e:
        fail(str(e), state)
    return state


def github_publish(inputstate: ProgramState) -> ProgramState:
    """
    Create the GitHub release for the configured version.

    Returns:
        ProgramState with added field:
            - githubResult: Release object returned by GitHub

    Exits:
        1 if the repository can't be determined or GitHub rejects the release
    """
    state = inputstate.copy()

    LOG("Creating GitHub release...", level=1)
    try:
        config = state.config
        client = GitHubClient()
        state.githubResult = client.release_create(
            repo_resolve(config),
            config.version.value,
            config.human_name.value,
            state.releaseNotes,
        )
    except (ConfigError, GitHubError) as e:
        fail(str(e), state)
    return state


def results_report(inputstate: ProgramState) -> ProgramState:
    """
    Display the outcome of the task.

    Returns:
        ProgramState unchanged (terminal pipeline stage)
    """
    state: ProgramState = inputstate.copy()
    config = state.config

    LOG(f"\n✓ {state.task} complete for {config.name.value} {config.version.value}", level=1)
    if state.task == "notes":
        LOG(f"  Notes: {state.outputdir / RELEASE_NOTES_FILE}", level=1)
    if state.npmResult is not None:
        LOG(f"  npm package: {state.outputdir / 'npm'}", level=1)
        LOG(f"  Files: {len(state.npmResult.wrappers)} generated", level=1)
    if state.task == "npm-deploy":
        LOG(f"  Published with dist tag '{config.npm_dist_tag.value}'", level=1)
    if state.githubResult is not None:
        LOG(f"  Release: {state.githubResult.get('html_url', '')}", level=1)
    return state


def stages_forTask(task: str) -> list:
    """Pipeline stages for a task, in order"""
    stages = [env_check, config_load]
    if task in ("notes", "github-release"):
        stages.append(notes_extract)
    if task in ("npm-package", "npm-deploy"):
        stages.append(npm_build)
    if task == "npm-deploy":
        stages.append(npm_publish)
    if task == "github-release":
        stages.append(github_publish)
    stages.append(results_report)
    return stages


@chris_plugin(
    parser=parser,
    title="clipkg - Release tooling for JavaScript packages",
    category="Utility",
    min_memory_limit="100Mi",
    min_cpu_limit="500m",
)
def main(options: Namespace, inputdir: Path, outputdir: Path):
    """
    Main entry point - run one release task for the package in inputdir.

    Args:
        options: CLI arguments from argparse
            - task: str - Release task
            - configFile: str - pkg.yaml filename
            - compiledFile: Optional[str] - Compiled module path
            - verbosity: int - Logging verbosity level (1-3)
        inputdir: Package root
        outputdir: Directory where release output is written

    Note:
        This function is wrapped by @chris_plugin which handles CLI
        argument parsing and invokes this function with parsed values.
    """

    state: ProgramState = ProgramState.state_createFromNamespace(
        options=options, inputdir=inputdir, outputdir=outputdir
    )

    # Connect state to logger for entire pipeline
    state_connectToLogger(state)

    pipeline(state, *stages_forTask(state.task))


if __name__ == "__main__":
    main()  # type: ignore  # @chris_plugin decorator transforms signature
