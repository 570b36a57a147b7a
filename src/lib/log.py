"""
Centralized logging using Loguru with context-aware verbosity.

LOG() respects the verbosity of the ProgramState driving the current release
pipeline, without the state having to be threaded through every packaging
helper.

Verbosity levels:
    1 = Normal output (default): stage progress, uploads, publishes
    2 = Verbose (-v): resolved paths, generated files, HTTP endpoints
    3 = Debug (-vv): per-dependency and per-wrapper detail

Usage:
    from clipkg.lib.log import LOG, state_connectToLogger

    # At start of the pipeline:
    state_connectToLogger(state)

    # Anywhere in that context:
    LOG("Building npm package...", level=1)
    LOG("Wrote build/npm/sass.node.js", level=2)
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar
import sys

# Context variable to hold current ProgramState
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

# Configure loguru with clipkg-specific format
logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{module: <12}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()  # Remove default handler
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """
    Connect a ProgramState to the logging context.

    Args:
        state: Object with a ``verbosity`` attribute (usually ProgramState)
    """
    _program_state.set(state)


def LOG(message: str, level: int = 1, **kwargs: Any) -> None:
    """
    Log message if current state's verbosity allows.

    Messages are silently dropped when no state is connected, so library
    code (assembler, extractor) stays quiet when used outside the CLI.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=debug)
        **kwargs: Additional loguru metadata
    """
    state = _program_state.get()

    if state and hasattr(state, 'verbosity') and state.verbosity >= level:
        logger.opt(depth=1).debug(message, **kwargs)
