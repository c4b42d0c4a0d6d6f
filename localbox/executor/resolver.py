"""
Resolution of a requested command into the argv and environment to spawn.
"""
import logging
import os
import shutil
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from localbox.config.defaults import COMMAND_DEFAULTS

logger = logging.getLogger(__name__)


def command_exists(program: str) -> bool:
    """Check if a program can be found on the host PATH."""
    return shutil.which(program) is not None


def resolve_program(
    program: str,
    fallbacks: Optional[Mapping[str, str]] = None,
    exists: Callable[[str], bool] = command_exists,
) -> str:
    """Substitute a missing package manager with an available equivalent.

    Programs without a known fallback, or that are installed, are returned
    unchanged.
    """
    if fallbacks is None:
        fallbacks = COMMAND_DEFAULTS.package_manager_fallbacks
    substitute = fallbacks.get(program)
    if substitute is None or exists(program):
        return program
    logger.info(f"{program} not found, using {substitute} instead")
    return substitute


def build_argv(
    program: str,
    args: Sequence[str],
    elevated: bool = False,
    wrapper: str = COMMAND_DEFAULTS.elevation_wrapper,
) -> List[str]:
    if elevated:
        return [wrapper, program, *args]
    return [program, *args]


def build_env(
    root_path: str,
    fallback_path: str = COMMAND_DEFAULTS.fallback_path,
    base_env: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Host environment with HOME pointed at the workspace root."""
    env = dict(os.environ if base_env is None else base_env)
    env["HOME"] = root_path
    env["PATH"] = env.get("PATH") or fallback_path
    return env
