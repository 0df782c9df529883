# matlab_provisioner/common/command_utils.py
# -*- coding: utf-8 -*-
"""
Running external programs for the provisioning steps.

Every command is logged before it runs. Captured output is logged at debug
level, and a failing command has its return code and output logged at error
level before the exception reaches the caller.
"""

import logging
import os
import shutil
import subprocess
from typing import Dict, List, Mapping, Optional, Sequence, Union

from matlab_provisioner.config.config_models import (
    SYMBOLS_DEFAULT,
    AppSettings,
)

module_logger = logging.getLogger(__name__)

# "success" has no logging level of its own
_LEVEL_METHODS = {
    "debug": "debug",
    "info": "info",
    "success": "info",
    "warning": "warning",
    "error": "error",
    "critical": "critical",
}


def get_symbols(app_settings: Optional[AppSettings]) -> Dict[str, str]:
    """Return the log symbol map of the settings, or the defaults."""
    if app_settings is not None and app_settings.symbols:
        return app_settings.symbols
    return SYMBOLS_DEFAULT


def log_provision(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Log a provisioning message.

    Args:
        message: The log message.
        level: "debug", "info", "success", "warning", "error" or "critical".
            Anything else is logged at info.
        current_logger: Logger to use. Defaults to the module logger.
        app_settings: Accepted so every helper shares one call signature.
        exc_info: Attach the active exception to the record.
    """
    effective_logger = current_logger or module_logger
    method = getattr(effective_logger, _LEVEL_METHODS.get(level, "info"))
    method(message, exc_info=exc_info)


def format_command(command: Union[Sequence[str], str]) -> str:
    if isinstance(command, str):
        return command
    return subprocess.list2cmdline(list(command))


def _log_output(
    stdout: Optional[str],
    stderr: Optional[str],
    level: str,
    logger: logging.Logger,
    app_settings: Optional[AppSettings],
) -> None:
    for label, stream in (("stdout", stdout), ("stderr", stderr)):
        if isinstance(stream, str) and stream.strip():
            log_provision(
                f"   {label}: {stream.strip()}", level, logger, app_settings
            )


def run_command(
    command: Union[List[str], str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    shell: bool = False,
    capture_output: bool = False,
    text: bool = True,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Run a command and log what happened.

    Args:
        command: Argument list, or a string when `shell` is True. A list
            given together with `shell` is joined with spaces.
        app_settings: Settings providing the log symbols.
        check: Raise CalledProcessError on a non-zero exit code.
        shell: Run through the shell.
        capture_output: Capture stdout and stderr.
        text: Decode the output streams.
        cmd_input: Data written to the command's stdin.
        current_logger: Logger to use.
        cwd: Working directory.
        env: Complete environment for the command. Inherited when None.

    Returns:
        The completed process.

    Raises:
        subprocess.CalledProcessError: Non-zero exit with `check` set.
        FileNotFoundError: The program does not exist.
    """
    effective_logger = current_logger or module_logger
    symbols = get_symbols(app_settings)

    if shell:
        command_to_run: Union[List[str], str] = (
            " ".join(command) if isinstance(command, list) else command
        )
    elif isinstance(command, str):
        log_provision(
            f"{symbols.get('warning', '!')} Running string command '{command}' without shell=True. Consider list format.",
            "warning",
            effective_logger,
            app_settings,
        )
        command_to_run = command.split()
    else:
        command_to_run = list(command)

    location = f" (in {cwd})" if cwd else ""
    log_provision(
        f"{symbols.get('gear', '⚙️')} Executing: {format_command(command)}{location}",
        "info",
        effective_logger,
        app_settings,
    )
    try:
        result = subprocess.run(
            command_to_run,
            check=check,
            shell=shell,
            capture_output=capture_output,
            text=text,
            input=cmd_input,
            cwd=cwd,
            env=env,
        )
    except subprocess.CalledProcessError as e:
        log_provision(
            f"{symbols.get('error', '❌')} Command `{format_command(e.cmd)}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
            app_settings,
        )
        _log_output(e.stdout, e.stderr, "error", effective_logger, app_settings)
        raise
    except FileNotFoundError as e:
        log_provision(
            f"{symbols.get('error', '❌')} Command not found: {e.filename}. Ensure it's installed and in PATH.",
            "error",
            effective_logger,
            app_settings,
        )
        raise

    if capture_output:
        _log_output(
            result.stdout, result.stderr, "debug", effective_logger, app_settings
        )
    return result


def elevated_prefix(env: Optional[Mapping[str, str]] = None) -> List[str]:
    """
    Prefix that runs a command as root: `sudo` unless this process already
    has euid 0. sudo resets the environment, so variables in `env` are
    set on the command line through `env`.
    """
    prefix = [] if os.geteuid() == 0 else ["sudo"]
    if env:
        prefix += ["env"] + [f"{name}={value}" for name, value in env.items()]
    return prefix


def run_elevated_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Run `command` as root. `env` holds variables to set for the command
    only; the rest of the environment is whatever sudo keeps. Other
    arguments are passed on to run_command.
    """
    return run_command(
        elevated_prefix(env) + list(command),
        app_settings,
        check=check,
        capture_output=capture_output,
        cmd_input=cmd_input,
        current_logger=current_logger,
        cwd=cwd,
    )


def command_exists(command_name: str) -> bool:
    """Check if a command exists in the system's PATH."""
    return shutil.which(command_name) is not None
