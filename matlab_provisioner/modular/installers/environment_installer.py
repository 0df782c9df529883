# matlab_provisioner/modular/installers/environment_installer.py
# -*- coding: utf-8 -*-
"""
Environment step.

Sets the license server location (MLM_LICENSE_FILE) and the MathWorks
usage telemetry flags. Opting out of telemetry removes those flags
entirely.
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from matlab_provisioner.common.command_utils import log_provision
from matlab_provisioner.common.file_utils import write_file_elevated
from matlab_provisioner.common.network_utils import validate_license_server
from matlab_provisioner.config.config_models import AppSettings
from matlab_provisioner.modular.base_installer import (
    BaseInstaller,
    dockerfile_word,
)
from matlab_provisioner.modular.registry import InstallerRegistry

PROFILE_SCRIPT_PATH = "/etc/profile.d/matlab.sh"
PROFILE_SCRIPT_MODE = "0644"


@InstallerRegistry.register(
    name="environment",
    metadata={
        "dependencies": ["matlab"],
        "estimated_time": 1,
        "description": "License server and telemetry environment variables",
    },
)
class EnvironmentInstaller(BaseInstaller):
    """Publishes the runtime environment of the MATLAB installation."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app_settings, logger)
        self.environment: Dict[str, str] = app_settings.runtime_environment()

    def profile_script(self) -> str:
        """
        Shell profile exporting the environment. An empty license server is
        left unset so MATLAB falls back to its own license search.
        """
        lines = ["# MATLAB runtime environment"]
        for name, value in self.environment.items():
            if value == "":
                continue
            lines.append(f"export {name}={shlex.quote(value)}")
        return "\n".join(lines) + "\n"

    def install(self) -> bool:
        license_server = self.app_settings.license_server
        if license_server:
            # malformed values are still passed through unchanged
            validate_license_server(
                license_server, self.app_settings, self.logger
            )

        try:
            write_file_elevated(
                PROFILE_SCRIPT_PATH,
                self.profile_script(),
                self.app_settings,
                mode=PROFILE_SCRIPT_MODE,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError as e:
            log_provision(
                f"{self.symbols['error']} Could not write {PROFILE_SCRIPT_PATH}: {e}",
                "error",
                self.logger,
                self.app_settings,
            )
            return False

        log_provision(
            f"{self.symbols['success']} Runtime environment written to {PROFILE_SCRIPT_PATH}.",
            "success",
            self.logger,
            self.app_settings,
        )
        return True

    def is_installed(self) -> bool:
        try:
            current = Path(PROFILE_SCRIPT_PATH).read_text(encoding="utf-8")
        except OSError:
            return False
        return current == self.profile_script()

    def render(self) -> List[str]:
        blocks = ["ENV MLM_LICENSE_FILE=$LICENSE_SERVER"]
        others = {
            name: value
            for name, value in self.environment.items()
            if name != "MLM_LICENSE_FILE"
        }
        if others:
            blocks.append(
                "ENV "
                + " ".join(
                    f"{name}={dockerfile_word(value)}"
                    for name, value in others.items()
                )
            )
        return blocks
