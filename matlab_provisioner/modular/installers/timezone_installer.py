# matlab_provisioner/modular/installers/timezone_installer.py
# -*- coding: utf-8 -*-
"""
Timezone step.

Points /etc/localtime at the configured zoneinfo file and records the zone
name in /etc/timezone so that tzdata never prompts during package installs.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from matlab_provisioner.common.command_utils import (
    log_provision,
    run_elevated_command,
)
from matlab_provisioner.common.file_utils import write_file_elevated
from matlab_provisioner.config.config_models import AppSettings
from matlab_provisioner.modular.base_installer import BaseInstaller
from matlab_provisioner.modular.registry import InstallerRegistry

ZONEINFO_DIR = "/usr/share/zoneinfo"
LOCALTIME_PATH = "/etc/localtime"
TIMEZONE_FILE_PATH = "/etc/timezone"


@InstallerRegistry.register(
    name="timezone",
    metadata={
        "dependencies": [],
        "estimated_time": 1,
        "description": "Non-interactive timezone configuration",
    },
)
class TimezoneInstaller(BaseInstaller):
    """Sets the system timezone."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app_settings, logger)
        self.timezone = app_settings.image.timezone

    def install(self) -> bool:
        zone_file = f"{ZONEINFO_DIR}/{self.timezone}"
        if not Path(zone_file).is_file():
            log_provision(
                f"{self.symbols['error']} Unknown timezone '{self.timezone}': {zone_file} does not exist.",
                "error",
                self.logger,
                self.app_settings,
            )
            return False

        try:
            run_elevated_command(
                ["ln", "-snf", zone_file, LOCALTIME_PATH],
                self.app_settings,
                current_logger=self.logger,
            )
            write_file_elevated(
                TIMEZONE_FILE_PATH,
                f"{self.timezone}\n",
                self.app_settings,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError as e:
            log_provision(
                f"{self.symbols['error']} Could not set timezone: {e}",
                "error",
                self.logger,
                self.app_settings,
            )
            return False

        log_provision(
            f"{self.symbols['success']} Timezone set to {self.timezone}.",
            "success",
            self.logger,
            self.app_settings,
        )
        return True

    def is_installed(self) -> bool:
        try:
            current = Path(TIMEZONE_FILE_PATH).read_text(encoding="utf-8")
        except OSError:
            return False
        return current.strip() == self.timezone

    def render(self) -> List[str]:
        return [
            "ENV DEBIAN_FRONTEND=noninteractive",
            f"ENV TZ={self.timezone}",
            f"RUN ln -snf {ZONEINFO_DIR}/$TZ {LOCALTIME_PATH} && echo $TZ > {TIMEZONE_FILE_PATH}",
        ]
