# matlab_provisioner/modular/installers/user_installer.py
# -*- coding: utf-8 -*-
"""
User step.

Creates the non-root account MATLAB runs as and grants it passwordless
sudo through a drop-in file in /etc/sudoers.d.
"""

import logging
import pwd
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

SUDOERS_FILE_MODE = "0440"


def user_exists(username: str) -> bool:
    try:
        pwd.getpwnam(username)
    except KeyError:
        return False
    return True


@InstallerRegistry.register(
    name="user",
    metadata={
        "dependencies": ["prerequisites"],
        "estimated_time": 2,
        "description": "Non-root account with passwordless sudo",
    },
)
class UserInstaller(BaseInstaller):
    """Provisions the account MATLAB runs as."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app_settings, logger)
        self.user = app_settings.user

    @property
    def sudoers_line(self) -> str:
        return f"{self.user.name} ALL=(ALL) NOPASSWD: ALL"

    def install(self) -> bool:
        try:
            if user_exists(self.user.name):
                log_provision(
                    f"{self.symbols['info']} User '{self.user.name}' already exists.",
                    "info",
                    self.logger,
                    self.app_settings,
                )
            else:
                run_elevated_command(
                    [
                        "adduser",
                        "--shell",
                        self.user.shell,
                        "--home",
                        self.user.home_dir,
                        "--disabled-password",
                        "--gecos",
                        "",
                        self.user.name,
                    ],
                    self.app_settings,
                    current_logger=self.logger,
                )

            write_file_elevated(
                self.user.sudoers_file,
                f"{self.sudoers_line}\n",
                self.app_settings,
                mode=SUDOERS_FILE_MODE,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError as e:
            log_provision(
                f"{self.symbols['error']} Could not provision user '{self.user.name}': {e}",
                "error",
                self.logger,
                self.app_settings,
            )
            return False

        log_provision(
            f"{self.symbols['success']} User '{self.user.name}' provisioned with sudo rights.",
            "success",
            self.logger,
            self.app_settings,
        )
        return True

    def is_installed(self) -> bool:
        if not user_exists(self.user.name):
            return False
        try:
            return Path(self.user.sudoers_file).exists()
        except PermissionError:
            # /etc/sudoers.d is not traversable without root
            return False

    def render(self) -> List[str]:
        sudoers_file = self.user.sudoers_file
        return [
            " \\\n".join(
                [
                    f'RUN adduser --shell {self.user.shell} --home {self.user.home_dir} --disabled-password --gecos "" {self.user.name}',
                    f'    && echo "{self.sudoers_line}" > {sudoers_file}',
                    f"    && chmod {SUDOERS_FILE_MODE} {sudoers_file}",
                ]
            ),
            f"USER {self.user.name}",
            f"WORKDIR {self.user.home_dir}",
        ]
