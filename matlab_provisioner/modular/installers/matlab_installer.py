# matlab_provisioner/modular/installers/matlab_installer.py
# -*- coding: utf-8 -*-
"""
MATLAB step.

Downloads the MATLAB Package Manager (mpm), installs the requested release
and products into the install location, and links the matlab executable
onto the PATH.

The installer run is guarded: when mpm exits non-zero its log file is
written to the build output and the step fails. Nothing is rolled back.
"""

import logging
import os
import shutil
import stat
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

from matlab_provisioner.common.command_utils import (
    log_provision,
    run_elevated_command,
)
from matlab_provisioner.common.file_utils import (
    create_symlink,
    download_file,
    remove_paths,
)
from matlab_provisioner.config.config_models import AppSettings
from matlab_provisioner.modular.base_installer import BaseInstaller
from matlab_provisioner.modular.registry import InstallerRegistry

INSTALL_FAILURE_HEADER = (
    "MPM Installation Failure. See below for more information:"
)
MPM_BINARY_NAME = "mpm"


@InstallerRegistry.register(
    name="matlab",
    metadata={
        "dependencies": ["user"],
        "estimated_time": 900,
        "description": "MATLAB installed with the MATLAB Package Manager",
    },
)
class MatlabInstaller(BaseInstaller):
    """
    Installs MATLAB with mpm.

    mpm runs with root privileges and with HOME set to the provisioned
    user's home, so support packages land in that user's home folder.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app_settings, logger)
        self.matlab = app_settings.matlab
        self.home = app_settings.user.home_dir

    def build_mpm_command(self, mpm_path: str) -> List[str]:
        """The mpm invocation, with the product tokens passed verbatim."""
        return [
            mpm_path,
            "install",
            f"--release={self.matlab.release}",
            f"--destination={self.matlab.destination}",
            "--products",
        ] + self.matlab.product_tokens

    def destination_collides(self) -> bool:
        """True when the install location already exists and is not empty."""
        destination = Path(self.matlab.destination)
        try:
            return destination.exists() and (
                not destination.is_dir() or any(destination.iterdir())
            )
        except PermissionError:
            return True

    def read_install_log(self) -> Optional[str]:
        """
        Return the contents of the mpm log file, or None when it is missing.
        mpm runs as root, so an unreadable log is read again through sudo.
        """
        log_path = Path(self.matlab.mpm_log_path)
        try:
            return log_path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None
        except PermissionError:
            result = run_elevated_command(
                ["cat", str(log_path)],
                self.app_settings,
                check=False,
                capture_output=True,
                current_logger=self.logger,
            )
            return result.stdout if result.returncode == 0 else None

    def report_install_failure(self, error: subprocess.CalledProcessError) -> None:
        log_provision(
            INSTALL_FAILURE_HEADER, "error", self.logger, self.app_settings
        )
        log_contents = self.read_install_log()
        if log_contents is None:
            log_provision(
                f"{self.symbols['warning']} No installer log found at {self.matlab.mpm_log_path} (mpm exit code {error.returncode}).",
                "error",
                self.logger,
                self.app_settings,
            )
            return
        log_provision(log_contents, "error", self.logger, self.app_settings)

    def install(self) -> bool:
        if self.destination_collides():
            log_provision(
                f"{self.symbols['error']} Install location {self.matlab.destination} already exists and is not empty.",
                "error",
                self.logger,
                self.app_settings,
            )
            return False

        log_provision(
            f"{self.symbols['rocket']} Installing MATLAB {self.matlab.release} ({self.matlab.products}) into {self.matlab.destination}",
            "info",
            self.logger,
            self.app_settings,
        )

        work_dir = tempfile.mkdtemp(prefix="mpm-")
        mpm_path = os.path.join(work_dir, MPM_BINARY_NAME)
        if not download_file(
            self.matlab.mpm_url,
            mpm_path,
            self.app_settings,
            current_logger=self.logger,
        ):
            shutil.rmtree(work_dir, ignore_errors=True)
            return False
        os.chmod(
            mpm_path,
            os.stat(mpm_path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH,
        )

        try:
            run_elevated_command(
                self.build_mpm_command(mpm_path),
                self.app_settings,
                current_logger=self.logger,
                env={"HOME": self.home},
            )
        except subprocess.CalledProcessError as e:
            self.report_install_failure(e)
            return False

        remove_paths(
            [work_dir, self.matlab.mpm_log_path],
            self.app_settings,
            current_logger=self.logger,
        )
        create_symlink(
            self.matlab.executable_path,
            self.matlab.symlink_path,
            self.app_settings,
            current_logger=self.logger,
        )
        log_provision(
            f"{self.symbols['success']} MATLAB {self.matlab.release} installed; {self.matlab.symlink_path} -> {self.matlab.executable_path}",
            "success",
            self.logger,
            self.app_settings,
        )
        return True

    def is_installed(self) -> bool:
        return Path(self.matlab.executable_path).exists()

    def render(self) -> List[str]:
        log_path = self.matlab.mpm_log_path
        lines = [
            f"RUN wget -q {self.matlab.mpm_url}",
            f"    && chmod +x {MPM_BINARY_NAME}",
            f"    && sudo HOME=${{HOME}} ./{MPM_BINARY_NAME} install",
            "    --release=${MATLAB_RELEASE}",
            "    --destination=${MATLAB_INSTALL_LOCATION}",
            "    --products ${MATLAB_PRODUCT_LIST}",
            f'    || (echo "{INSTALL_FAILURE_HEADER}" && cat {log_path} && false)',
            f"    && sudo rm -rf {MPM_BINARY_NAME} {log_path}",
            f"    && sudo ln -s ${{MATLAB_INSTALL_LOCATION}}/bin/matlab {self.matlab.symlink_path}",
        ]
        return [" \\\n".join(lines)]
