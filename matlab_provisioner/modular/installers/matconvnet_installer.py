# matlab_provisioner/modular/installers/matconvnet_installer.py
# -*- coding: utf-8 -*-
"""
MatConvNet step.

Downloads the MatConvNet release tarball into the MATLAB user's home and
compiles its MEX files with the installed MATLAB: `mex -setup C++` first,
then a single `vl_compilenn` build.
"""

import logging
import shutil
import subprocess
import tarfile
import tempfile
from pathlib import Path
from typing import List, Optional

from matlab_provisioner.common.command_utils import (
    log_provision,
    run_command,
    run_elevated_command,
)
from matlab_provisioner.common.debian.apt_manager import AptManager
from matlab_provisioner.common.file_utils import download_file, extract_tarball
from matlab_provisioner.config.config_models import AppSettings
from matlab_provisioner.modular.base_installer import (
    BaseInstaller,
    dockerfile_word,
)
from matlab_provisioner.modular.installers.prerequisites_installer import (
    render_apt_install,
)
from matlab_provisioner.modular.registry import InstallerRegistry

MEX_SETUP_SCRIPT = "addpath('{root}/matlab'); mex -setup C++; exit;"
COMPILE_SCRIPT = "addpath('{root}/matlab'); vl_compilenn;"


@InstallerRegistry.register(
    name="matconvnet",
    metadata={
        "dependencies": ["environment", "matlab"],
        "estimated_time": 600,
        "description": "MatConvNet neural-network toolbox compiled against MATLAB",
    },
)
class MatConvNetInstaller(BaseInstaller):
    """Installs and compiles the optional MatConvNet extension."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app_settings, logger)
        self.extension = app_settings.matconvnet
        self.root = app_settings.matconvnet_root
        self.user = app_settings.user
        self.matlab_executable = app_settings.matlab.executable_path

    def is_enabled(self) -> bool:
        return self.extension.enabled

    def batch_commands(self, root: str) -> List[List[str]]:
        """The two MATLAB batch runs: compiler setup, then compilation."""
        return [
            [self.matlab_executable, "-batch", MEX_SETUP_SCRIPT.format(root=root)],
            [self.matlab_executable, "-batch", COMPILE_SCRIPT.format(root=root)],
        ]

    def _fetch(self) -> bool:
        work_dir = Path(tempfile.mkdtemp(prefix="matconvnet-"))
        archive = work_dir / self.extension.archive_name
        try:
            if not download_file(
                self.extension.url,
                archive,
                self.app_settings,
                current_logger=self.logger,
            ):
                return False
            extract_tarball(
                archive,
                self.root,
                self.extension.archive_dir_name,
                self.app_settings,
                current_logger=self.logger,
            )
        except (OSError, tarfile.TarError) as e:
            log_provision(
                f"{self.symbols['error']} Could not unpack {archive.name}: {e}",
                "error",
                self.logger,
                self.app_settings,
            )
            return False
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
        return True

    def install(self) -> bool:
        apt_manager = AptManager(logger=self.logger)
        if not apt_manager.install(self.extension.packages, self.app_settings):
            log_provision(
                f"{self.symbols['error']} Failed to install MatConvNet build dependencies.",
                "error",
                self.logger,
                self.app_settings,
            )
            return False
        apt_manager.clean(self.app_settings)

        if Path(self.root).exists():
            log_provision(
                f"{self.symbols['info']} {self.root} already present, skipping download.",
                "info",
                self.logger,
                self.app_settings,
            )
        elif not self._fetch():
            return False

        try:
            run_elevated_command(
                ["chown", "-R", f"{self.user.name}:{self.user.name}", self.root],
                self.app_settings,
                current_logger=self.logger,
            )
            for command in self.batch_commands(self.root):
                run_command(
                    command,
                    self.app_settings,
                    current_logger=self.logger,
                    cwd=self.root,
                )
        except subprocess.CalledProcessError as e:
            log_provision(
                f"{self.symbols['error']} MatConvNet compilation failed: {e}",
                "error",
                self.logger,
                self.app_settings,
            )
            return False

        log_provision(
            f"{self.symbols['success']} MatConvNet compiled in {self.root}.",
            "success",
            self.logger,
            self.app_settings,
        )
        return True

    def is_installed(self) -> bool:
        mex_dir = Path(self.root) / "matlab" / "mex"
        return mex_dir.is_dir() and any(mex_dir.iterdir())

    def render(self) -> List[str]:
        archive = self.extension.archive_name
        user = self.user.name
        fetch = " \\\n".join(
            [
                f"RUN wget -q {self.extension.url}",
                f"    && tar -xzf {archive}",
                f'    && mv {self.extension.archive_dir_name} "${{MATCONVNET_ROOT}}"',
                f"    && rm {archive}",
                f'    && chown -R {user}:{user} "${{MATCONVNET_ROOT}}"',
            ]
        )
        setup_cmd, compile_cmd = self.batch_commands("${MATCONVNET_ROOT}")
        compile_block = " \\\n".join(
            [
                f'RUN matlab -batch "{setup_cmd[-1]}"',
                f'    && matlab -batch "{compile_cmd[-1]}"',
            ]
        )
        return [
            f"ENV MATCONVNET_ROOT={dockerfile_word(self.root)}",
            "USER root",
            render_apt_install(self.extension.packages, autoremove=False),
            fetch,
            f"USER {user}",
            compile_block,
        ]
