# matlab_provisioner/modular/installers/prerequisites_installer.py
# -*- coding: utf-8 -*-
"""
Prerequisites step: the OS packages mpm needs to download and run.
"""

import logging
from typing import List, Optional

from matlab_provisioner.common.command_utils import log_provision
from matlab_provisioner.common.debian.apt_manager import AptManager
from matlab_provisioner.config.config_models import AppSettings
from matlab_provisioner.modular.base_installer import BaseInstaller
from matlab_provisioner.modular.registry import InstallerRegistry


def render_apt_install(packages: List[str], autoremove: bool = True) -> str:
    """Render a single RUN instruction installing `packages` without recommends."""
    lines = [
        "RUN export DEBIAN_FRONTEND=noninteractive",
        "    && apt-get update",
        "    && apt-get install --no-install-recommends --yes",
    ]
    lines.extend(f"    {package}" for package in packages)
    lines.append("    && apt-get clean")
    if autoremove:
        lines.append("    && apt-get autoremove")
    lines.append("    && rm -rf /var/lib/apt/lists/*")
    return " \\\n".join(lines)


@InstallerRegistry.register(
    name="prerequisites",
    metadata={
        "dependencies": ["timezone"],
        "estimated_time": 30,
        "description": "OS packages required by the MATLAB Package Manager",
    },
)
class PrerequisitesInstaller(BaseInstaller):
    """Installs wget, ca-certificates and any extra configured packages."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(app_settings, logger)
        self.packages = list(app_settings.image.prerequisite_packages)

    def install(self) -> bool:
        log_provision(
            f"{self.symbols['package']} Installing prerequisites: {', '.join(self.packages)}",
            "info",
            self.logger,
            self.app_settings,
        )
        apt_manager = AptManager(logger=self.logger)
        if not apt_manager.install(self.packages, self.app_settings):
            log_provision(
                f"{self.symbols['error']} Failed to install prerequisites.",
                "error",
                self.logger,
                self.app_settings,
            )
            return False

        # drop caches and package lists from the layer
        apt_manager.clean(self.app_settings)
        log_provision(
            f"{self.symbols['success']} Prerequisites installed.",
            "success",
            self.logger,
            self.app_settings,
        )
        return True

    def is_installed(self) -> bool:
        try:
            apt_manager = AptManager(logger=self.logger)
        except FileNotFoundError:
            return False
        return all(
            apt_manager.is_installed(package, self.app_settings)
            for package in self.packages
        )

    def render(self) -> List[str]:
        return [render_apt_install(self.packages)]
