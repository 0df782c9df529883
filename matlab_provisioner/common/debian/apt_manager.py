# matlab_provisioner/common/debian/apt_manager.py
# -*- coding: utf-8 -*-
import logging
import subprocess
from typing import List, Optional, Union

from matlab_provisioner.common.command_utils import (
    command_exists,
    run_command,
    run_elevated_command,
)
from matlab_provisioner.config.config_models import AppSettings

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
APT_LISTS_DIR = "/var/lib/apt/lists"


class AptManager:
    """
    apt-get driver for the image's package installs.

    Installs never pull recommended packages, and `clean()` removes the
    package lists so they do not end up in an image layer.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Raises:
            FileNotFoundError: apt-get is not available.
        """
        self.logger = logger or logging.getLogger(__name__)
        if not command_exists("apt-get"):
            self.logger.critical(
                "'apt-get' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'apt-get' not found. Is this a Debian-based system?"
            )

    def _apt_get(self, args: List[str], app_settings: AppSettings) -> None:
        run_elevated_command(
            ["apt-get"] + args,
            app_settings,
            current_logger=self.logger,
            env=APT_ENV,
        )

    def update(
        self, app_settings: AppSettings, raise_error: bool = False
    ) -> bool:
        """Refresh the package lists. Returns False on failure unless `raise_error`."""
        self.logger.info("Updating apt package lists via 'apt-get update'...")
        try:
            self._apt_get(["update", "-yq"], app_settings)
        except subprocess.CalledProcessError as e:
            self.logger.error(f"Failed to update apt cache: {e}")
            if raise_error:
                raise
            return False
        return True

    def is_installed(self, package_name: str, app_settings: AppSettings) -> bool:
        """True when dpkg reports the package as installed."""
        try:
            result = run_command(
                ["dpkg-query", "-W", "-f=${db:Status-Status}", package_name],
                app_settings,
                capture_output=True,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError:
            return False
        return result.stdout.strip() == "installed"

    def missing_packages(
        self, packages: List[str], app_settings: AppSettings
    ) -> List[str]:
        missing = []
        for package_name in packages:
            if self.is_installed(package_name, app_settings):
                self.logger.info(
                    f"Package '{package_name}' is already installed. Skipping."
                )
            else:
                missing.append(package_name)
        return missing

    def install(
        self,
        packages: Union[List[str], str],
        app_settings: AppSettings,
        update_first: bool = True,
    ) -> bool:
        """
        Install packages that are not installed yet, without recommends.

        Args:
            packages: One package name or a list of them.
            app_settings: The application settings.
            update_first: Refresh the package lists before installing.

        Returns:
            True if every package is installed afterwards, False otherwise.
        """
        wanted = [packages] if isinstance(packages, str) else list(packages)
        to_install = self.missing_packages(wanted, app_settings)
        if not to_install:
            self.logger.info("All requested packages are already installed.")
            return True

        if update_first and not self.update(app_settings):
            return False

        self.logger.info(f"Installing packages: {', '.join(to_install)}")
        try:
            self._apt_get(
                ["install", "--no-install-recommends", "-yq"] + to_install,
                app_settings,
            )
        except subprocess.CalledProcessError as e:
            self.logger.error(f"Failed to install packages: {e}")
            return False
        return True

    def clean(self, app_settings: AppSettings) -> bool:
        """Drop the package cache, orphaned packages and the package lists."""
        self.logger.info("Cleaning apt caches and package lists...")
        try:
            self._apt_get(["clean"], app_settings)
            self._apt_get(["autoremove", "-yq"], app_settings)
            # no shell, so no glob: delete the contents, keep the directory
            run_elevated_command(
                ["find", APT_LISTS_DIR, "-mindepth", "1", "-delete"],
                app_settings,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError as e:
            self.logger.error(f"Failed to clean apt caches: {e}")
            return False
        return True
