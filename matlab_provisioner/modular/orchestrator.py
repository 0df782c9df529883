"""
Orchestrator for the provisioning steps.

This module provides the InstallerOrchestrator class, which loads the
registered steps, resolves their order, and either runs them one after
another or renders them as Dockerfile instructions.
"""

import importlib
import logging
import pkgutil
from typing import Dict, List, Optional, Type

from matlab_provisioner.config.config_models import AppSettings
from matlab_provisioner.modular.base_installer import BaseInstaller
from matlab_provisioner.modular.registry import InstallerRegistry

INSTALLERS_PACKAGE = "matlab_provisioner.modular.installers"


class InstallerOrchestrator:
    """
    Runs provisioning steps strictly in sequence.

    A failing step ends the run. Steps that already completed are left as
    they are; rebuilding from scratch is the only retry.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            app_settings: The application settings.
            logger: Optional logger instance. If not provided, a new logger will be created.
        """
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

        self._import_installer_modules()

    def _import_installer_modules(self) -> None:
        """
        Import every module in the installers package so that each installer
        class registers itself with the InstallerRegistry.
        """
        package = importlib.import_module(INSTALLERS_PACKAGE)
        for _, module_name, _ in pkgutil.iter_modules(package.__path__):
            importlib.import_module(f"{INSTALLERS_PACKAGE}.{module_name}")
            self.logger.debug(f"Imported installer module: {module_name}")

    def get_available_installers(self) -> Dict[str, Type[BaseInstaller]]:
        return InstallerRegistry.get_all_installers()

    def resolve_dependencies(self, installer_names: List[str]) -> List[str]:
        return InstallerRegistry.resolve_dependencies(installer_names)

    def _create(self, name: str) -> BaseInstaller:
        return InstallerRegistry.get_installer(name)(
            self.app_settings, self.logger
        )

    def default_steps(self) -> List[str]:
        """All enabled steps in execution order."""
        ordered = self.resolve_dependencies(
            sorted(self.get_available_installers())
        )
        return [name for name in ordered if self._create(name).is_enabled()]

    def install(self, installer_names: Optional[List[str]] = None) -> bool:
        """
        Run the requested steps and their dependencies in order.

        Dependencies that were not requested explicitly are skipped when
        they report themselves as installed. Requested steps always run.

        Args:
            installer_names: Step names. None runs all enabled steps.

        Returns:
            True if every step succeeded, False at the first failure.
        """
        requested = (
            list(installer_names)
            if installer_names
            else self.default_steps()
        )
        try:
            resolved_names = self.resolve_dependencies(requested)
        except (KeyError, ValueError) as e:
            self.logger.error(f"Cannot resolve provisioning steps: {e}")
            return False

        self.logger.info(
            f"Provisioning steps in order: {', '.join(resolved_names)}"
        )

        for index, name in enumerate(resolved_names, start=1):
            installer = self._create(name)

            if name not in requested and installer.is_installed():
                self.logger.info(
                    f"Dependency '{name}' is already satisfied, skipping"
                )
                continue

            self.logger.info(
                f"--- Step {index}/{len(resolved_names)}: {name} ({installer.get_description()}) ---"
            )
            try:
                succeeded = installer.install()
            except Exception as e:
                self.logger.error(
                    f"Unexpected error in step '{name}': {e}", exc_info=True
                )
                succeeded = False

            if not succeeded:
                self.logger.error(
                    f"Step '{name}' failed. Halting provisioning."
                )
                return False

            self.logger.info(f"Step '{name}' completed")

        self.logger.info("All provisioning steps completed successfully")
        return True

    def check_status(
        self, installer_names: Optional[List[str]] = None
    ) -> Dict[str, bool]:
        """
        Check which steps have already been applied.

        Returns:
            A dictionary mapping step names to their installed state.
        """
        names = (
            list(installer_names)
            if installer_names
            else self.default_steps()
        )
        status = {}
        for name in names:
            installed = self._create(name).is_installed()
            status[name] = installed
            self.logger.debug(
                f"Step {name} is {'installed' if installed else 'not installed'}"
            )
        return status

    def render(self, installer_names: Optional[List[str]] = None) -> List[str]:
        """
        Collect the Dockerfile instructions of the steps in execution order.

        Args:
            installer_names: Step names. None renders all enabled steps.

        Returns:
            Instruction blocks, one list entry per block.
        """
        names = (
            self.resolve_dependencies(list(installer_names))
            if installer_names
            else self.default_steps()
        )
        blocks: List[str] = []
        for name in names:
            blocks.extend(self._create(name).render())
        return blocks
