"""
Step framework for the provisioner.

Each build step is an installer registered by name; the orchestrator
orders the steps by their declared dependencies.
"""

from matlab_provisioner.modular.base_installer import BaseInstaller
from matlab_provisioner.modular.orchestrator import InstallerOrchestrator
from matlab_provisioner.modular.registry import InstallerRegistry

__all__ = ["BaseInstaller", "InstallerRegistry", "InstallerOrchestrator"]
