# matlab_provisioner/modular/base_installer.py
"""
Base class of the provisioning steps.

A step works in two modes. `install()` applies it to the machine being
provisioned and `render()` describes it as Dockerfile instructions, so one
definition serves both the imperative run and the rendered image build.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field

from matlab_provisioner.config.config_models import AppSettings

# words Docker keeps as they are without quotes
_PLAIN_WORD = re.compile(r"[\w@%+=:,./-]+")


def dockerfile_escape(value: str) -> str:
    """Escape `value` for use inside a double-quoted Dockerfile word."""
    return (
        value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    )


def dockerfile_word(value: str) -> str:
    """
    `value` as a single ENV or ARG word, quoted only when needed. Docker
    stores it unchanged: no variable expansion and no word splitting.
    """
    if _PLAIN_WORD.fullmatch(value):
        return value
    return f'"{dockerfile_escape(value)}"'


class StepMetadata(BaseModel):
    """Registration data of a step."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    dependencies: List[str] = Field(
        default_factory=list, description="Steps that must run first."
    )
    estimated_time: int = Field(
        default=0, ge=0, description="Rough duration in seconds."
    )
    description: str = ""


class BaseInstaller(ABC):
    """
    A provisioning step. Concrete steps are registered with
    InstallerRegistry.register, which sets `name` and `metadata`.
    """

    name: str = ""
    metadata: StepMetadata = StepMetadata()

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def symbols(self) -> Dict[str, str]:
        return self.app_settings.symbols

    @abstractmethod
    def install(self) -> bool:
        """
        Apply the step.

        Returns:
            True if the step succeeded, False otherwise. Steps log their own
            failures before returning False.
        """

    @abstractmethod
    def is_installed(self) -> bool:
        """Whether the step's result is already present on this machine."""

    @abstractmethod
    def render(self) -> List[str]:
        """
        Describe the step as Dockerfile instructions.

        Returns:
            Instruction blocks in order. A block may span several lines.
        """

    def is_enabled(self) -> bool:
        """Whether the step takes part in a default run."""
        return True

    def get_dependencies(self) -> Set[str]:
        return set(self.metadata.dependencies)

    def get_estimated_time(self) -> int:
        return self.metadata.estimated_time

    def get_description(self) -> str:
        return self.metadata.description
