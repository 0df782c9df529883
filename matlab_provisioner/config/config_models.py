# matlab_provisioner/config/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the provisioner,
including defaults, type annotations, and descriptions.
It utilizes Pydantic for data validation and settings management.
"""

from typing import Dict, List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Default Static Values (can be overridden by config file/env/cli) ---
MATLAB_RELEASE_DEFAULT: str = "R2024a"
MATLAB_PRODUCTS_DEFAULT: str = "MATLAB Parallel_Computing_Toolbox"
MATLAB_INSTALL_ROOT_DEFAULT: str = "/opt/matlab"
MPM_URL_DEFAULT: str = "https://www.mathworks.com/mpm/glnxa64/mpm"
MPM_LOG_PATH_DEFAULT: str = "/tmp/mathworks_root.log"
MATLAB_SYMLINK_PATH_DEFAULT: str = "/usr/local/bin/matlab"

USER_NAME_DEFAULT: str = "matlab"
USER_SHELL_DEFAULT: str = "/bin/bash"
SUDOERS_DIR_DEFAULT: str = "/etc/sudoers.d"

MATCONVNET_URL_DEFAULT: str = (
    "http://www.vlfeat.org/matconvnet/download/matconvnet-1.0-beta17.tar.gz"
)
MATCONVNET_PACKAGES_DEFAULT: List[str] = [
    "git",
    "libatlas-base-dev",
    "libopencv-dev",
    "build-essential",
    "libjpeg-turbo8-dev",
]

BASE_IMAGE_DEFAULT: str = "mathworks/matlab-deps:{release}"
IMAGE_TAG_DEFAULT: str = "matlab:{release}"
TIMEZONE_DEFAULT: str = "Etc/UTC"
PREREQUISITE_PACKAGES_DEFAULT: List[str] = ["wget", "ca-certificates"]
TELEMETRY_ENV_DEFAULT: Dict[str, str] = {
    "MW_DDUX_FORCE_ENABLE": "true",
    "MW_CONTEXT_TAGS": "MATLAB:DOCKERFILE:V1",
}

CONTAINER_RUNTIME_COMMAND_DEFAULT: str = "docker"

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
}


class MatlabSettings(BaseSettings):
    """MATLAB release, product list and install location."""

    model_config = SettingsConfigDict(
        env_prefix="MATLAB_", extra="ignore", populate_by_name=True
    )

    release: str = Field(
        default=MATLAB_RELEASE_DEFAULT,
        description="MATLAB release to install, e.g. R2024a. Passed verbatim to mpm.",
    )
    products: str = Field(
        default=MATLAB_PRODUCTS_DEFAULT,
        validation_alias=AliasChoices("MATLAB_PRODUCTS", "MATLAB_PRODUCT_LIST"),
        description="Space-separated list of products to install.",
    )
    install_location: Optional[str] = Field(
        default=None,
        description="Installation directory. Defaults to /opt/matlab/<release>.",
    )
    mpm_url: str = Field(
        default=MPM_URL_DEFAULT,
        description="Download URL of the MATLAB Package Manager binary.",
    )
    mpm_log_path: str = Field(
        default=MPM_LOG_PATH_DEFAULT,
        description="Log file written by mpm, shown when installation fails.",
    )
    symlink_path: str = Field(
        default=MATLAB_SYMLINK_PATH_DEFAULT,
        description="Convenience symlink to the installed matlab executable.",
    )

    @property
    def destination(self) -> str:
        """Install location, falling back to /opt/matlab/<release>."""
        return (
            self.install_location
            or f"{MATLAB_INSTALL_ROOT_DEFAULT}/{self.release}"
        )

    @property
    def product_tokens(self) -> List[str]:
        return self.products.split()

    @property
    def executable_path(self) -> str:
        return f"{self.destination}/bin/matlab"


class UserSettings(BaseSettings):
    """The non-root account MATLAB runs as."""

    model_config = SettingsConfigDict(env_prefix="MATLAB_USER_", extra="ignore")

    name: str = Field(default=USER_NAME_DEFAULT, description="Account name.")
    shell: str = Field(default=USER_SHELL_DEFAULT, description="Login shell.")
    home: Optional[str] = Field(
        default=None, description="Home directory. Defaults to /home/<name>."
    )
    sudoers_dir: str = Field(
        default=SUDOERS_DIR_DEFAULT,
        description="Directory holding the sudoers drop-in for the account.",
    )

    @property
    def home_dir(self) -> str:
        return self.home or f"/home/{self.name}"

    @property
    def sudoers_file(self) -> str:
        return f"{self.sudoers_dir}/{self.name}"


class ExtensionSettings(BaseSettings):
    """MatConvNet extension compiled with the installed MATLAB."""

    model_config = SettingsConfigDict(env_prefix="MATCONVNET_", extra="ignore")

    enabled: bool = Field(
        default=True, description="Install and compile MatConvNet."
    )
    url: str = Field(
        default=MATCONVNET_URL_DEFAULT, description="Release tarball URL."
    )
    root: Optional[str] = Field(
        default=None,
        description="Extraction target. Defaults to <user home>/matconvnet.",
    )
    packages: List[str] = Field(
        default_factory=lambda: list(MATCONVNET_PACKAGES_DEFAULT),
        description="apt packages needed to compile the MEX files.",
    )

    @property
    def archive_name(self) -> str:
        return self.url.rstrip("/").rsplit("/", 1)[-1]

    @property
    def archive_dir_name(self) -> str:
        name = self.archive_name
        for suffix in (".tar.gz", ".tgz", ".tar"):
            if name.endswith(suffix):
                return name[: -len(suffix)]
        return name


class ImageSettings(BaseSettings):
    """Container image level settings."""

    model_config = SettingsConfigDict(env_prefix="IMAGE_", extra="ignore")

    base_image: str = Field(
        default=BASE_IMAGE_DEFAULT,
        description="Base image. '{release}' is substituted with the MATLAB release.",
    )
    tag: str = Field(
        default=IMAGE_TAG_DEFAULT,
        description="Tag of the built image. '{release}' is substituted.",
    )
    timezone: str = Field(
        default=TIMEZONE_DEFAULT, description="Zoneinfo name for /etc/localtime."
    )
    prerequisite_packages: List[str] = Field(
        default_factory=lambda: list(PREREQUISITE_PACKAGES_DEFAULT),
        description="apt packages mpm needs.",
    )
    telemetry_enabled: bool = Field(
        default=True,
        description="Set the MathWorks usage telemetry variables in the image.",
    )
    entrypoint: List[str] = Field(
        default_factory=lambda: ["matlab"],
        description="Image ENTRYPOINT.",
    )


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROVISIONER_", extra="ignore", populate_by_name=True
    )

    license_server: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "PROVISIONER_LICENSE_SERVER", "LICENSE_SERVER"
        ),
        description="Network license server in port@host form.",
    )
    container_runtime_command: str = Field(
        default=CONTAINER_RUNTIME_COMMAND_DEFAULT,
        description="Command for the container runtime CLI (e.g., docker, podman).",
    )

    matlab: MatlabSettings = Field(default_factory=MatlabSettings)
    user: UserSettings = Field(default_factory=UserSettings)
    matconvnet: ExtensionSettings = Field(default_factory=ExtensionSettings)
    image: ImageSettings = Field(default_factory=ImageSettings)

    symbols: Dict[str, str] = Field(
        default_factory=lambda: dict(SYMBOLS_DEFAULT)
    )

    @property
    def matconvnet_root(self) -> str:
        return self.matconvnet.root or f"{self.user.home_dir}/matconvnet"

    @property
    def image_tag(self) -> str:
        return self.image.tag.format(release=self.matlab.release.lower())

    def runtime_environment(self) -> Dict[str, str]:
        """
        Environment variables baked into the image at runtime.

        The license server value is carried verbatim; an unset server yields
        an empty string so the installed tool falls back to its own license
        resolution.
        """
        env = {"MLM_LICENSE_FILE": self.license_server or ""}
        if self.image.telemetry_enabled:
            env.update(TELEMETRY_ENV_DEFAULT)
        return env
