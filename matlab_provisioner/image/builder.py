# matlab_provisioner/image/builder.py
# -*- coding: utf-8 -*-
"""
Container image build and acceptance checks.

ImageBuilder drives the container runtime CLI (docker or podman): it builds
the image from a rendered Dockerfile with the build parameters passed as
build arguments, and verifies a built image by asking MATLAB for its release
and by reading the license variable out of the image configuration.
"""

import json
import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from matlab_provisioner.common.command_utils import (
    command_exists,
    log_provision,
    run_command,
)
from matlab_provisioner.config.config_models import AppSettings

module_logger = logging.getLogger(__name__)

RELEASE_QUERY_SCRIPT = "disp(version('-release'))"


def normalize_release(release: str) -> str:
    """'R2024a', 'r2024a' and '2024a' all normalize to '2024a'."""
    value = release.strip().lower()
    return value[1:] if value.startswith("r") else value


class ImageBuilder:
    """Builds and verifies MATLAB images with a container runtime."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        tag: Optional[str] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or module_logger
        self.runtime = app_settings.container_runtime_command
        self.tag = tag or app_settings.image_tag
        self.symbols = app_settings.symbols

    def ensure_runtime(self) -> None:
        """
        Raises:
            FileNotFoundError: The container runtime CLI is not on PATH.
        """
        if not command_exists(self.runtime):
            raise FileNotFoundError(
                f"Container runtime '{self.runtime}' not found in PATH"
            )

    def build_args(self) -> Dict[str, str]:
        """
        Build arguments for the four build parameters. LICENSE_SERVER and
        MATLAB_INSTALL_LOCATION are only passed when set, so the Dockerfile
        defaults apply otherwise.
        """
        matlab = self.app_settings.matlab
        args = {
            "MATLAB_RELEASE": matlab.release,
            "MATLAB_PRODUCT_LIST": matlab.products,
        }
        if matlab.install_location:
            args["MATLAB_INSTALL_LOCATION"] = matlab.install_location
        if self.app_settings.license_server:
            args["LICENSE_SERVER"] = self.app_settings.license_server
        return args

    def build_command(
        self, dockerfile: Union[str, Path], context: Union[str, Path]
    ) -> List[str]:
        command = [self.runtime, "build"]
        for name, value in self.build_args().items():
            command.extend(["--build-arg", f"{name}={value}"])
        command.extend(["-t", self.tag, "-f", str(dockerfile), str(context)])
        return command

    def build(
        self, dockerfile: Union[str, Path], context: Union[str, Path]
    ) -> bool:
        """
        Run the image build. The runtime's own output streams straight to
        the console.

        Returns:
            True on success, False if the build failed.
        """
        self.ensure_runtime()
        log_provision(
            f"{self.symbols['rocket']} Building image {self.tag} from {dockerfile}",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            run_command(
                self.build_command(dockerfile, context),
                self.app_settings,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError:
            log_provision(
                f"{self.symbols['error']} Image build failed for {self.tag}.",
                "error",
                self.logger,
                self.app_settings,
            )
            return False

        log_provision(
            f"{self.symbols['success']} Image {self.tag} built.",
            "success",
            self.logger,
            self.app_settings,
        )
        return True

    def query_release(self) -> str:
        """
        Ask the installed MATLAB in the image for its release, e.g. '2024a'.

        Raises:
            subprocess.CalledProcessError: The container run failed.
        """
        result = run_command(
            [
                self.runtime,
                "run",
                "--rm",
                "--entrypoint",
                "matlab",
                self.tag,
                "-batch",
                RELEASE_QUERY_SCRIPT,
            ],
            self.app_settings,
            capture_output=True,
            current_logger=self.logger,
        )
        lines = [line for line in result.stdout.splitlines() if line.strip()]
        return lines[-1].strip() if lines else ""

    def inspect_environment(self) -> Dict[str, str]:
        """
        Read the environment baked into the image configuration.

        Raises:
            subprocess.CalledProcessError: The image does not exist.
        """
        result = run_command(
            [
                self.runtime,
                "image",
                "inspect",
                "--format",
                "{{json .Config.Env}}",
                self.tag,
            ],
            self.app_settings,
            capture_output=True,
            current_logger=self.logger,
        )
        entries = json.loads(result.stdout.strip() or "[]") or []
        environment = {}
        for entry in entries:
            name, _, value = entry.partition("=")
            environment[name] = value
        return environment

    def verify(self) -> bool:
        """
        Check a built image against the settings it was built from:
        the reported release matches, and MLM_LICENSE_FILE equals the
        license server exactly (or is empty when none was given).
        """
        self.ensure_runtime()
        ok = True
        expected_release = self.app_settings.matlab.release
        try:
            reported = self.query_release()
        except subprocess.CalledProcessError:
            reported = ""
        if normalize_release(reported) != normalize_release(expected_release):
            log_provision(
                f"{self.symbols['error']} Image reports release '{reported}', expected '{expected_release}'.",
                "error",
                self.logger,
                self.app_settings,
            )
            ok = False
        else:
            log_provision(
                f"{self.symbols['success']} Release {reported} confirmed.",
                "success",
                self.logger,
                self.app_settings,
            )

        try:
            environment = self.inspect_environment()
        except subprocess.CalledProcessError:
            return False
        expected_license = self.app_settings.license_server or ""
        actual_license = environment.get("MLM_LICENSE_FILE", "")
        if actual_license != expected_license:
            log_provision(
                f"{self.symbols['error']} MLM_LICENSE_FILE is '{actual_license}', expected '{expected_license}'.",
                "error",
                self.logger,
                self.app_settings,
            )
            ok = False
        else:
            log_provision(
                f"{self.symbols['success']} MLM_LICENSE_FILE matches the build-time license server.",
                "success",
                self.logger,
                self.app_settings,
            )
        return ok
