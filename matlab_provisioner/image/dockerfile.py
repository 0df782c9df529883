# matlab_provisioner/image/dockerfile.py
# -*- coding: utf-8 -*-
"""
Dockerfile rendering.

The Dockerfile declares the four build parameters as ARGs whose defaults
come from the settings, so `docker build --build-arg ...` can still override
them, then lists the instructions of every enabled step in execution order.
Rendering is deterministic: the same settings always give the same text.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

import jinja2

from matlab_provisioner.common.command_utils import get_symbols, log_provision
from matlab_provisioner.config.config_models import AppSettings
from matlab_provisioner.modular.base_installer import (
    dockerfile_escape,
    dockerfile_word,
)
from matlab_provisioner.modular.orchestrator import InstallerOrchestrator

module_logger = logging.getLogger(__name__)

DOCKERFILE_TEMPLATE = """\
# This Dockerfile builds an image with MATLAB installed using the MATLAB
# Package Manager. Override the build arguments to customize it, e.g.:
#
# docker build --build-arg MATLAB_RELEASE={{ release }} \\
#              --build-arg MATLAB_PRODUCT_LIST="MATLAB Deep_Learning_Toolbox" \\
#              --build-arg MATLAB_INSTALL_LOCATION="/opt/matlab/{{ release }}" \\
#              --build-arg LICENSE_SERVER=27000@hostname.com \\
#              -t {{ tag }} .

ARG MATLAB_RELEASE={{ release | dockerfile_word }}
ARG MATLAB_PRODUCT_LIST="{{ products | dockerfile_escape }}"
ARG MATLAB_INSTALL_LOCATION="{{ install_location }}"
{% if license_server %}
ARG LICENSE_SERVER="{{ license_server | dockerfile_escape }}"
{% else %}
ARG LICENSE_SERVER
{% endif %}

FROM {{ base_image }}

ARG MATLAB_RELEASE
ARG MATLAB_PRODUCT_LIST
ARG MATLAB_INSTALL_LOCATION
ARG LICENSE_SERVER
{% for block in blocks %}

{{ block }}
{% endfor %}

ENTRYPOINT {{ entrypoint }}
"""


def _template_environment() -> jinja2.Environment:
    environment = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )
    environment.filters["dockerfile_escape"] = dockerfile_escape
    environment.filters["dockerfile_word"] = dockerfile_word
    return environment


def render_dockerfile(
    app_settings: AppSettings,
    steps: Optional[List[str]] = None,
    orchestrator: Optional[InstallerOrchestrator] = None,
    current_logger: Optional[logging.Logger] = None,
) -> str:
    """
    Render the Dockerfile for the given settings.

    Args:
        app_settings: The application settings.
        steps: Step names to include (with their dependencies). None renders
            every enabled step.
        orchestrator: Orchestrator to collect instructions from. One is
            created when not given.
        current_logger: Logger to use.

    Returns:
        The Dockerfile text.
    """
    logger_to_use = current_logger if current_logger else module_logger
    orchestrator = orchestrator or InstallerOrchestrator(
        app_settings, logger_to_use
    )
    matlab = app_settings.matlab

    if matlab.install_location:
        install_location = dockerfile_escape(matlab.install_location)
    else:
        install_location = "/opt/matlab/${MATLAB_RELEASE}"
    template = _template_environment().from_string(DOCKERFILE_TEMPLATE)
    return template.render(
        release=matlab.release,
        products=matlab.products,
        install_location=install_location,
        license_server=app_settings.license_server,
        base_image=app_settings.image.base_image.format(
            release="${MATLAB_RELEASE}"
        ),
        tag=app_settings.image_tag,
        blocks=orchestrator.render(steps),
        entrypoint=json.dumps(app_settings.image.entrypoint),
    )


def write_dockerfile(
    output_path: Union[str, Path],
    content: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """Write rendered Dockerfile text to `output_path`, creating parent directories."""
    logger_to_use = current_logger if current_logger else module_logger
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    log_provision(
        f"{get_symbols(app_settings).get('success', '✅')} Dockerfile written to {path}",
        "success",
        logger_to_use,
        app_settings,
    )
    return path
