# tests/conftest.py
import logging
from unittest.mock import MagicMock

import pytest

# Register every provisioning step once, before any test snapshots the registry.
import matlab_provisioner.modular.installers.environment_installer  # noqa: F401
import matlab_provisioner.modular.installers.matconvnet_installer  # noqa: F401
import matlab_provisioner.modular.installers.matlab_installer  # noqa: F401
import matlab_provisioner.modular.installers.prerequisites_installer  # noqa: F401
import matlab_provisioner.modular.installers.timezone_installer  # noqa: F401
import matlab_provisioner.modular.installers.user_installer  # noqa: F401
from matlab_provisioner.config.config_models import (
    AppSettings,
    ExtensionSettings,
    ImageSettings,
    MatlabSettings,
    UserSettings,
)
from matlab_provisioner.modular.registry import InstallerRegistry


@pytest.fixture
def app_settings(clean_environment):
    """AppSettings with explicit values, independent of the environment."""
    return AppSettings(
        license_server="27000@license.example.com",
        container_runtime_command="docker",
        matlab=MatlabSettings(
            release="R2024a",
            products="MATLAB Deep_Learning_Toolbox",
            install_location=None,
        ),
        user=UserSettings(name="matlab", home=None),
        matconvnet=ExtensionSettings(enabled=True, root=None),
        image=ImageSettings(
            base_image="mathworks/matlab-deps:{release}",
            tag="matlab:{release}",
            timezone="Etc/UTC",
            telemetry_enabled=True,
        ),
    )


@pytest.fixture
def mock_logger():
    """Fixture to create a mock logger for testing."""
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def clean_registry():
    """Restore the installer registry after a test registers fake steps."""
    saved = InstallerRegistry.get_all_installers()
    yield InstallerRegistry
    InstallerRegistry._registry = saved


BUILD_PARAMETER_VARIABLES = [
    "MATLAB_RELEASE",
    "MATLAB_PRODUCTS",
    "MATLAB_PRODUCT_LIST",
    "MATLAB_INSTALL_LOCATION",
    "LICENSE_SERVER",
    "PROVISIONER_LICENSE_SERVER",
    "PROVISIONER_CONTAINER_RUNTIME_COMMAND",
    "MATCONVNET_ENABLED",
    "MATCONVNET_ROOT",
    "MATLAB_USER_NAME",
    "MATLAB_USER_HOME",
    "IMAGE_TAG",
    "IMAGE_TELEMETRY_ENABLED",
]


@pytest.fixture
def clean_environment(monkeypatch):
    """Keep build parameters from the developer's shell out of the tests."""
    for name in BUILD_PARAMETER_VARIABLES:
        monkeypatch.delenv(name, raising=False)
