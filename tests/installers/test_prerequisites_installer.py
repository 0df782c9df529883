# tests/installers/test_prerequisites_installer.py
import pytest

from matlab_provisioner.modular.installers.prerequisites_installer import (
    PrerequisitesInstaller,
    render_apt_install,
)

MODULE = "matlab_provisioner.modular.installers.prerequisites_installer"


@pytest.fixture
def mock_apt(mocker):
    return mocker.patch(f"{MODULE}.AptManager").return_value


def test_install(mock_apt, app_settings, mock_logger):
    mock_apt.install.return_value = True

    assert PrerequisitesInstaller(app_settings, mock_logger).install()

    mock_apt.install.assert_called_once_with(
        ["wget", "ca-certificates"], app_settings
    )
    mock_apt.clean.assert_called_once_with(app_settings)


def test_install_failure(mock_apt, app_settings, mock_logger):
    mock_apt.install.return_value = False

    assert not PrerequisitesInstaller(app_settings, mock_logger).install()
    mock_apt.clean.assert_not_called()


def test_is_installed(mock_apt, app_settings, mock_logger):
    mock_apt.is_installed.side_effect = lambda package, _: package == "wget"

    assert not PrerequisitesInstaller(app_settings, mock_logger).is_installed()


def test_is_installed_without_apt(mocker, app_settings, mock_logger):
    mocker.patch(f"{MODULE}.AptManager", side_effect=FileNotFoundError)

    assert not PrerequisitesInstaller(app_settings, mock_logger).is_installed()


def test_render_apt_install():
    assert render_apt_install(["wget", "ca-certificates"]) == (
        "RUN export DEBIAN_FRONTEND=noninteractive \\\n"
        "    && apt-get update \\\n"
        "    && apt-get install --no-install-recommends --yes \\\n"
        "    wget \\\n"
        "    ca-certificates \\\n"
        "    && apt-get clean \\\n"
        "    && apt-get autoremove \\\n"
        "    && rm -rf /var/lib/apt/lists/*"
    )


def test_render_apt_install_without_autoremove():
    assert "autoremove" not in render_apt_install(["git"], autoremove=False)
