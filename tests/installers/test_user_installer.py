# tests/installers/test_user_installer.py
import subprocess

from matlab_provisioner.modular.installers.user_installer import UserInstaller

MODULE = "matlab_provisioner.modular.installers.user_installer"


def test_install_creates_user_with_sudo(mocker, app_settings, mock_logger):
    mocker.patch(f"{MODULE}.user_exists", return_value=False)
    mock_elevated = mocker.patch(f"{MODULE}.run_elevated_command")
    mock_write = mocker.patch(f"{MODULE}.write_file_elevated")

    assert UserInstaller(app_settings, mock_logger).install()

    mock_elevated.assert_called_once_with(
        [
            "adduser",
            "--shell",
            "/bin/bash",
            "--home",
            "/home/matlab",
            "--disabled-password",
            "--gecos",
            "",
            "matlab",
        ],
        app_settings,
        current_logger=mock_logger,
    )
    mock_write.assert_called_once_with(
        "/etc/sudoers.d/matlab",
        "matlab ALL=(ALL) NOPASSWD: ALL\n",
        app_settings,
        mode="0440",
        current_logger=mock_logger,
    )


def test_install_existing_user_only_grants_sudo(
    mocker, app_settings, mock_logger
):
    mocker.patch(f"{MODULE}.user_exists", return_value=True)
    mock_elevated = mocker.patch(f"{MODULE}.run_elevated_command")
    mock_write = mocker.patch(f"{MODULE}.write_file_elevated")

    assert UserInstaller(app_settings, mock_logger).install()
    mock_elevated.assert_not_called()
    mock_write.assert_called_once()


def test_install_failure(mocker, app_settings, mock_logger):
    mocker.patch(f"{MODULE}.user_exists", return_value=False)
    mocker.patch(
        f"{MODULE}.run_elevated_command",
        side_effect=subprocess.CalledProcessError(1, ["adduser"]),
    )

    assert not UserInstaller(app_settings, mock_logger).install()


def test_is_installed(mocker, tmp_path, app_settings, mock_logger):
    app_settings.user.sudoers_dir = str(tmp_path)
    mocker.patch(f"{MODULE}.user_exists", return_value=True)
    installer = UserInstaller(app_settings, mock_logger)

    assert not installer.is_installed()
    (tmp_path / "matlab").write_text("matlab ALL=(ALL) NOPASSWD: ALL\n")
    assert installer.is_installed()


def test_render(app_settings, mock_logger):
    run_block, user, workdir = UserInstaller(app_settings, mock_logger).render()

    assert run_block == (
        'RUN adduser --shell /bin/bash --home /home/matlab --disabled-password --gecos "" matlab \\\n'
        '    && echo "matlab ALL=(ALL) NOPASSWD: ALL" > /etc/sudoers.d/matlab \\\n'
        "    && chmod 0440 /etc/sudoers.d/matlab"
    )
    assert user == "USER matlab"
    assert workdir == "WORKDIR /home/matlab"
