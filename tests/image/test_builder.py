# tests/image/test_builder.py
import json
import subprocess

import pytest

from matlab_provisioner.image.builder import ImageBuilder, normalize_release

MODULE = "matlab_provisioner.image.builder"


@pytest.fixture
def runtime_available(mocker):
    return mocker.patch(f"{MODULE}.command_exists", return_value=True)


def _image(release_output, environment):
    """run_command stand-in answering the release query and image inspect."""

    def run(command, *args, **kwargs):
        if command[1] == "run":
            return subprocess.CompletedProcess(command, 0, stdout=release_output)
        return subprocess.CompletedProcess(
            command, 0, stdout=json.dumps(environment) + "\n"
        )

    return run


@pytest.mark.parametrize("value", ["R2024a", "r2024a", "2024a", " R2024a\n"])
def test_normalize_release(value):
    assert normalize_release(value) == "2024a"


def test_build_args_skip_unset_parameters(app_settings, mock_logger):
    app_settings.license_server = None

    assert ImageBuilder(app_settings, mock_logger).build_args() == {
        "MATLAB_RELEASE": "R2024a",
        "MATLAB_PRODUCT_LIST": "MATLAB Deep_Learning_Toolbox",
    }


def test_build_command(app_settings, mock_logger):
    app_settings.matlab.install_location = "/usr/local/MATLAB"
    builder = ImageBuilder(app_settings, mock_logger)

    assert builder.build_command("ctx/Dockerfile", "ctx") == [
        "docker",
        "build",
        "--build-arg",
        "MATLAB_RELEASE=R2024a",
        "--build-arg",
        "MATLAB_PRODUCT_LIST=MATLAB Deep_Learning_Toolbox",
        "--build-arg",
        "MATLAB_INSTALL_LOCATION=/usr/local/MATLAB",
        "--build-arg",
        "LICENSE_SERVER=27000@license.example.com",
        "-t",
        "matlab:r2024a",
        "-f",
        "ctx/Dockerfile",
        "ctx",
    ]


def test_build_missing_runtime(mocker, app_settings, mock_logger):
    mocker.patch(f"{MODULE}.command_exists", return_value=False)

    with pytest.raises(FileNotFoundError):
        ImageBuilder(app_settings, mock_logger).build("Dockerfile", ".")


def test_build_failure(mocker, runtime_available, app_settings, mock_logger):
    mocker.patch(
        f"{MODULE}.run_command",
        side_effect=subprocess.CalledProcessError(1, ["docker", "build"]),
    )

    assert not ImageBuilder(app_settings, mock_logger, tag="custom:1").build(
        "Dockerfile", "."
    )


def test_verify_matching_image(mocker, runtime_available, app_settings, mock_logger):
    mock_run = mocker.patch(
        f"{MODULE}.run_command",
        side_effect=_image(
            "\n2024a\n",
            ["PATH=/usr/bin", "MLM_LICENSE_FILE=27000@license.example.com"],
        ),
    )

    assert ImageBuilder(app_settings, mock_logger).verify()
    assert mock_run.call_args_list[0].args[0] == [
        "docker",
        "run",
        "--rm",
        "--entrypoint",
        "matlab",
        "matlab:r2024a",
        "-batch",
        "disp(version('-release'))",
    ]


def test_verify_empty_license(mocker, runtime_available, app_settings, mock_logger):
    app_settings.license_server = None
    mocker.patch(
        f"{MODULE}.run_command",
        side_effect=_image("2024a\n", ["MLM_LICENSE_FILE="]),
    )

    assert ImageBuilder(app_settings, mock_logger).verify()


def test_verify_release_mismatch(mocker, runtime_available, app_settings, mock_logger):
    mocker.patch(
        f"{MODULE}.run_command",
        side_effect=_image(
            "2023b\n", ["MLM_LICENSE_FILE=27000@license.example.com"]
        ),
    )

    assert not ImageBuilder(app_settings, mock_logger).verify()


def test_verify_license_mismatch(mocker, runtime_available, app_settings, mock_logger):
    mocker.patch(
        f"{MODULE}.run_command",
        side_effect=_image("2024a\n", ["MLM_LICENSE_FILE=1234@other"]),
    )

    assert not ImageBuilder(app_settings, mock_logger).verify()
    assert "1234@other" in mock_logger.error.call_args.args[0]
