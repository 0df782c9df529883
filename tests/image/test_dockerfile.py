# tests/image/test_dockerfile.py
import pytest

from matlab_provisioner.image.dockerfile import render_dockerfile, write_dockerfile
from matlab_provisioner.modular.base_installer import (
    dockerfile_escape,
    dockerfile_word,
)
from matlab_provisioner.modular.installers.matlab_installer import (
    INSTALL_FAILURE_HEADER,
)
from matlab_provisioner.modular.orchestrator import InstallerOrchestrator


@pytest.fixture
def orchestrator(app_settings, mock_logger):
    return InstallerOrchestrator(app_settings, mock_logger)


def test_rendering_is_deterministic(app_settings, orchestrator):
    first = render_dockerfile(app_settings, orchestrator=orchestrator)
    second = render_dockerfile(app_settings, orchestrator=orchestrator)
    assert first == second


def test_build_parameters_declared(app_settings, orchestrator):
    content = render_dockerfile(app_settings, orchestrator=orchestrator)

    assert "ARG MATLAB_RELEASE=R2024a\n" in content
    assert 'ARG MATLAB_PRODUCT_LIST="MATLAB Deep_Learning_Toolbox"\n' in content
    assert 'ARG MATLAB_INSTALL_LOCATION="/opt/matlab/${MATLAB_RELEASE}"\n' in content
    assert 'ARG LICENSE_SERVER="27000@license.example.com"\n' in content
    assert "FROM mathworks/matlab-deps:${MATLAB_RELEASE}\n" in content
    assert content.endswith('ENTRYPOINT ["matlab"]\n')


def test_license_server_optional(app_settings, orchestrator):
    app_settings.license_server = None

    content = render_dockerfile(app_settings, orchestrator=orchestrator)

    assert 'ARG LICENSE_SERVER="' not in content
    assert "\nARG LICENSE_SERVER\n" in content
    assert "ENV MLM_LICENSE_FILE=$LICENSE_SERVER\n" in content


def test_explicit_install_location(app_settings, orchestrator):
    app_settings.matlab.install_location = "/usr/local/MATLAB"

    content = render_dockerfile(app_settings, orchestrator=orchestrator)

    assert 'ARG MATLAB_INSTALL_LOCATION="/usr/local/MATLAB"\n' in content


def test_build_parameters_are_escaped(app_settings, orchestrator):
    app_settings.matlab.products = 'MATLAB "Simulink"'
    app_settings.matlab.install_location = "/opt/$HOME/matlab"
    app_settings.license_server = "27000@lic$1"

    content = render_dockerfile(app_settings, orchestrator=orchestrator)

    assert 'ARG MATLAB_PRODUCT_LIST="MATLAB \\"Simulink\\""\n' in content
    assert 'ARG MATLAB_INSTALL_LOCATION="/opt/\\$HOME/matlab"\n' in content
    assert 'ARG LICENSE_SERVER="27000@lic\\$1"\n' in content


def test_steps_appear_in_build_order(app_settings, orchestrator):
    content = render_dockerfile(app_settings, orchestrator=orchestrator)

    markers = [
        "ENV TZ=Etc/UTC",
        "wget \\\n    ca-certificates",
        "RUN adduser",
        "./mpm install",
        "ENV MLM_LICENSE_FILE=$LICENSE_SERVER",
        "vl_compilenn",
    ]
    positions = [content.index(marker) for marker in markers]
    assert positions == sorted(positions)
    assert INSTALL_FAILURE_HEADER in content


def test_extension_left_out(app_settings, orchestrator):
    app_settings.matconvnet.enabled = False

    content = render_dockerfile(app_settings, orchestrator=orchestrator)

    assert "vl_compilenn" not in content
    assert "MATCONVNET_ROOT" not in content
    assert "./mpm install" in content


def test_selected_steps_include_dependencies(app_settings, orchestrator):
    content = render_dockerfile(
        app_settings, steps=["user"], orchestrator=orchestrator
    )

    assert "ENV TZ=Etc/UTC" in content
    assert "RUN adduser" in content
    assert "./mpm install" not in content


def test_write_dockerfile(tmp_path, app_settings, mock_logger):
    path = write_dockerfile(
        tmp_path / "build" / "Dockerfile",
        "FROM scratch\n",
        app_settings,
        mock_logger,
    )

    assert path.read_text(encoding="utf-8") == "FROM scratch\n"
    mock_logger.info.assert_called_once()


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Etc/UTC", "Etc/UTC"),
        ("27000@lic1:27000@lic2", "27000@lic1:27000@lic2"),
        ("/home/matlab/Neural Nets", '"/home/matlab/Neural Nets"'),
        ("", '""'),
        ('a "b" $c \\d', '"a \\"b\\" \\$c \\\\d"'),
    ],
)
def test_dockerfile_word(value, expected):
    assert dockerfile_word(value) == expected


def test_dockerfile_escape_leaves_plain_text():
    assert dockerfile_escape("MATLAB Simulink") == "MATLAB Simulink"
