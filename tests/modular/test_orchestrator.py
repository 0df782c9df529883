# tests/modular/test_orchestrator.py
import pytest

from matlab_provisioner.modular.base_installer import BaseInstaller
from matlab_provisioner.modular.orchestrator import InstallerOrchestrator


@pytest.fixture
def fake_steps(clean_registry):
    """
    Registers fake_a <- fake_b <- fake_c. Behaviour is driven by the
    `installed` and `failing` sets; every install() call is recorded.
    """
    state = {"calls": [], "installed": set(), "failing": set()}

    def make(name, dependencies):
        class FakeInstaller(BaseInstaller):
            def install(self):
                state["calls"].append(self.name)
                return self.name not in state["failing"]

            def is_installed(self):
                return self.name in state["installed"]

            def render(self):
                return [f"RUN echo {self.name}"]

        clean_registry.register(
            name=name,
            metadata={
                "dependencies": dependencies,
                "estimated_time": 1,
                "description": f"{name} step",
            },
        )(FakeInstaller)

    make("fake_a", [])
    make("fake_b", ["fake_a"])
    make("fake_c", ["fake_b"])
    return state


def test_default_steps_follow_build_order(app_settings, mock_logger):
    orchestrator = InstallerOrchestrator(app_settings, mock_logger)

    assert orchestrator.default_steps() == [
        "timezone",
        "prerequisites",
        "user",
        "matlab",
        "environment",
        "matconvnet",
    ]


def test_disabled_extension_left_out_of_defaults(app_settings, mock_logger):
    app_settings.matconvnet.enabled = False
    orchestrator = InstallerOrchestrator(app_settings, mock_logger)

    assert "matconvnet" not in orchestrator.default_steps()


def test_install_runs_dependencies_in_order(
    fake_steps, app_settings, mock_logger
):
    orchestrator = InstallerOrchestrator(app_settings, mock_logger)

    assert orchestrator.install(["fake_c"])

    assert fake_steps["calls"] == ["fake_a", "fake_b", "fake_c"]
    mock_logger.info.assert_any_call(
        "All provisioning steps completed successfully"
    )


def test_install_halts_at_first_failure(fake_steps, app_settings, mock_logger):
    fake_steps["failing"].add("fake_b")
    orchestrator = InstallerOrchestrator(app_settings, mock_logger)

    assert not orchestrator.install(["fake_c"])

    assert fake_steps["calls"] == ["fake_a", "fake_b"]
    mock_logger.error.assert_any_call(
        "Step 'fake_b' failed. Halting provisioning."
    )


def test_install_treats_exceptions_as_failure(
    fake_steps, app_settings, mock_logger, mocker
):
    orchestrator = InstallerOrchestrator(app_settings, mock_logger)
    mocker.patch.object(
        orchestrator.get_available_installers()["fake_a"],
        "install",
        side_effect=RuntimeError("disk full"),
    )

    assert not orchestrator.install(["fake_c"])
    assert fake_steps["calls"] == []
    mock_logger.error.assert_any_call(
        "Unexpected error in step 'fake_a': disk full", exc_info=True
    )


def test_satisfied_dependencies_are_skipped(
    fake_steps, app_settings, mock_logger
):
    fake_steps["installed"].update({"fake_a", "fake_c"})
    orchestrator = InstallerOrchestrator(app_settings, mock_logger)

    assert orchestrator.install(["fake_c"])

    # requested steps always run, installed or not
    assert fake_steps["calls"] == ["fake_b", "fake_c"]


def test_install_unknown_step(app_settings, mock_logger):
    orchestrator = InstallerOrchestrator(app_settings, mock_logger)

    assert not orchestrator.install(["does_not_exist"])
    mock_logger.error.assert_called_once()


def test_check_status(fake_steps, app_settings, mock_logger):
    fake_steps["installed"].add("fake_a")
    orchestrator = InstallerOrchestrator(app_settings, mock_logger)

    assert orchestrator.check_status(["fake_a", "fake_b"]) == {
        "fake_a": True,
        "fake_b": False,
    }


def test_render_collects_blocks_in_order(fake_steps, app_settings, mock_logger):
    orchestrator = InstallerOrchestrator(app_settings, mock_logger)

    assert orchestrator.render(["fake_c"]) == [
        "RUN echo fake_a",
        "RUN echo fake_b",
        "RUN echo fake_c",
    ]
