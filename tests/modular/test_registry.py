# tests/modular/test_registry.py
import pytest
from pydantic import ValidationError

from matlab_provisioner.modular.base_installer import BaseInstaller


class _NoopInstaller(BaseInstaller):
    def install(self):
        return True

    def is_installed(self):
        return False

    def render(self):
        return []


def _register(registry, name, dependencies=()):
    return registry.register(
        name=name,
        metadata={
            "dependencies": list(dependencies),
            "estimated_time": 1,
            "description": f"{name} step",
        },
    )(type(f"{name.title()}Installer", (_NoopInstaller,), {}))


def test_builtin_steps_resolve_in_build_order(clean_registry):
    assert clean_registry.resolve_dependencies(["matconvnet"]) == [
        "timezone",
        "prerequisites",
        "user",
        "matlab",
        "environment",
        "matconvnet",
    ]


def test_register_sets_name_and_metadata(clean_registry):
    installer_class = _register(clean_registry, "fake_step", ["timezone"])

    assert installer_class.name == "fake_step"
    assert installer_class.metadata.description == "fake_step step"
    assert clean_registry.get_installer("fake_step") is installer_class
    assert clean_registry.get_installer_dependencies("fake_step") == {"timezone"}


def test_duplicate_registration_rejected(clean_registry):
    _register(clean_registry, "fake_step")
    with pytest.raises(ValueError, match="already registered"):
        _register(clean_registry, "fake_step")


def test_unknown_installer(clean_registry):
    with pytest.raises(KeyError):
        clean_registry.get_installer("does_not_exist")
    with pytest.raises(KeyError):
        clean_registry.resolve_dependencies(["does_not_exist"])


def test_each_step_runs_once_after_its_dependencies(clean_registry):
    _register(clean_registry, "fake_base")
    _register(clean_registry, "fake_left", ["fake_base"])
    _register(clean_registry, "fake_right", ["fake_base"])
    _register(clean_registry, "fake_top", ["fake_right", "fake_left"])

    order = clean_registry.resolve_dependencies(["fake_top", "fake_base"])

    assert order == ["fake_base", "fake_left", "fake_right", "fake_top"]


def test_circular_dependency_detected(clean_registry):
    _register(clean_registry, "fake_a", ["fake_b"])
    _register(clean_registry, "fake_b", ["fake_a"])

    with pytest.raises(
        ValueError, match="Circular dependency .*fake_a -> fake_b -> fake_a"
    ):
        clean_registry.resolve_dependencies(["fake_a"])


def test_unregister(clean_registry):
    _register(clean_registry, "fake_step")
    clean_registry.unregister("fake_step")
    assert "fake_step" not in clean_registry.get_all_installers()


def test_malformed_metadata_rejected(clean_registry):
    with pytest.raises(ValidationError):
        clean_registry.register(name="fake_step", metadata={"depends": ["user"]})
    with pytest.raises(ValidationError):
        clean_registry.register(name="fake_step", metadata={"estimated_time": -1})
    assert "fake_step" not in clean_registry.get_all_installers()
