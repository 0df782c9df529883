# matlab_provisioner/modular/registry.py
"""
Registry of the provisioning steps.

Step classes register themselves under a name with a decorator. The
registry turns a set of requested names into an execution order in which
every step comes after the steps it depends on.
"""

from typing import Any, Dict, List, Optional, Set, Type

from matlab_provisioner.modular.base_installer import BaseInstaller, StepMetadata


class InstallerRegistry:
    """Class-level registry mapping step names to installer classes."""

    _registry: Dict[str, Type[BaseInstaller]] = {}

    @classmethod
    def register(cls, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Class decorator registering a step under `name`.

        Args:
            name: Step name used on the command line and in dependencies.
            metadata: "dependencies", "estimated_time" and "description".
                Validated into StepMetadata; unknown keys are rejected.

        Raises:
            ValueError: The name is already taken.
            pydantic.ValidationError: The metadata is malformed.
        """
        step_metadata = StepMetadata(**(metadata or {}))

        def decorator(
            installer_class: Type[BaseInstaller],
        ) -> Type[BaseInstaller]:
            if name in cls._registry:
                raise ValueError(
                    f"Installer with name '{name}' already registered"
                )
            installer_class.name = name
            installer_class.metadata = step_metadata
            cls._registry[name] = installer_class
            return installer_class

        return decorator

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._registry.pop(name, None)

    @classmethod
    def get_installer(cls, name: str) -> Type[BaseInstaller]:
        """
        Raises:
            KeyError: No step is registered under `name`.
        """
        try:
            return cls._registry[name]
        except KeyError:
            raise KeyError(f"No installer registered with name '{name}'") from None

    @classmethod
    def get_all_installers(cls) -> Dict[str, Type[BaseInstaller]]:
        return dict(cls._registry)

    @classmethod
    def get_installer_dependencies(cls, name: str) -> Set[str]:
        return set(cls.get_installer(name).metadata.dependencies)

    @classmethod
    def resolve_dependencies(cls, installers: List[str]) -> List[str]:
        """
        Order the requested steps and everything they depend on.

        Steps are visited depth first, dependencies in sorted order, so the
        same request always yields the same order.

        Returns:
            Step names, each once, every one after its dependencies.

        Raises:
            KeyError: A step or dependency is not registered.
            ValueError: The dependencies form a cycle. The message names
                the steps on the cycle.
        """
        ordered: List[str] = []
        done: Set[str] = set()

        def visit(name: str, path: List[str]) -> None:
            if name in done:
                return
            if name in path:
                cycle = path[path.index(name):] + [name]
                raise ValueError(
                    f"Circular dependency detected involving '{name}': {' -> '.join(cycle)}"
                )
            for dependency in sorted(cls.get_installer_dependencies(name)):
                visit(dependency, path + [name])
            done.add(name)
            ordered.append(name)

        for name in installers:
            visit(name, [])
        return ordered
