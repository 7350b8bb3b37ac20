"""Dependency-cycle detection for a set of modules."""

from __future__ import annotations

from collections.abc import Iterable

from tgstack.module import TerraformModule


class DependencyCycle(Exception):
    """The modules depend on each other in a loop."""

    def __init__(self, paths: Iterable[str]) -> None:
        self.paths = list(paths)
        super().__init__(
            f"Found a dependency cycle between modules: {' -> '.join(self.paths)}"
        )


def check_for_cycles(modules: Iterable[TerraformModule]) -> None:
    """Raise DependencyCycle, naming the paths in the loop, if the modules form a cycle."""
    visited: list[str] = []
    current_traversal: list[str] = []
    for module in modules:
        _depth_first_search(module, visited, current_traversal)


def _depth_first_search(
    module: TerraformModule, visited: list[str], current_traversal: list[str]
) -> None:
    if module.path in visited:
        return
    if module.path in current_traversal:
        raise DependencyCycle([*current_traversal, module.path])

    current_traversal.append(module.path)
    for dependency in module.dependencies:
        _depth_first_search(dependency, visited, current_traversal)

    visited.append(module.path)
    current_traversal[:] = [path for path in current_traversal if path != module.path]