"""Cross-linking of resolved modules and include/exclude flagging."""

from __future__ import annotations

import glob
import os
from collections.abc import Iterable, Mapping

from tgstack.module import TerraformModule, UnrecognizedDependency, find_module_in_path
from tgstack.options import TerragruntOptions


def _canonical_path(path: str, base_path: str) -> str:
    """Return the absolute, cleaned form of ``path`` taken relative to ``base_path``."""
    if not os.path.isabs(path):
        path = os.path.join(base_path, path)
    return os.path.normpath(os.path.abspath(path))


def _expand_dirs(dirs: Iterable[str], terragrunt_options: TerragruntOptions) -> list[str]:
    """Expand directory globs against the working directory into canonical paths."""
    canonical_working_dir = _canonical_path("", terragrunt_options.working_dir)
    matches: list[str] = []
    for directory in dirs:
        absolute_dir = (
            directory
            if os.path.isabs(directory)
            else os.path.join(canonical_working_dir, directory)
        )
        matches.extend(glob.glob(absolute_dir, recursive=True))
    return [_canonical_path(match, terragrunt_options.working_dir) for match in matches]


def merge_maps(
    modules: Mapping[str, TerraformModule],
    external_dependencies: Mapping[str, TerraformModule],
) -> dict[str, TerraformModule]:
    """Merge two module maps; entries of ``modules`` win over external dependencies."""
    return {**external_dependencies, **modules}


def get_dependencies_for_module(
    module: TerraformModule,
    module_map: Mapping[str, TerraformModule],
    terragrunt_config_paths: Iterable[str],
) -> list[TerraformModule]:
    """Return the modules in ``module_map`` that ``module`` depends on.

    Raises UnrecognizedDependency if a dependency is not in the map.
    """
    dependencies: list[TerraformModule] = []
    for dependency_path in module.config.dependency_paths:
        dependency_module_path = _canonical_path(dependency_path, module.path)
        dependency_module = module_map.get(dependency_module_path)
        if dependency_module is None:
            raise UnrecognizedDependency(module.path, dependency_path, terragrunt_config_paths)
        dependencies.append(dependency_module)
    return dependencies


def crosslink_dependencies(
    module_map: Mapping[str, TerraformModule],
    canonical_terragrunt_config_paths: Iterable[str],
) -> list[TerraformModule]:
    """Fill in each module's dependencies from the same map; return modules sorted by path."""
    config_paths = list(canonical_terragrunt_config_paths)
    modules: list[TerraformModule] = []
    for key in sorted(module_map):
        module = module_map[key]
        module.dependencies = get_dependencies_for_module(module, module_map, config_paths)
        modules.append(module)
    return modules


def flag_excluded_dirs(
    modules: list[TerraformModule], terragrunt_options: TerragruntOptions
) -> list[TerraformModule]:
    """Mark modules, and dependencies, that lie under an excluded directory."""
    if not terragrunt_options.exclude_dirs:
        return modules

    exclude_dirs = _expand_dirs(terragrunt_options.exclude_dirs, terragrunt_options)
    for module in modules:
        if find_module_in_path(module, exclude_dirs):
            module.flag_excluded = True
        for dependency in module.dependencies:
            if find_module_in_path(dependency, exclude_dirs):
                dependency.flag_excluded = True
    return modules


def flag_included_dirs(
    modules: list[TerraformModule], terragrunt_options: TerragruntOptions
) -> list[TerraformModule]:
    """Mark every module not under an included directory as excluded.

    Dependencies of included modules are included as well.
    """
    if not terragrunt_options.include_dirs:
        return modules

    include_dirs = _expand_dirs(terragrunt_options.include_dirs, terragrunt_options)
    for module in modules:
        if find_module_in_path(module, include_dirs):
            module.flag_excluded = False
            for dependency in module.dependencies:
                dependency.flag_excluded = False
        else:
            module.flag_excluded = True
    return modules