"""Terraform modules found in a stack and the helpers that describe them."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from tgstack.options import TerragruntOptions

MAX_LEVELS_OF_RECURSION = 20

_PATH_SEPARATORS = "/\\"

# Captures whatever follows the last slash, up to a dot or the end of the string.
_MODULE_NAME_PATTERN = re.compile(r"(?:.+/)(.+?)(?:\.|$)")


def _go_list(items: Iterable[str]) -> str:
    return "[" + " ".join(items) + "]"


@dataclass
class ModuleConfig:
    """The parts of a module's configuration needed to build a stack."""

    terraform_source: str | None = None
    dependency_paths: list[str] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class TerraformModule:
    """A folder with Terraform templates, its configuration and the modules it depends on."""

    path: str
    dependencies: list["TerraformModule"] = field(default_factory=list)
    config: ModuleConfig = field(default_factory=ModuleConfig)
    terragrunt_options: TerragruntOptions | None = None
    assume_already_applied: bool = False
    flag_excluded: bool = False

    def __str__(self) -> str:
        dependencies = ", ".join(dependency.path for dependency in self.dependencies)
        excluded = "true" if self.flag_excluded else "false"
        return f"Module {self.path} (excluded: {excluded}, dependencies: [{dependencies}])"

    __repr__ = __str__


class UnrecognizedDependency(Exception):
    """A module names a dependency that was not among the modules found."""

    def __init__(
        self, module_path: str, dependency_path: str, terragrunt_config_paths: Iterable[str]
    ) -> None:
        self.module_path = module_path
        self.dependency_path = dependency_path
        self.terragrunt_config_paths = list(terragrunt_config_paths)
        super().__init__(
            f"Module {module_path} specifies {dependency_path} as a dependency, but that "
            "dependency was not one of the ones found while scanning subfolders: "
            f"{_go_list(self.terragrunt_config_paths)}"
        )


class ErrorProcessingModule(Exception):
    """Reading the configuration of a module failed."""

    def __init__(
        self,
        underlying_error: BaseException,
        module_path: str,
        how_this_module_was_found: str,
    ) -> None:
        self.underlying_error = underlying_error
        self.module_path = module_path
        self.how_this_module_was_found = how_this_module_was_found
        super().__init__(
            f"Error processing module at '{module_path}'. How this module was found: "
            f"{how_this_module_was_found}. Underlying error: {underlying_error}"
        )


class InvalidSourceUrl(Exception):
    """A module's source URL cannot be combined with the source override."""

    def __init__(self, module_path: str, module_source_url: str, terragrunt_source: str) -> None:
        self.module_path = module_path
        self.module_source_url = module_source_url
        self.terragrunt_source = terragrunt_source
        super().__init__(
            f"The --terragrunt-source parameter is set to '{terragrunt_source}', but the source "
            f"URL in the module at '{module_path}' is invalid: '{module_source_url}'. Note that "
            "the module URL must have a double-slash to separate the repo URL from the path "
            "within the repo!"
        )


class ErrorParsingModulePath(Exception):
    """No module name could be taken from a source URL."""

    def __init__(self, module_source_url: str) -> None:
        self.module_source_url = module_source_url
        super().__init__(
            f"Unable to obtain the module path from the source URL '{module_source_url}'. "
            "Ensure that the URL is in a supported format."
        )


class InfiniteRecursion(Exception):
    """Resolving external dependencies went too many levels deep."""

    def __init__(self, recursion_level: int, modules: Mapping[str, Any]) -> None:
        self.recursion_level = recursion_level
        self.modules = dict(modules)
        rendered = " ".join(f"{key}:{self.modules[key]}" for key in sorted(self.modules))
        super().__init__(
            f"Hit what seems to be an infinite recursion after going {recursion_level} levels "
            f"deep. Please check for a circular dependency! Modules involved: map[{rendered}]"
        )


def _split_source_subdir(source: str) -> tuple[str, str]:
    """Split a source address at its '//' into the repository URL and the subdirectory."""
    stop = source.find("?")
    if stop == -1:
        stop = len(source)
    scheme_end = source.find("://", 0, stop)
    offset = scheme_end + 3 if scheme_end > -1 else 0
    index = source.find("//", offset, stop)
    if index == -1:
        return source, ""
    subdir = source[index + 2 :]
    url = source[:index]
    query_start = subdir.find("?")
    if query_start > -1:
        url += subdir[query_start:]
        subdir = subdir[:query_start]
    return url, subdir


def _join_terraform_module_path(modules_folder: str, path: str) -> str:
    return f"{modules_folder.rstrip(_PATH_SEPARATORS)}//{path.lstrip(_PATH_SEPARATORS)}"


def get_module_path_from_source_url(source_url: str) -> str:
    """Take the module name from a source URL that has no '//' in it."""
    source_url = source_url.split("?", 1)[0]
    match = _MODULE_NAME_PATTERN.search(source_url)
    if match is None:
        raise ErrorParsingModulePath(source_url)
    return match.group(1)


def get_terragrunt_source_for_module(
    module_path: str, module_config: ModuleConfig, terragrunt_options: TerragruntOptions
) -> str:
    """Build the source override for one module from the stack-wide source override.

    The path inside the repository is taken from the module's own source URL and
    appended to the override, so '/src' and 'git::host:org/repo.git//vpc' give '/src//vpc'.
    """
    module_source = module_config.terraform_source
    if not terragrunt_options.source or not module_source:
        return ""

    module_url, module_subdir = _split_source_subdir(module_source)
    if not module_url and not module_subdir:
        raise InvalidSourceUrl(module_path, module_source, terragrunt_options.source)
    if module_url and not module_subdir:
        module_subdir = get_module_path_from_source_url(module_url)
    return _join_terraform_module_path(terragrunt_options.source, module_subdir)


def find_module_in_path(module: TerraformModule, target_dirs: Iterable[str]) -> bool:
    """Return True if the module's path lies under one of the target directories."""
    return any(target_dir in module.path for target_dir in target_dirs)