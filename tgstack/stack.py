"""A stack of modules that can be planned, applied or destroyed in one command."""

from __future__ import annotations

import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from tgstack.graph import check_for_cycles
from tgstack.module import TerraformModule
from tgstack.options import TerragruntOptions
from tgstack.running import run_modules, run_modules_reverse_order

_PLAN_ERROR_MARKER = "Error running plan:"
_REMOTE_STATE_MARKER = ": Resource 'data.terraform_remote_state."


class NoTerraformModulesFound(Exception):
    """No subfolder held a configuration file."""

    def __init__(self) -> None:
        super().__init__(
            "Could not find any subfolders with Terragrunt configuration files"
        )


@dataclass(eq=False)
class Stack:
    """Terraform modules that are spun up or down together."""

    path: str
    modules: list[TerraformModule] = field(default_factory=list)

    def __str__(self) -> str:
        lines = sorted(f"  => {module}" for module in self.modules)
        return f"Stack at {self.path}:\n" + "\n".join(lines)

    def plan(self, terragrunt_options: TerragruntOptions) -> None:
        """Run plan on every module in dependency order, then summarise plan errors."""
        self._set_terraform_command(["plan"])
        error_streams = [io.StringIO() for _ in self.modules]
        for module, stream in zip(self.modules, error_streams):
            module.terragrunt_options.err_writer = stream
        try:
            run_modules(self.modules)
        finally:
            self._summarize_plan_all_errors(terragrunt_options, error_streams)

    def apply(self, terragrunt_options: TerragruntOptions) -> None:
        """Apply every module, dependencies first."""
        self._set_terraform_command(["apply", "-input=false", "-auto-approve"])
        run_modules(self.modules)

    def destroy(self, terragrunt_options: TerragruntOptions) -> None:
        """Destroy every module, dependents first."""
        self._set_terraform_command(["destroy", "-force", "-input=false"])
        run_modules_reverse_order(self.modules)

    def output(self, terragrunt_options: TerragruntOptions) -> None:
        """Print the outputs of every module in dependency order."""
        self._set_terraform_command(["output"])
        run_modules(self.modules)

    def validate(self, terragrunt_options: TerragruntOptions) -> None:
        """Run validate on every module."""
        self._set_terraform_command(["validate"])
        run_modules(self.modules)

    def check_for_cycles(self) -> None:
        """Raise DependencyCycle if the modules of this stack form a cycle."""
        check_for_cycles(self.modules)

    def _set_terraform_command(self, command: Sequence[str]) -> None:
        for module in self.modules:
            options = module.terragrunt_options
            options.terraform_cli_args = [*command, *options.terraform_cli_args]
            options.terraform_command = command[0] if command else ""

    def _summarize_plan_all_errors(
        self, terragrunt_options: TerragruntOptions, error_streams: Sequence[io.StringIO]
    ) -> None:
        logger = terragrunt_options.logger
        for module, stream in zip(self.modules, error_streams):
            output = stream.getvalue()
            if _PLAN_ERROR_MARKER in output:
                logger.info("%s", output)
                if _REMOTE_STATE_MARKER in output:
                    dependencies_msg = ""
                    if module.dependencies:
                        paths = " ".join(module.config.dependency_paths)
                        dependencies_msg = f" contains dependencies to [{paths}] and"
                    logger.info(
                        "%s%s refers to remote state you may have to apply your changes "
                        "in the dependencies prior running terragrunt plan-all.\n",
                        module.path,
                        dependencies_msg,
                    )
            elif output:
                logger.info("Error with plan: %s", output)


def _stack_for_modules(path: str, modules: Iterable[TerraformModule]) -> Stack:
    """Build a stack from resolved modules, refusing an empty or cyclic one."""
    module_list = list(modules)
    if not module_list:
        raise NoTerraformModulesFound()
    stack = Stack(path=path, modules=module_list)
    stack.check_for_cycles()
    return stack