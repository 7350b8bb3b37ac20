"""Running the modules of a stack concurrently, in dependency order."""

from __future__ import annotations

import enum
import logging
import queue
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from tgstack.module import TerraformModule


class ModuleStatus(enum.Enum):
    """Where a module is in its run."""

    WAITING = 0
    RUNNING = 1
    FINISHED = 2


class DependencyOrder(enum.Enum):
    """Which way dependencies are enforced between modules."""

    NORMAL = 0
    REVERSE = 1


def _exit_code(error: BaseException) -> int:
    """Return the exit code carried by an error; ValueError if it carries none."""
    exit_status = getattr(error, "exit_status", None)
    if callable(exit_status):
        return int(exit_status())
    raise ValueError(f"Unable to determine the exit code of error: {error}")


class DependencyFinishedWithError(Exception):
    """A module was not run because one of its dependencies failed."""

    def __init__(
        self, module: TerraformModule, dependency: TerraformModule, err: BaseException
    ) -> None:
        self.module = module
        self.dependency = dependency
        self.err = err
        super().__init__(
            f"Cannot process module {module} because one of its dependencies, "
            f"{dependency}, finished with an error: {err}"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyFinishedWithError):
            return NotImplemented
        return (
            self.module is other.module
            and self.dependency is other.dependency
            and self.err == other.err
        )

    def __hash__(self) -> int:
        return hash((id(self.module), id(self.dependency)))

    def exit_status(self) -> int:
        """Exit code of the dependency's error; ValueError if it has none."""
        return _exit_code(self.err)


class ModuleRunErrors(Exception):
    """The errors of all the modules that failed in one run."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors = list(errors)
        messages = "\n".join(str(err) for err in self.errors)
        super().__init__(f"Encountered the following errors:\n{messages}")

    def exit_status(self) -> int:
        """The highest exit code among the errors; ValueError if one has none."""
        exit_code = 0
        for err in self.errors:
            exit_code = max(exit_code, _exit_code(err))
        return exit_code


class DependencyNotFoundWhileCrossLinking(Exception):
    """A module depends on a module that is not part of the run."""

    def __init__(self, module: "RunningModule", dependency: TerraformModule) -> None:
        self.module = module
        self.dependency = dependency
        super().__init__(
            f"Module {module.module} specifies a dependency on module {dependency}, but "
            "could not find that module while cross-linking dependencies. This is most "
            "likely a bug in Terragrunt. Please report it."
        )


@dataclass(eq=False)
class RunningModule:
    """A module being run, with the modules it waits on and those it must notify."""

    module: TerraformModule
    status: ModuleStatus = ModuleStatus.WAITING
    err: BaseException | None = None
    dependency_done: "queue.Queue[RunningModule]" = field(default_factory=queue.Queue)
    dependencies: dict[str, "RunningModule"] = field(default_factory=dict)
    notify_when_done: list["RunningModule"] = field(default_factory=list)
    flag_excluded: bool = False

    @property
    def _logger(self) -> logging.Logger:
        return self.module.terragrunt_options.logger

    def run_when_ready(self) -> None:
        """Wait for all dependencies, run this module, then notify dependents."""
        try:
            self._wait_for_dependencies()
            self._run_now()
        except Exception as error:  # noqa: BLE001 - the error is recorded, not lost
            self._finished(error)
        else:
            self._finished(None)

    def _wait_for_dependencies(self) -> None:
        path = self.module.path
        options = self.module.terragrunt_options
        self._logger.info(
            "Module %s must wait for %d dependencies to finish", path, len(self.dependencies)
        )
        while self.dependencies:
            done = self.dependency_done.get()
            self.dependencies.pop(done.module.path, None)
            done_path = done.module.path
            if done.err is not None:
                if options.ignore_dependency_errors:
                    self._logger.info(
                        "Dependency %s of module %s just finished with an error. Module %s "
                        "will have to return an error too. However, because of "
                        "--terragrunt-ignore-dependency-errors, module %s will run anyway.",
                        done_path, path, path, path,
                    )
                else:
                    self._logger.info(
                        "Dependency %s of module %s just finished with an error. Module %s "
                        "will have to return an error too.",
                        done_path, path, path,
                    )
                    raise DependencyFinishedWithError(self.module, done.module, done.err)
            else:
                self._logger.info(
                    "Dependency %s of module %s just finished successfully. Module %s must "
                    "wait on %d more dependencies.",
                    done_path, path, path, len(self.dependencies),
                )

    def _run_now(self) -> None:
        self.status = ModuleStatus.RUNNING
        if self.module.assume_already_applied:
            self._logger.info(
                "Assuming module %s has already been applied and skipping it", self.module.path
            )
            return
        self._logger.info("Running module %s now", self.module.path)
        options = self.module.terragrunt_options
        options.run_terragrunt(options)

    def _finished(self, error: BaseException | None) -> None:
        if error is None:
            self._logger.info("Module %s has finished successfully!", self.module.path)
        else:
            self._logger.info("Module %s has finished with an error: %s", self.module.path, error)
        self.status = ModuleStatus.FINISHED
        self.err = error
        for to_notify in self.notify_when_done:
            to_notify.dependency_done.put(self)


def _cross_link_dependencies(
    modules: Mapping[str, RunningModule], dependency_order: DependencyOrder
) -> None:
    for running in modules.values():
        for dependency in running.module.dependencies:
            running_dependency = modules.get(dependency.path)
            if running_dependency is None:
                raise DependencyNotFoundWhileCrossLinking(running, dependency)
            if dependency_order is DependencyOrder.NORMAL:
                running.dependencies[running_dependency.module.path] = running_dependency
                running_dependency.notify_when_done.append(running)
            else:
                running_dependency.dependencies[running.module.path] = running
                running.notify_when_done.append(running_dependency)


def _remove_flag_excluded(modules: Mapping[str, RunningModule]) -> dict[str, RunningModule]:
    final: dict[str, RunningModule] = {}
    for key, running in modules.items():
        if running.flag_excluded:
            continue
        final[key] = RunningModule(
            module=running.module,
            status=running.status,
            err=running.err,
            dependency_done=running.dependency_done,
            dependencies={
                path: dependency
                for path, dependency in running.dependencies.items()
                if not dependency.flag_excluded
            },
            notify_when_done=running.notify_when_done,
        )
    return final


def to_running_modules(
    modules: Iterable[TerraformModule], dependency_order: DependencyOrder
) -> dict[str, RunningModule]:
    """Map module paths to linked running modules, leaving out excluded modules.

    Nothing is run; raises DependencyNotFoundWhileCrossLinking for a missing dependency.
    """
    running_modules = {
        module.path: RunningModule(module=module, flag_excluded=module.flag_excluded)
        for module in modules
    }
    _cross_link_dependencies(running_modules, dependency_order)
    return _remove_flag_excluded(running_modules)


def _run(modules: Mapping[str, RunningModule]) -> None:
    threads = [
        threading.Thread(target=running.run_when_ready, daemon=True)
        for running in modules.values()
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    errors = [running.err for running in modules.values() if running.err is not None]
    if errors:
        raise ModuleRunErrors(errors)


def run_modules(modules: Iterable[TerraformModule]) -> None:
    """Run the modules concurrently, each after its dependencies.

    Raises ModuleRunErrors holding every module's error if any failed.
    """
    _run(to_running_modules(modules, DependencyOrder.NORMAL))


def run_modules_reverse_order(modules: Iterable[TerraformModule]) -> None:
    """Run the modules concurrently, each after the modules that depend on it."""
    _run(to_running_modules(modules, DependencyOrder.REVERSE))