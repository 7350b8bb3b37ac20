"""Options that configure how the tool runs."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, TextIO

TERRAFORM_COMMANDS_WITH_SUBCOMMAND = ["debug", "force-unlock", "state"]

DEFAULT_MAX_FOLDERS_TO_CHECK = 100

TERRAFORM_DEFAULT_PATH = "terraform"

TERRAGRUNT_CACHE_DIR = ".terragrunt-cache"

DEFAULT_MAX_RETRY_ATTEMPTS = 3

DEFAULT_SLEEP = 5.0

# Recurring transient errors from terraform; a match means the command is retried.
RETRYABLE_ERRORS = [
    "(?s).*Failed to load state.*tcp.*timeout.*",
    "(?s).*Failed to load backend.*TLS handshake timeout.*",
    "(?s).*Creating metric alarm failed.*request to update this alarm is in progress.*",
    "(?s).*Error installing provider.*TLS handshake timeout.*",
    "(?s).*Error configuring the backend.*TLS handshake timeout.*",
    "(?s).*Error installing provider.*tcp.*timeout.*",
    "(?s).*Error installing provider.*tcp.*connection reset by peer.*",
    "NoSuchBucket: The specified bucket does not exist",
]


class RunTerragruntCommandNotSetError(Exception):
    """Raised when no run command was configured on the options."""

    def __init__(self, terragrunt_config_path: str = "") -> None:
        super().__init__(
            "The RunTerragrunt option has not been set on this TerragruntOptions object"
        )
        self.terragrunt_config_path = terragrunt_config_path


def _run_terragrunt_not_set(options: "TerragruntOptions") -> None:
    raise RunTerragruntCommandNotSetError(options.terragrunt_config_path)


def _create_logger(prefix: str, stream: TextIO) -> logging.Logger:
    logger = logging.Logger(f"terragrunt.{prefix}" if prefix else "terragrunt")
    handler = logging.StreamHandler(stream)
    label = f"[terragrunt] [{prefix}] " if prefix else "[terragrunt] "
    handler.setFormatter(logging.Formatter(label + "%(asctime)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger


def _directory_of(path: str) -> str:
    return os.path.normpath(os.path.dirname(path) or ".")


@dataclass(eq=False)
class TerragruntOptions:
    """Settings for one run of the tool against one configuration file."""

    terragrunt_config_path: str = ""
    terraform_path: str = TERRAFORM_DEFAULT_PATH
    terraform_command: str = ""
    terraform_version: Any = None
    non_interactive: bool = False
    auto_init: bool = True
    terraform_cli_args: list[str] = field(default_factory=list)
    working_dir: str = ""
    logger: logging.Logger | None = field(default=None, repr=False)
    env: dict[str, str] = field(default_factory=dict)
    source: str = ""
    source_update: bool = False
    download_dir: str = ""
    iam_role: str = ""
    ignore_dependency_errors: bool = False
    ignore_external_dependencies: bool = False
    writer: TextIO = field(default_factory=lambda: sys.stdout, repr=False)
    err_writer: TextIO = field(default_factory=lambda: sys.stderr, repr=False)
    max_folders_to_check: int = DEFAULT_MAX_FOLDERS_TO_CHECK
    auto_retry: bool = True
    max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS
    sleep: float = DEFAULT_SLEEP
    retryable_errors: list[str] = field(default_factory=lambda: list(RETRYABLE_ERRORS))
    exclude_dirs: list[str] = field(default_factory=list)
    include_dirs: list[str] = field(default_factory=list)
    check: bool = False
    run_terragrunt: Callable[["TerragruntOptions"], Any] = field(
        default=_run_terragrunt_not_set, repr=False
    )

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = _create_logger("", self.err_writer)

    def clone(self, terragrunt_config_path: str) -> "TerragruntOptions":
        """Copy these options for a module whose config lives at another path."""
        working_dir = _directory_of(terragrunt_config_path)
        return TerragruntOptions(
            terragrunt_config_path=terragrunt_config_path,
            terraform_path=self.terraform_path,
            terraform_command=self.terraform_command,
            terraform_version=self.terraform_version,
            non_interactive=self.non_interactive,
            auto_init=self.auto_init,
            terraform_cli_args=list(self.terraform_cli_args),
            working_dir=working_dir,
            logger=_create_logger(working_dir, self.err_writer),
            env=dict(self.env),
            source=self.source,
            source_update=self.source_update,
            download_dir=self.download_dir,
            iam_role=self.iam_role,
            ignore_dependency_errors=self.ignore_dependency_errors,
            ignore_external_dependencies=self.ignore_external_dependencies,
            writer=self.writer,
            err_writer=self.err_writer,
            max_folders_to_check=self.max_folders_to_check,
            auto_retry=self.auto_retry,
            max_retry_attempts=self.max_retry_attempts,
            sleep=self.sleep,
            retryable_errors=list(self.retryable_errors),
            exclude_dirs=self.exclude_dirs,
            include_dirs=self.include_dirs,
            run_terragrunt=self.run_terragrunt,
        )

    def insert_terraform_cli_args(self, *args: str) -> None:
        """Insert arguments after the terraform command but before the rest."""
        if not self.terraform_cli_args:
            raise ValueError("There is no terraform command to insert arguments after")
        command_length = 1
        if self.terraform_cli_args[0] in TERRAFORM_COMMANDS_WITH_SUBCOMMAND:
            command_length = min(2, len(self.terraform_cli_args))
        self.terraform_cli_args = [
            *self.terraform_cli_args[:command_length],
            *args,
            *self.terraform_cli_args[command_length:],
        ]

    def append_terraform_cli_args(self, *args: str) -> None:
        """Append arguments after the current terraform arguments."""
        self.terraform_cli_args = [*self.terraform_cli_args, *args]


def default_working_and_download_dirs(terragrunt_config_path: str) -> tuple[str, str]:
    """Return the default working and download directories for a config path."""
    working_dir = _directory_of(terragrunt_config_path)
    download_dir = os.path.abspath(os.path.join(working_dir, TERRAGRUNT_CACHE_DIR))
    return working_dir, download_dir


def new_terragrunt_options(terragrunt_config_path: str) -> TerragruntOptions:
    """Create options with the defaults used for real runs."""
    working_dir, download_dir = default_working_and_download_dirs(terragrunt_config_path)
    return TerragruntOptions(
        terragrunt_config_path=terragrunt_config_path,
        working_dir=working_dir,
        download_dir=download_dir,
        logger=_create_logger("", sys.stderr),
    )


def new_terragrunt_options_for_test(terragrunt_config_path: str) -> TerragruntOptions:
    """Create options for tests: like the real defaults but non-interactive."""
    options = new_terragrunt_options(terragrunt_config_path)
    options.non_interactive = True
    return options