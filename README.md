# tgstack

`tgstack` works with a set of Terraform modules. It links each module to the
modules it depends on and checks the result for dependency cycles. It can then
call a command for every module. Each module runs once all of its dependencies
have finished. Modules that do not depend on each other run at the same time,
each in its own thread.

## Installation

```
pip install tgstack
```

To run the test suite:

```
pip install "tgstack[test]"
pytest
```

## Modules

- `tgstack.options`: `TerragruntOptions` holds the settings for one run:
  - the config path, the working directory and the download directory;
  - the Terraform CLI arguments;
  - the include and exclude directory globs;
  - `ignore_dependency_errors`;
  - the `run_terragrunt` callable, which does the work for a module.

  The module also provides these functions and methods:
  - `new_terragrunt_options(path)` builds options with the default settings.
    `new_terragrunt_options_for_test(path)` builds the same options but sets
    them non-interactive.
  - `default_working_and_download_dirs(path)` returns the folder of the config
    file and the absolute path of its `.terragrunt-cache` folder.
  - `clone(path)` copies the options for a module in another folder. The copy
    gets its own argument list, its own environment and its own logger.
  - `insert_terraform_cli_args(*args)` puts arguments after the Terraform
    command. For `debug`, `force-unlock` and `state` they go after the
    subcommand. `append_terraform_cli_args(*args)` adds arguments at the end.
- `tgstack.module`: `TerraformModule` is one folder of Terraform code. It holds
  its `path`, its `ModuleConfig`, its options, its `dependencies` and the flags
  `assume_already_applied` and `flag_excluded`. `ModuleConfig` holds
  `terraform_source` and `dependency_paths`.
  `get_terragrunt_source_for_module(path, config, options)` builds a module's
  source override from `options.source`. The part of the module's source after
  `//` is appended to the override. If the module's source has no `//`, the
  repository name is appended instead: `/src` and `git::host:org/vpc.git` give
  `/src//vpc`.
- `tgstack.linking`:
  - `crosslink_dependencies(module_map, config_paths)` fills in each module's
    `dependencies` from the map. Each entry of `dependency_paths` is taken
    relative to the module's path and made absolute, so the map must be keyed
    by absolute paths. A dependency that is not in the map raises
    `UnrecognizedDependency`. The modules are returned sorted by path.
  - `merge_maps(modules, external)` combines two maps. Entries from `modules`
    take precedence.
  - `flag_included_dirs(modules, options)` and `flag_excluded_dirs(modules,
    options)` set `flag_excluded` from the `include_dirs` and `exclude_dirs`
    globs. The globs are expanded against the working directory.
- `tgstack.graph`: `check_for_cycles(modules)` raises `DependencyCycle` when
  the dependencies form a loop. Its `paths` list the loop, for example
  `["j", "k", "j"]`.
- `tgstack.running`:
  - `to_running_modules(modules, order)` builds the linked `RunningModule`
    objects and leaves out the modules flagged as excluded.
    `DependencyOrder.REVERSE` reverses the links.
  - `run_modules(modules)` runs the modules in dependency order.
    `run_modules_reverse_order(modules)` runs them with dependents first, which
    suits destroy.
  - A module with `assume_already_applied` is skipped but counts as finished.
  - When a dependency fails, a module that depends on it is not run and fails
    with `DependencyFinishedWithError`. This does not happen if its options set
    `ignore_dependency_errors`.
  - All failures are raised together as one `ModuleRunErrors`.
- `tgstack.stack`: `Stack(path, modules)` groups the modules. Each of `plan`,
  `apply`, `destroy`, `output` and `validate` puts the matching Terraform
  arguments in front of every module's CLI arguments and then runs the
  modules. `destroy` runs them in reverse order. `plan` captures each module's
  error output and logs a summary of it afterwards. `check_for_cycles()`
  checks the stack's modules.
- `tgstack.semaphore`: `CountingSemaphore(size)` lets at most `size` holders
  in at once. Use it with `acquire`/`release` or as a context manager.
- `tgstack.errors`:
  - `new_multi_error(*errors)` leaves out `None` values. It returns `None` if
    nothing is left, and a `MultiError` otherwise.
  - `format_error_with_trace(error)` renders an exception. The text includes
    the traceback if the exception has been raised.

## Example

```python
from tgstack.options import new_terragrunt_options
from tgstack.module import TerraformModule, ModuleConfig
from tgstack.running import run_modules

def make(path, deps=()):
    opts = new_terragrunt_options(f"{path}/terragrunt.hcl")
    opts.run_terragrunt = lambda o: print("running", o.working_dir)
    return TerraformModule(path=path, config=ModuleConfig(),
                           terragrunt_options=opts, dependencies=list(deps))

vpc = make("vpc")
app = make("app", [vpc])
run_modules([vpc, app])   # "vpc" runs before "app"
```

## What it does not do

- It does not read or parse configuration files, and it does not scan folders
  for them. You build the `TerraformModule` objects and their `ModuleConfig`
  yourself.
- It does not start Terraform or any other program. The work for each module
  is whatever `run_terragrunt` does. Until you set it, `run_terragrunt` raises
  `RunTerragruntCommandNotSetError`.
- It has no command-line interface.