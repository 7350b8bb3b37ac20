import io
import threading

import pytest

from tgstack.graph import DependencyCycle
from tgstack.module import ModuleConfig, TerraformModule
from tgstack.options import TerragruntOptions, new_terragrunt_options_for_test
from tgstack.running import ModuleRunErrors
from tgstack.stack import NoTerraformModulesFound, Stack, _stack_for_modules


class Recorder:
    def __init__(self):
        self.lock = threading.Lock()
        self.calls = []

    def options(self, name, error=None, stderr_text=""):
        opts = new_terragrunt_options_for_test(name)

        def run(passed):
            with self.lock:
                self.calls.append((name, list(passed.terraform_cli_args), passed.terraform_command))
            if stderr_text:
                passed.err_writer.write(stderr_text)
            if error is not None:
                raise error

        opts.run_terragrunt = run
        return opts


def make_chain(recorder):
    a = TerraformModule(path="a", terragrunt_options=recorder.options("a"))
    b = TerraformModule(
        path="b",
        dependencies=[a],
        config=ModuleConfig(dependency_paths=["../a"]),
        terragrunt_options=recorder.options("b"),
    )
    return a, b


def caller_options():
    stream = io.StringIO()
    return TerragruntOptions(err_writer=stream), stream


def test_str_lists_modules_sorted():
    recorder = Recorder()
    a, b = make_chain(recorder)
    stack = Stack(path="/x", modules=[b, a])
    assert str(stack) == (
        "Stack at /x:\n"
        "  => Module a (excluded: false, dependencies: [])\n"
        "  => Module b (excluded: false, dependencies: [a])"
    )


def test_apply_sets_command_and_runs_in_order():
    recorder = Recorder()
    a, b = make_chain(recorder)
    opts, _ = caller_options()
    Stack(path="/x", modules=[a, b]).apply(opts)
    assert [name for name, _, _ in recorder.calls] == ["a", "b"]
    for _, args, command in recorder.calls:
        assert args == ["apply", "-input=false", "-auto-approve"]
        assert command == "apply"


def test_destroy_runs_in_reverse_order():
    recorder = Recorder()
    a, b = make_chain(recorder)
    opts, _ = caller_options()
    Stack(path="/x", modules=[a, b]).destroy(opts)
    assert [name for name, _, _ in recorder.calls] == ["b", "a"]
    assert recorder.calls[0][1] == ["destroy", "-force", "-input=false"]
    assert recorder.calls[0][2] == "destroy"


def test_command_is_prepended_to_existing_args():
    recorder = Recorder()
    opts_a = recorder.options("a")
    opts_a.terraform_cli_args = ["-no-color"]
    a = TerraformModule(path="a", terragrunt_options=opts_a)
    opts, _ = caller_options()
    Stack(path="/x", modules=[a]).output(opts)
    assert a.terragrunt_options.terraform_cli_args == ["output", "-no-color"]
    assert a.terragrunt_options.terraform_command == "output"
    assert recorder.calls == [("a", ["output", "-no-color"], "output")]


def test_validate_sets_command():
    recorder = Recorder()
    a, _ = make_chain(recorder)
    opts, _ = caller_options()
    Stack(path="/x", modules=[a]).validate(opts)
    assert recorder.calls == [("a", ["validate"], "validate")]


def test_apply_failure_raises_run_errors():
    recorder = Recorder()
    failure = RuntimeError("boom")
    a = TerraformModule(path="a", terragrunt_options=recorder.options("a", error=failure))
    opts, _ = caller_options()
    with pytest.raises(ModuleRunErrors) as info:
        Stack(path="/x", modules=[a]).apply(opts)
    assert info.value.errors == [failure]


def test_plan_summarizes_remote_state_errors():
    recorder = Recorder()
    a = TerraformModule(path="a", terragrunt_options=recorder.options("a"))
    failure = RuntimeError("plan failed")
    text = "Error running plan: x: Resource 'data.terraform_remote_state.vpc' missing"
    b = TerraformModule(
        path="b",
        dependencies=[a],
        config=ModuleConfig(dependency_paths=["../a"]),
        terragrunt_options=recorder.options("b", error=failure, stderr_text=text),
    )
    opts, log = caller_options()
    with pytest.raises(ModuleRunErrors):
        Stack(path="/x", modules=[a, b]).plan(opts)
    logged = log.getvalue()
    assert text in logged
    assert "b contains dependencies to [../a] and refers to remote state" in logged
    assert recorder.calls[1][1] == ["plan"]


def test_plan_logs_other_error_output():
    recorder = Recorder()
    a = TerraformModule(
        path="a", terragrunt_options=recorder.options("a", stderr_text="something odd")
    )
    opts, log = caller_options()
    Stack(path="/x", modules=[a]).plan(opts)
    assert "Error with plan: something odd" in log.getvalue()


def test_plan_without_error_output_logs_nothing():
    recorder = Recorder()
    a, b = make_chain(recorder)
    opts, log = caller_options()
    Stack(path="/x", modules=[a, b]).plan(opts)
    assert log.getvalue() == ""
    assert len(recorder.calls) == 2


def test_check_for_cycles_raises():
    j = TerraformModule(path="j")
    k = TerraformModule(path="k", dependencies=[j])
    j.dependencies.append(k)
    with pytest.raises(DependencyCycle) as info:
        Stack(path="/x", modules=[j, k]).check_for_cycles()
    assert info.value.paths == ["j", "k", "j"]


def test_stack_for_modules_empty_raises():
    with pytest.raises(NoTerraformModulesFound) as info:
        _stack_for_modules("/x", [])
    assert str(info.value) == "Could not find any subfolders with Terragrunt configuration files"


def test_stack_for_modules_rejects_cycle():
    i = TerraformModule(path="i")
    i.dependencies.append(i)
    with pytest.raises(DependencyCycle) as info:
        _stack_for_modules("/x", [i])
    assert info.value.paths == ["i", "i"]


def test_stack_for_modules_keeps_modules():
    recorder = Recorder()
    a, b = make_chain(recorder)
    stack = _stack_for_modules("/x", [a, b])
    assert stack.path == "/x"
    assert stack.modules == [a, b]