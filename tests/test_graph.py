import pytest

from tgstack.graph import DependencyCycle, check_for_cycles
from tgstack.module import TerraformModule


def _graph():
    a = TerraformModule(path="a")
    b = TerraformModule(path="b")
    c = TerraformModule(path="c")
    d = TerraformModule(path="d")
    e = TerraformModule(path="e", dependencies=[a])
    f = TerraformModule(path="f", dependencies=[a, b])
    g = TerraformModule(path="g", dependencies=[e])
    h = TerraformModule(path="h", dependencies=[g, f, c])

    i = TerraformModule(path="i")
    i.dependencies.append(i)

    j = TerraformModule(path="j")
    k = TerraformModule(path="k", dependencies=[j])
    j.dependencies.append(k)

    l = TerraformModule(path="l")
    o = TerraformModule(path="o", dependencies=[l])
    n = TerraformModule(path="n", dependencies=[o])
    m = TerraformModule(path="m", dependencies=[n])
    l.dependencies.append(m)

    return {
        "a": a, "b": b, "c": c, "d": d, "e": e, "f": f, "g": g, "h": h,
        "i": i, "j": j, "k": k, "l": l, "m": m, "n": n, "o": o,
    }


@pytest.mark.parametrize(
    "names",
    ["", "a", "abcd", "ae", "abf", "aeg", "abcefgh"],
)
def test_no_cycles(names):
    graph = _graph()
    assert check_for_cycles([graph[name] for name in names]) is None


@pytest.mark.parametrize(
    "names, expected",
    [
        ("i", ["i", "i"]),
        ("jk", ["j", "k", "j"]),
        ("lonm", ["l", "m", "n", "o", "l"]),
        ("albonfmh", ["l", "m", "n", "o", "l"]),
    ],
)
def test_cycles(names, expected):
    graph = _graph()
    with pytest.raises(DependencyCycle) as info:
        check_for_cycles([graph[name] for name in names])
    assert info.value.paths == expected


def test_cycle_message():
    err = DependencyCycle(["j", "k", "j"])
    assert str(err) == "Found a dependency cycle between modules: j -> k -> j"


def test_adding_cycle_is_detected():
    graph = _graph()
    modules = [graph[name] for name in "abcefgh"]
    assert check_for_cycles(modules) is None
    graph["a"].dependencies.append(graph["h"])
    with pytest.raises(DependencyCycle) as info:
        check_for_cycles(modules)
    assert info.value.paths[0] == "a"
    assert info.value.paths[-1] == "a"