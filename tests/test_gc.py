#!/usr/bin/env python3

from collections import deque

import pytest

from bridgegen.config import BridgeConfig
from bridgegen.conversion.analysis.deps import build_dependency_graph
from bridgegen.conversion.analysis.gc import filter_apis_by_following_edges_from_allowlist, is_root
from bridgegen.conversion.analysis.names import check_names
from bridgegen.conversion.analysis.remove_ignored import filter_apis_by_ignored_dependents
from bridgegen.conversion.api import EdgeKind, Phase, QualifiedName
from bridgegen.conversion.parse import MAKE_STRING
from tests.builders import function, method, ref, shaped, struct, ty


def qn(text):
    return QualifiedName.parse(text)


def collect(*items, config):
    apis = check_names(shaped(*items, config=config), config)
    apis, _ = filter_apis_by_ignored_dependents(apis)
    return apis, filter_apis_by_following_edges_from_allowlist(apis, config)


XYZ = (
    struct("ns::X", [("y", ty("ns::Y"))]),
    struct("ns::Y", [("v", ty("int"))]),
    struct("ns::Z", [("v", ty("int"))]),
)


def test_roots_and_their_dependencies_survive():
    _, apis = collect(*XYZ, config=BridgeConfig(allowlist=["ns::X"]))
    assert qn("ns::X") in apis
    assert qn("ns::Y") in apis
    assert qn("ns::Z") not in apis
    assert apis.phase is Phase.COLLECTED


def test_always_keep_records_survive_without_roots():
    _, apis = collect(*XYZ, config=BridgeConfig())
    assert apis.names() == [MAKE_STRING]


def test_generate_all_keeps_everything():
    before, apis = collect(*XYZ, config=BridgeConfig(generate_all=True))
    assert apis.names() == before.names()


def test_globs_select_roots():
    _, apis = collect(*XYZ, config=BridgeConfig(allowlist=["ns::[XZ]"]))
    assert {str(n) for n in apis.names()} == {"ns::X", "ns::Y", "ns::Z", str(MAKE_STRING)}


def test_wrappers_allocators_and_methods_are_reached():
    config = BridgeConfig(allowlist=["ns::Widget"])
    _, apis = collect(
        struct("ns::Widget", [("label", ty("std::string"))]),
        method("ns::Widget", "set_label", [("label", ty("std::string"))]),
        method("ns::Widget", "Widget", [("other", ref("ns::Widget", const=True))], special_member="copy_constructor"),
        struct("ns::Base"),
        function("ns::unrelated", [("x", ty("int"))]),
        config=config,
    )
    names = {str(n) for n in apis.names()}
    assert "ns::Widget::set_label" in names
    assert "__bridgegen::ns::Widget::set_label_wrapper" in names
    assert "__bridgegen::ns::Widget_alloc" in names
    assert "__bridgegen::ns::Widget_free" in names
    assert "ns::Widget::Widget" in names
    assert "ns::unrelated" not in names
    assert "ns::Base" not in names


def test_reachability_soundness():
    """Everything kept is reachable from a root, and everything reachable is kept."""
    config = BridgeConfig(allowlist=["ns::X"])
    before, apis = collect(
        *XYZ,
        function("ns::make_x", ret=ty("ns::X")),
        struct("ns::W", [("s", ty("std::string"))]),
        config=config,
    )
    graph = build_dependency_graph(before)
    todo = deque(api.name for api in before if is_root(api, config, before))
    reachable = set(todo)
    while todo:
        for dep in graph[todo.popleft()]:
            if dep.target not in reachable:
                reachable.add(dep.target)
                todo.append(dep.target)
    assert set(apis.names()) == reachable


@pytest.mark.parametrize(
    "edge, structural",
    [
        (EdgeKind.FIELD_TYPE, True),
        (EdgeKind.PARAM_TYPE, True),
        (EdgeKind.WRAPPED_FUNCTION, True),
        (EdgeKind.KEEP_ALIVE, False),
        (EdgeKind.ALLOCATOR, False),
        (EdgeKind.WRAPPER_CALL, False),
    ],
)
def test_structural_edges(edge, structural):
    assert edge.is_structural is structural


def test_field_types_keep_only_their_constructor_deps():
    config = BridgeConfig(allowlist=["ns::X"])
    before, apis = collect(
        struct("ns::X", [("y", ty("ns::Y"))]),
        struct("ns::Y", [("v", ty("int"))]),
        method("ns::Y", "Y", [("other", ref("ns::Y", const=True))], special_member="copy_constructor"),
        method("ns::Y", "~Y", special_member="destructor"),
        method("ns::Y", "poke", [("w", ref("ns::W"))]),
        struct("ns::W", [("v", ty("int"))]),
        config=config,
    )
    names = {str(n) for n in apis.names()}
    assert {"ns::Y", "ns::Y::Y", "ns::Y::~Y"} <= names
    assert "ns::Y::poke" not in names
    assert "ns::W" not in names

    stripped = before.derive(api.annotate(constructor_deps=()) for api in before)
    names = {str(n) for n in filter_apis_by_following_edges_from_allowlist(stripped, config).names()}
    assert "ns::Y" in names
    assert "ns::Y::Y" not in names
    assert "ns::Y::~Y" not in names


def test_methods_are_rooted_by_their_record_type():
    _, apis = collect(
        struct("ns::Y", [("v", ty("int"))]),
        method("ns::Y", "poke", [("w", ref("ns::W"))]),
        struct("ns::W", [("v", ty("int"))]),
        config=BridgeConfig(allowlist=["ns::Y"]),
    )
    assert qn("ns::Y::poke") in apis
    assert qn("ns::W") in apis
