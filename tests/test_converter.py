#!/usr/bin/env python3

import pytest

from bridgegen.config import BridgeConfig, UnsafePolicy
from bridgegen.conversion import BridgeConverter
from bridgegen.conversion.api import QualifiedName
from bridgegen.conversion.errors import ErrorKind, NoContentError
from bridgegen.conversion.trace import RecordingTrace
from tests.builders import function, method, raw, ref, struct, ty

PHASE_LABELS = [
    "parsing",
    "typedefs",
    "pod analysis",
    "adding casts",
    "analyze fns",
    "marking abstract",
    "adding constructor deps",
    "ignoring ignorable fns",
    "removing ignored dependents",
    "GC",
]

POINT = struct("ns::Point", [("x", ty("int32_t")), ("y", ty("int32_t"))])


def convert(*items, trace=None, **config):
    return BridgeConverter(["point.h"], BridgeConfig(**config), trace=trace).convert(raw(*items))


def test_every_phase_is_traced():
    trace = RecordingTrace()
    convert(POINT, allowlist=["ns::Point"], trace=trace)
    assert trace.labels == PHASE_LABELS
    first, last = trace.snapshots[0][1], trace.snapshots[-1][1]
    assert "ns::Point" in first
    assert "ns::Point" in last


def test_empty_input_is_an_error():
    with pytest.raises(NoContentError):
        BridgeConverter([], BridgeConfig()).convert([])


def test_primitive_struct_is_bridged_by_value():
    results = convert(POINT, allowlist=["ns::Point"])
    rs = results.rs_text()
    assert "pub struct Point {" in rs
    assert "Point_alloc" not in rs
    assert "impl UniquePtr<Point>" not in rs
    assert results.unsupported == []
    assert '#include "point.h"' in results.cpp.header


def test_abstract_type_cannot_be_constructed():
    results = convert(
        struct("ns::Shape"),
        method("ns::Shape", "area", ret=ty("double"), is_const=True, is_virtual=True, is_pure_virtual=True),
        method("ns::Shape", "Shape", special_member="constructor"),
        allowlist=["ns::Shape"],
        unsafe_policy=UnsafePolicy.ALL_FUNCTIONS_SAFE,
    )
    rs = results.rs_text()
    assert "type Shape;" in rs
    assert "fn area(self: &Shape) -> f64;" in rs
    assert "impl UniquePtr<Shape>" not in rs
    assert "Shape_new" not in rs
    skipped = {item.name: item.kind for item in results.unsupported}
    assert skipped[QualifiedName.parse("ns::Shape::Shape")] is ErrorKind.ABSTRACT_TYPE


def test_only_reachable_items_are_generated():
    results = convert(
        struct("ns::X", [("y", ty("ns::Y"))]),
        struct("ns::Y", [("name", ty("std::string"))]),
        struct("ns::Z", [("v", ty("int32_t"))]),
        allowlist=["ns::X"],
    )
    rs = results.rs_text()
    assert "type X;" in rs
    assert "type Y;" in rs
    assert "type Z" not in rs
    assert "pub struct Z" not in rs


def test_unsupported_items_cascade_into_the_report():
    results = convert(
        struct("ns::Bad", visibility="private"),
        function("ns::use_bad", [("b", ty("ns::Bad"))]),
        function("ns::fine", [("n", ty("int32_t"))]),
        allowlist=["ns::use_bad", "ns::fine"],
    )
    by_name = {str(item.name): item for item in results.unsupported}
    assert by_name["ns::Bad"].kind is ErrorKind.NON_PUBLIC
    assert by_name["ns::use_bad"].kind is ErrorKind.IGNORED_DEPENDENT
    assert by_name["ns::use_bad"].detail == "depends on ns::Bad"
    rs = results.rs_text()
    assert "use_bad" not in rs
    assert "fn fine(n: i32);" in rs


def test_missing_roots_are_reported():
    results = convert(POINT, allowlist=["ns::Point", "ns::Missing", "ns::Miss*"])
    assert results.missing_roots == ["ns::Missing"]


def test_unsafe_policy_can_be_overridden_per_run():
    items = raw(function("ns::add", [("a", ty("int32_t")), ("b", ty("int32_t"))], ty("int32_t")))
    converter = BridgeConverter([], BridgeConfig(generate_all=True))
    assert "unsafe fn add(" in converter.convert(items).rs_text()
    safe = converter.convert(items, unsafe_policy=UnsafePolicy.ALL_FUNCTIONS_SAFE).rs_text()
    assert "unsafe fn add(" not in safe
    assert "fn add(a: i32, b: i32) -> i32;" in safe


def test_references_returned_without_a_borrow_source_become_pointers():
    results = convert(
        struct("ns::Registry", [("name", ty("std::string"))]),
        function("ns::global_registry", ret=ref("ns::Registry")),
        allowlist=["ns::global_registry"],
        unsafe_policy=UnsafePolicy.ALL_FUNCTIONS_SAFE,
    )
    assert "ns::Registry* bridgegen_ns_global_registry()" in results.cpp.header
    assert "return &ns::global_registry();" in results.cpp.implementation
    assert "fn global_registry() -> *mut Registry;" in results.rs_text()


def test_internal_helpers_stay_out_of_the_report():
    results = convert(
        struct("ns::Shape"),
        method("ns::Shape", "area", ret=ty("double"), is_const=True, is_virtual=True, is_pure_virtual=True),
        method("ns::Shape", "Shape", special_member="constructor"),
        allowlist=["ns::Shape"],
    )
    names = [item.name for item in results.unsupported]
    assert QualifiedName.parse("ns::Shape::Shape") in names
    assert not any(name.is_synthetic for name in names)
