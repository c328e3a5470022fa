#!/usr/bin/env python3

import json

import pytest

from bridgegen.config import BridgeConfig
from bridgegen.conversion.analysis.tdef import convert_typedef_targets
from bridgegen.conversion.api import ApiKind, QualifiedName
from bridgegen.conversion.errors import CppFatalError, ErrorKind, NoContentError
from bridgegen.conversion.parse import MAKE_STRING, ParseBindgen, load_items
from tests.builders import function, method, parsed, raw, ref, struct, ty


def qn(text):
    return QualifiedName.parse(text)


def test_empty_stream_has_no_content():
    with pytest.raises(NoContentError):
        ParseBindgen(BridgeConfig()).parse_items([])


def test_every_item_becomes_a_record():
    apis = parsed(
        struct("ns::Point", [("x", ty("int"))]),
        function("ns::area", [("p", ref("ns::Point", const=True))], ty("double")),
    )
    assert apis[qn("ns::Point")].kind is ApiKind.STRUCT
    assert apis[qn("ns::area")].kind is ApiKind.FUNCTION
    assert MAKE_STRING in apis


def test_make_string_can_be_excluded():
    apis = parsed(struct("ns::Point"), config=BridgeConfig(exclude_utilities=True))
    assert MAKE_STRING not in apis


def test_overloads_get_numbered_names():
    apis = parsed(
        function("ns::f", [("x", ty("int"))]),
        function("ns::f", [("x", ty("double"))]),
        function("ns::f", [("x", ty("float"))]),
    )
    assert apis[qn("ns::f")].cpp_name is None
    assert apis[qn("ns::f1")].effective_cpp_name == "f"
    assert apis[qn("ns::f2")].effective_cpp_name == "f"


def test_identical_declarations_are_fatal():
    with pytest.raises(CppFatalError):
        parsed(function("ns::f", [("x", ty("int"))]), function("ns::f", [("x", ty("int"))]))


def test_duplicate_records_are_fatal():
    with pytest.raises(CppFatalError):
        parsed(struct("ns::Foo"), struct("ns::Foo"))


def test_blocklisted_items_are_dropped():
    apis = parsed(
        struct("ns::Keep"),
        struct("ns::detail::Hidden"),
        config=BridgeConfig(blocklist=["ns::detail::*"]),
    )
    assert qn("ns::Keep") in apis
    assert qn("ns::detail::Hidden") not in apis


def test_fatal_attributes_are_recorded():
    apis = parsed(
        struct("ns::Private", visibility="private"),
        struct("ns::Templated", discards_template_param=True),
    )
    assert apis[qn("ns::Private")].ignored.kind is ErrorKind.NON_PUBLIC
    assert apis[qn("ns::Templated")].ignored.kind is ErrorKind.UNUSED_TEMPLATE_PARAM


def test_nested_types_are_flattened():
    apis = parsed(
        struct("ns::Outer", [("inner", ty("ns::Outer::Inner"))]),
        struct("ns::Outer::Inner", [("v", ty("int"))]),
        method("ns::Outer::Inner", "get", ret=ty("int"), is_const=True),
    )
    inner = apis[qn("ns::Outer_Inner")]
    assert inner.cpp_name == "Outer::Inner"
    assert inner.cpp_qualified_name == "ns::Outer::Inner"
    assert apis[qn("ns::Outer")].detail.fields[0].type.name == "ns::Outer_Inner"
    get = apis[qn("ns::Outer_Inner::get")]
    assert get.detail.self_type == qn("ns::Outer_Inner")


def test_unnamed_params_are_numbered():
    apis = parsed(function("ns::f", [("", ty("int")), ("", ty("int"))]))
    assert [p.name for p in apis[qn("ns::f")].detail.params] == ["arg0", "arg1"]


def test_root_prefix_is_removed_by_typedef_conversion():
    apis = convert_typedef_targets(parsed(struct("ns::Holder", [("p", ty("root::ns::Holder", "pointer"))])))
    assert apis[qn("ns::Holder")].detail.fields[0].type.name == "ns::Holder"


class TestLoadItems:
    def test_json_list(self, tmp_path):
        path = tmp_path / "items.json"
        path.write_text(json.dumps([struct("ns::Foo")]))
        items = load_items(path)
        assert [item.name for item in items] == ["ns::Foo"]

    def test_yaml_document(self, tmp_path):
        path = tmp_path / "items.yaml"
        path.write_text(
            "items:\n"
            "  - kind: function\n"
            "    name: ns::f\n"
            "    return_type: {name: int}\n"
        )
        items = load_items(path)
        assert items[0].kind == "function"
        assert items[0].return_type.name == "int"

    def test_unknown_kind_is_rejected(self, tmp_path):
        path = tmp_path / "items.json"
        path.write_text(json.dumps([{"kind": "namespace", "name": "ns"}]))
        with pytest.raises(ValueError):
            load_items(path)


def test_raw_items_validate_kind():
    items = raw(struct("ns::Foo"), function("ns::f"))
    assert [item.kind for item in items] == ["struct", "function"]
