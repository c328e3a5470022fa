#!/usr/bin/env python3

import pytest

from bridgegen.config import BridgeConfig, CppCodegenOptions, UnsafePolicy
from bridgegen.conversion import BridgeConverter
from bridgegen.conversion.api import (
    Api,
    ApiCollection,
    ApiKind,
    Phase,
    PodAnalysis,
    QualifiedName,
    StructDetail,
    TypeKind,
)
from bridgegen.conversion.codegen_cpp import CppCodeGenerator
from bridgegen.conversion.codegen_rs import RsCodeGenerator
from bridgegen.conversion.errors import CodegenError
from tests.builders import const, enum, function, method, raw, ref, struct, ty, typedef


def convert(*items, includes=("widget.h",), **config):
    config.setdefault("generate_all", True)
    config.setdefault("unsafe_policy", UnsafePolicy.ALL_FUNCTIONS_SAFE)
    return BridgeConverter(list(includes), BridgeConfig(**config)).convert(raw(*items))


WIDGET = struct("ns::Widget", [("label", ty("std::string"))])


class TestDualOutput:
    def test_shim_header_is_included_by_host_side(self):
        results = convert(WIDGET, function("ns::make_widget", ret=ty("ns::Widget")))
        assert results.cpp is not None
        assert results.header_name == "bridgegen_ffi.h"
        rs = results.rs_text()
        assert 'include!("widget.h");' in rs
        assert 'include!("bridgegen_ffi.h");' in rs

    def test_custom_header_name_is_shared(self):
        results = BridgeConverter(["w.h"], BridgeConfig(generate_all=True)).convert(
            raw(WIDGET), cpp_codegen_options=CppCodegenOptions(shim_header_name="w_ffi.h")
        )
        assert results.cpp.header_name == "w_ffi.h"
        assert '#include "w_ffi.h"' in results.cpp.implementation
        assert 'include!("w_ffi.h");' in results.rs_text()

    def test_no_shim_means_no_header_reference(self):
        results = convert(
            struct("ns::Point", [("x", ty("int32_t")), ("y", ty("int32_t"))]),
            exclude_utilities=True,
        )
        assert results.cpp is None
        assert results.header_name is None
        assert "bridgegen_ffi.h" not in results.rs_text()


class TestCppShim:
    def test_defaulted_param_is_explicit_in_wrapper(self):
        results = convert(
            function("ns::scale", [("x", ty("double")), ("factor", ty("int"), "2")], ty("double"))
        )
        assert "double bridgegen_ns_scale(double x);" in results.cpp.header
        assert "return ns::scale(x, 2);" in results.cpp.implementation

    def test_opaque_values_move_through_unique_ptr(self):
        results = convert(
            WIDGET,
            function("ns::consume", [("w", ty("ns::Widget"))]),
            function("ns::make_widget", ret=ty("ns::Widget")),
        )
        impl = results.cpp.implementation
        assert "void bridgegen_ns_consume(std::unique_ptr<ns::Widget> w)" in impl
        assert "ns::consume(std::move(*w));" in impl
        assert "return std::make_unique<ns::Widget>(ns::make_widget());" in impl

    def test_constructor_and_destructor(self):
        results = convert(
            WIDGET,
            method("ns::Widget", "Widget", [("n", ty("int"))], special_member="constructor"),
            method("ns::Widget", "~Widget", special_member="destructor"),
        )
        impl = results.cpp.implementation
        assert "return std::make_unique<ns::Widget>(n);" in impl
        assert "self_->~Widget();" in impl

    def test_method_wrapper_calls_through_receiver(self):
        results = convert(WIDGET, method("ns::Widget", "rename", [("label", ty("std::string"))]))
        impl = results.cpp.implementation
        assert "void bridgegen_ns_Widget_rename(ns::Widget& self_, std::unique_ptr<std::string> label)" in impl
        assert "self_.rename(std::move(*label));" in impl

    def test_alloc_free_and_casts(self):
        results = convert(
            WIDGET,
            struct("ns::Base"),
            struct("ns::Derived", bases=["ns::Base"]),
        )
        impl = results.cpp.implementation
        assert "return std::allocator<ns::Widget>().allocate(1);" in impl
        assert "std::allocator<ns::Widget>().deallocate(arg0, 1);" in impl
        assert "const ns::Base& bridgegen_ns_Derived_as_Base(const ns::Derived& self_)" in impl
        assert "return static_cast<const ns::Derived*>(self_);" in impl

    def test_ctypes_are_typedefed(self):
        results = convert(function("ns::add", [("a", ty("int")), ("b", ty("long"))], ty("int")))
        assert "typedef int c_int;" in results.cpp.header
        assert "typedef long c_long;" in results.cpp.header
        assert "c_short" not in results.cpp.header

    def test_nested_types_get_aliases(self):
        results = convert(struct("ns::Outer"), struct("ns::Outer::Inner", [("s", ty("std::string"))]))
        assert "namespace ns {\ntypedef ns::Outer::Inner Outer_Inner;\n}" in results.cpp.header

    def test_make_string(self):
        results = convert(WIDGET)
        assert "std::unique_ptr<std::string> bridgegen_make_string(::rust::Str str)" in results.cpp.header

    def test_system_headers_can_be_suppressed(self):
        results = BridgeConverter([], BridgeConfig(generate_all=True)).convert(
            raw(WIDGET), cpp_codegen_options=CppCodegenOptions(suppress_system_headers=True)
        )
        assert "#include <memory>" not in results.cpp.header
        assert '#include "cxx.h"' in results.cpp.header


class TestRsBridge:
    def test_direct_function(self):
        rs = convert(function("ns::add", [("a", ty("int")), ("b", ty("int"))], ty("int"))).rs_text()
        assert "type c_int = ::bridgegen::c_int;" in rs
        assert '#[namespace = "ns"]\n        fn add(a: c_int, b: c_int) -> c_int;' in rs

    def test_wrapper_uses_cxx_name(self):
        rs = convert(
            function("ns::scale", [("x", ty("double")), ("factor", ty("int"), "2")], ty("double"))
        ).rs_text()
        assert '#[cxx_name = "bridgegen_ns_scale"]\n        fn scale(x: f64) -> f64;' in rs

    def test_opaque_and_pod_types(self):
        rs = convert(
            WIDGET,
            struct("ns::Point", [("x", ty("int32_t")), ("y", ty("int32_t"))]),
        ).rs_text()
        assert '#[namespace = "ns"]\n        type Widget;' in rs
        assert "type Point = super::Point;" in rs
        assert "impl UniquePtr<Widget> {}" in rs
        assert "impl UniquePtr<Point>" not in rs
        assert "#[repr(C)]\npub struct Point {\n    pub x: i32,\n    pub y: i32,\n}" in rs
        assert 'type Id = cxx::type_id!("ns::Point");' in rs
        assert "Point_alloc" not in rs

    def test_methods_and_receivers(self):
        rs = convert(
            WIDGET,
            method("ns::Widget", "size", ret=ty("size_t"), is_const=True),
            method("ns::Widget", "clear"),
        ).rs_text()
        assert "fn size(self: &Widget) -> usize;" in rs
        assert "fn clear(self: Pin<&mut Widget>);" in rs

    def test_unsafe_functions(self):
        rs = convert(function("ns::fill", [("buf", ty("char", "pointer"))])).rs_text()
        assert "unsafe fn fill(buf: *mut c_char);" in rs

    def test_enums_typedefs_and_consts(self):
        rs = convert(
            enum("ns::Color", "Red", "Green"),
            typedef("ns::Count", ty("uint32_t")),
            const("ns::LIMIT", ty("uint64_t"), "64"),
        ).rs_text()
        assert "enum Color {\n        Red = 0,\n        Green = 1,\n    }" in rs
        assert "pub type Count = u32;" in rs
        assert "pub const LIMIT: u64 = 64;" in rs

    def test_references_to_strings_are_pinned(self):
        rs = convert(function("ns::append", [("s", ref("std::string"))])).rs_text()
        assert "fn append(s: Pin<&mut CxxString>);" in rs


class TestAnnotationChecks:
    def struct_without_pod(self):
        return Api(QualifiedName.parse("ns::Foo"), ApiKind.STRUCT, StructDetail())

    def test_wrong_phase(self):
        apis = ApiCollection.of([], Phase.FILTERED).with_ctypes({})
        with pytest.raises(CodegenError):
            CppCodeGenerator.generate_cpp_code("", apis, BridgeConfig(), CppCodegenOptions())

    def test_missing_ctypes(self):
        apis = ApiCollection.of([], Phase.COLLECTED)
        with pytest.raises(CodegenError):
            RsCodeGenerator.generate_rs_code(apis, [], BridgeConfig(), None)

    def test_missing_pod_analysis(self):
        apis = ApiCollection.of([self.struct_without_pod()], Phase.COLLECTED).with_ctypes({})
        with pytest.raises(CodegenError) as exc:
            CppCodeGenerator.generate_cpp_code("", apis, BridgeConfig(), CppCodegenOptions())
        assert exc.value.name == QualifiedName.parse("ns::Foo")

    def test_missing_function_shape(self):
        fn = Api(QualifiedName.parse("ns::f"), ApiKind.FUNCTION)
        struct_api = self.struct_without_pod().annotate(pod=PodAnalysis(TypeKind.POD))
        apis = ApiCollection.of([struct_api, fn], Phase.COLLECTED).with_ctypes({})
        with pytest.raises(CodegenError):
            RsCodeGenerator.generate_rs_code(apis, [], BridgeConfig(), None)


class TestReturnedReferences:
    def results(self):
        returns = ty("int", "lvalue_ref", const=True)
        return convert(
            struct("ns::Foo", [("v", ty("int"))]),
            method("ns::Foo", "get", ret=returns, is_const=True),
            method("ns::Foo", "get", [("other", ref("ns::Foo", const=True))], ret=returns, is_const=True),
        )

    def test_single_reference_input_keeps_the_reference(self):
        rs = self.results().rs_text()
        assert "fn Foo_get(self_: &Foo) -> &c_int;" in rs

    def test_wrapped_receiver_counts_as_a_reference_input(self):
        results = self.results()
        assert "fn Foo_get1(self_: &Foo, other: &Foo) -> *const c_int;" in results.rs_text()
        impl = results.cpp.implementation
        assert "const int* bridgegen_ns_Foo_get1(const ns::Foo& self_, const ns::Foo& other)" in impl
        assert "return &self_.get(other);" in impl
