"""Generation of the C++ shim: wrappers, cast helpers and allocate/free pairs."""

from dataclasses import dataclass

from bridgegen.config import BridgeConfig, CppCodegenOptions
from bridgegen.conversion.api import (
    Api,
    ApiCollection,
    ApiKind,
    ArgumentShape,
    Conversion,
    CppBodyKind,
    FnAnalysis,
    Phase,
)
from bridgegen.conversion.errors import CodegenError

GENERATED_BANNER = "// Generated by bridgegen. Do not edit."
MAKE_STRING_CPP_NAME = "bridgegen_make_string"


@dataclass(frozen=True)
class CppFilePair:
    header: str
    implementation: str
    header_name: str


def check_annotations(apis: ApiCollection) -> None:
    """Fail unless every record carries what the generators rely on."""
    if apis.phase is not Phase.COLLECTED:
        raise CodegenError("<collection>", f"records are at phase {apis.phase.name}, not COLLECTED")
    if apis.ctypes is None:
        raise CodegenError("<collection>", "C type information was never collected")
    for api in apis:
        if api.ignored is not None:
            raise CodegenError(api.name, f"unsupported record survived filtering: {api.ignored}")
        if api.kind is ApiKind.STRUCT and api.pod is None:
            raise CodegenError(api.name, "record type has no POD analysis")
        if api.kind is ApiKind.FUNCTION:
            if api.fn is None:
                raise CodegenError(api.name, "function has no shape analysis")
            if api.fn.ignore_reason is not None:
                raise CodegenError(api.name, f"ignored function survived: {api.fn.ignore_reason}")


def needs_nested_typedef(api: Api) -> bool:
    """Whether a type's host name differs from its C++ name and needs an alias in the shim."""
    return (
        api.kind in (ApiKind.STRUCT, ApiKind.ENUM, ApiKind.TYPEDEF)
        and api.effective_cpp_name != api.name.final
    )


class CppCodeGenerator:
    def __init__(self, apis: ApiCollection, config: BridgeConfig, options: CppCodegenOptions):
        self.apis = apis
        self.config = config
        self.options = options

    @classmethod
    def generate_cpp_code(
        cls,
        inclusions: str,
        apis: ApiCollection,
        config: BridgeConfig,
        options: CppCodegenOptions,
    ) -> CppFilePair | None:
        """Render the shim file pair, or None when nothing needs a shim."""
        check_annotations(apis)
        return cls(apis, config, options)._generate(inclusions)

    def _generate(self, inclusions: str) -> CppFilePair | None:
        functions = [api for api in self.apis if self._has_shim(api)]
        nested = [api for api in self.apis if needs_nested_typedef(api)]
        ctypes = self.apis.ctypes
        if not functions and not nested and not ctypes:
            return None

        declarations, definitions = [], []
        for api in functions:
            signature = self._signature(api)
            declarations.append(f"{signature};")
            definitions.append(f"{signature} {{\n{self._body(api)}\n}}")

        header = [GENERATED_BANNER, "#pragma once", ""]
        if inclusions:
            header += [inclusions.rstrip("\n"), ""]
        header.append(f'#include "{self.options.path_to_cxx_h}"')
        if not self.options.suppress_system_headers:
            header += ["#include <memory>", "#include <string>"]
        header.append("")
        if ctypes:
            header += [f"typedef {cpp} {alias};" for alias, cpp in ctypes.items()]
            header.append("")
        for api in nested:
            header += self._nested_typedef(api)
        header += declarations

        implementation = [
            GENERATED_BANNER,
            f'#include "{self.options.shim_header_name}"',
            "",
            "\n\n".join(definitions),
        ]
        return CppFilePair(
            header="\n".join(header).rstrip("\n") + "\n",
            implementation="\n".join(implementation).rstrip("\n") + "\n",
            header_name=self.options.shim_header_name,
        )

    def _has_shim(self, api: Api) -> bool:
        if api.kind is ApiKind.WRAPPER_MARKER:
            return True
        return api.kind is ApiKind.FUNCTION and api.fn.is_host_visible and api.fn.cpp_body is not None

    def _nested_typedef(self, api: Api) -> list[str]:
        typedef = f"typedef {api.cpp_qualified_name} {api.name.final};"
        if not api.name.namespace:
            return [typedef, ""]
        return [f"namespace {api.name.namespace_str} {{", typedef, "}", ""]

    def _signature(self, api: Api) -> str:
        if api.kind is ApiKind.WRAPPER_MARKER:
            return f"std::unique_ptr<std::string> {MAKE_STRING_CPP_NAME}(::rust::Str str)"
        fn = api.fn
        ret = self.apis.cpp_spelling(fn.ret.bridged) if fn.ret.bridged is not None else "void"
        params = ", ".join(
            f"{self.apis.cpp_spelling(arg.bridged)} {arg.name}"
            for arg in fn.params
            if arg.bridged is not None
        )
        return f"{ret} {fn.cpp_name}({params})"

    def _argument(self, arg: ArgumentShape) -> str:
        if arg.conversion is Conversion.DEFAULT:
            return arg.default
        if arg.conversion is Conversion.UNIQUE_PTR_TO_VALUE:
            return f"std::move(*{arg.name})"
        if arg.conversion is Conversion.MOVE:
            return f"std::move({arg.name})"
        return arg.name

    def _body(self, api: Api) -> str:
        if api.kind is ApiKind.WRAPPER_MARKER:
            return "  return std::make_unique<std::string>(std::string(str));"
        fn = api.fn
        body = fn.cpp_body
        args = ", ".join(
            self._argument(arg) for arg in fn.params if arg.conversion is not Conversion.RECEIVER
        )
        first = fn.params[0].name if fn.params else ""

        if body.kind is CppBodyKind.UPCAST:
            return f"  return {first};"
        if body.kind is CppBodyKind.DOWNCAST:
            return f"  return static_cast<{body.target}>({first});"
        if body.kind is CppBodyKind.ALLOC:
            return f"  return std::allocator<{body.target}>().allocate(1);"
        if body.kind is CppBodyKind.FREE:
            return f"  std::allocator<{body.target}>().deallocate({first}, 1);"
        if body.kind is CppBodyKind.DESTROY:
            return f"  {first}->~{body.target}();"
        if body.kind is CppBodyKind.CONSTRUCT:
            if fn.ret.conversion is Conversion.VALUE_TO_UNIQUE_PTR:
                return f"  return std::make_unique<{body.target}>({args});"
            return f"  return {body.target}({args});"
        if body.kind is CppBodyKind.METHOD_CALL:
            call = f"{first}.{body.target}({args})"
        else:
            call = f"{body.target}({args})"
        return f"  {self._return(fn, call)}"

    def _return(self, fn: FnAnalysis, call: str) -> str:
        if fn.ret.bridged is None:
            return f"{call};"
        if fn.ret.conversion is Conversion.VALUE_TO_UNIQUE_PTR:
            held = self.apis.cpp_spelling(fn.ret.bridged.template_args[0])
            return f"return std::make_unique<{held}>({call});"
        if fn.ret.conversion is Conversion.REFERENCE_TO_POINTER:
            return f"return &{call};"
        return f"return {call};"
