"""Generation of the host side: one ``#[cxx::bridge]`` module plus the items around it."""

from dataclasses import dataclass

from bridgegen.config import BridgeConfig
from bridgegen.conversion.api import Api, ApiCollection, ApiKind, FnAnalysis, TypeKind, Visibility
from bridgegen.conversion.codegen_cpp import MAKE_STRING_CPP_NAME, check_annotations
from bridgegen.conversion.errors import CodegenError
from bridgegen.conversion.types import (
    BRIDGE_BUILTINS,
    C_TYPES,
    C_VOID,
    FIXED_WIDTH_TYPES,
    VOID,
    Indirection,
    TypeRef,
)

INDENT = "    "


@dataclass(frozen=True)
class RsItem:
    """One top-level host item, keyed by the name it defines."""

    name: str
    text: str


def render_rs(items: list[RsItem]) -> str:
    return "\n\n".join(item.text for item in items) + "\n"


def _namespace_attr(api: Api) -> list[str]:
    if not api.name.namespace:
        return []
    return [f'#[namespace = "{api.name.namespace_str}"]']


class RsCodeGenerator:
    def __init__(self, apis: ApiCollection, config: BridgeConfig):
        self.apis = apis
        self.config = config

    @classmethod
    def generate_rs_code(
        cls,
        apis: ApiCollection,
        include_list: list[str],
        config: BridgeConfig,
        header_name: str | None,
    ) -> list[RsItem]:
        """Render the host items.

        ``header_name`` is the shim header produced by the C++ generator, or
        None when it produced no shim.
        """
        check_annotations(apis)
        return cls(apis, config)._generate(include_list, header_name)

    def _generate(self, include_list: list[str], header_name: str | None) -> list[RsItem]:
        mod_name = self.config.mod_name
        items = [
            RsItem(mod_name, self._bridge_module(include_list, header_name)),
            RsItem(f"{mod_name}::*", f"pub use {mod_name}::*;"),
        ]
        for api in self.apis:
            if api.kind is ApiKind.STRUCT and api.type_kind is TypeKind.POD:
                items.append(RsItem(api.name.final, self._pod_struct(api)))
            elif api.kind is ApiKind.TYPEDEF:
                target = self.rs_type(api.detail.target, outside=True)
                items.append(RsItem(api.name.final, f"pub type {api.name.final} = {target};"))
            elif api.kind is ApiKind.CONST:
                text = self._const(api)
                if text is not None:
                    items.append(RsItem(api.name.final, text))
        return items

    def _bridge_module(self, include_list: list[str], header_name: str | None) -> str:
        body: list[str] = []
        for api in self.apis.of_kind(ApiKind.ENUM):
            body += self._shared_enum(api) + [""]

        extern = [f'include!("{include}");' for include in include_list]
        if header_name is not None:
            extern.append(f'include!("{header_name}");')
        for alias in self.apis.ctypes:
            extern.append(f"type {alias} = {self.config.support_path}::{alias};")
        for api in self.apis:
            extern += self._extern_item(api)

        body.append('unsafe extern "C++" {')
        body += [INDENT + line if line else "" for line in extern]
        body.append("}")
        for api in self.apis.of_kind(ApiKind.STRUCT):
            if api.type_kind is TypeKind.OPAQUE and not api.detail.is_forward_declaration:
                body += ["", f"impl UniquePtr<{api.name.final}> {{}}"]

        lines = ["#[cxx::bridge]", f"pub mod {self.config.mod_name} {{"]
        lines += [INDENT + line if line else "" for line in body]
        lines.append("}")
        return "\n".join(lines)

    def _shared_enum(self, api: Api) -> list[str]:
        lines = _namespace_attr(api)
        lines.append(f"enum {api.name.final} {{")
        lines += [f"{INDENT}{name} = {value}," for name, value in api.detail.variants]
        lines.append("}")
        return lines

    def _extern_item(self, api: Api) -> list[str]:
        if api.kind is ApiKind.STRUCT:
            if api.type_kind is TypeKind.POD:
                return _namespace_attr(api) + [f"type {api.name.final} = super::{api.name.final};"]
            return _namespace_attr(api) + [f"type {api.name.final};"]
        if api.kind is ApiKind.ENUM:
            return _namespace_attr(api) + [f"type {api.name.final};"]
        if api.kind is ApiKind.WRAPPER_MARKER:
            return [
                f'#[cxx_name = "{MAKE_STRING_CPP_NAME}"]',
                f"fn {api.name.final}(str_: &str) -> UniquePtr<CxxString>;",
            ]
        if api.kind is ApiKind.FUNCTION and api.fn.is_host_visible:
            return self._function(api, api.fn)
        return []

    def _function(self, api: Api, fn: FnAnalysis) -> list[str]:
        lines = []
        if fn.cpp_body is None and fn.receiver is None:
            lines += _namespace_attr(api)
        if fn.cpp_name != fn.rust_name:
            lines.append(f'#[cxx_name = "{fn.cpp_name}"]')
        params = []
        if fn.receiver is not None:
            params.append(f"self: {self.rs_type(fn.receiver)}")
        params += [
            f"{arg.name}: {self.rs_type(arg.bridged)}" for arg in fn.params if arg.bridged is not None
        ]
        signature = f"fn {fn.rust_name}({', '.join(params)})"
        if fn.ret.bridged is not None:
            signature += f" -> {self.rs_type(fn.ret.bridged)}"
        if fn.requires_unsafe:
            signature = f"unsafe {signature}"
        lines.append(f"{signature};")
        return lines

    def _pod_struct(self, api: Api) -> str:
        name = api.name.final
        fields = []
        for base in api.detail.bases:
            fields.append(f"{INDENT}_base_{base.final}: {base.final},")
        for field in api.detail.fields:
            visibility = "pub " if field.visibility is Visibility.PUBLIC else ""
            fields.append(f"{INDENT}{visibility}{field.name}: {self.rs_type(field.type, outside=True)},")
        lines = ["#[repr(C)]", f"pub struct {name} {{", *fields, "}", ""]
        lines += [
            f"unsafe impl cxx::ExternType for {name} {{",
            f'{INDENT}type Id = cxx::type_id!("{api.name}");',
            f"{INDENT}type Kind = cxx::kind::Trivial;",
            "}",
        ]
        return "\n".join(lines)

    def _const(self, api: Api) -> str | None:
        t = self.apis.resolve(api.detail.type)
        if not t.is_value:
            return None
        value = api.detail.value
        if t.name in FIXED_WIDTH_TYPES:
            return f"pub const {api.name.final}: {FIXED_WIDTH_TYPES[t.name]} = {value};"
        if t.name in C_TYPES:
            alias = C_TYPES[t.name]
            return f"pub const {api.name.final}: {alias} = {alias}({value});"
        return None

    def rs_type(self, t: TypeRef, outside: bool = False) -> str:
        """Spell ``t`` as a host type.

        ``outside`` spells it for use outside the bridge module, where the
        bridge's builtin types need their crate path.
        """
        base = self._rs_base(t, outside)
        if t.indirection is Indirection.VALUE:
            return base
        if t.indirection is Indirection.POINTER:
            return f"*{'const' if t.is_const else 'mut'} {base}"
        if t.is_const:
            return f"&{base}"
        if self._needs_pin(t.name):
            pin = "::std::pin::Pin" if outside else "Pin"
            return f"{pin}<&mut {base}>"
        return f"&mut {base}"

    def _needs_pin(self, name: str) -> bool:
        if name in ("CxxString", "CxxVector"):
            return True
        record = self.apis.lookup(name)
        return record is not None and record.kind is ApiKind.STRUCT and record.type_kind is not TypeKind.POD

    def _rs_base(self, t: TypeRef, outside: bool) -> str:
        if t.name == VOID:
            return C_VOID
        if t.name in FIXED_WIDTH_TYPES:
            return FIXED_WIDTH_TYPES[t.name]
        if t.name in C_TYPES:
            return C_TYPES[t.name]
        if t.name == "Str":
            return "&str"
        if t.name in BRIDGE_BUILTINS:
            args = ", ".join(self.rs_type(arg, outside) for arg in t.template_args)
            name = f"cxx::{t.name}" if outside else t.name
            return f"{name}<{args}>" if args else name
        record = self.apis.lookup(t.name)
        if record is None:
            raise CodegenError(t.name, "type has no host spelling")
        return record.name.final
