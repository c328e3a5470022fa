"""Type expressions and the primitive/builtin tables of the bridge convention."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterator


class Indirection(str, Enum):
    VALUE = "value"
    POINTER = "pointer"
    LVALUE_REF = "lvalue_ref"
    RVALUE_REF = "rvalue_ref"


@dataclass(frozen=True)
class TypeRef:
    """A reference to a type as spelled in a declaration.

    ``name`` is a ``::``-separated qualified spelling. Only a single level of
    indirection is modelled; the external parser reports deeper pointer chains
    as unsupported items.
    """

    name: str
    indirection: Indirection = Indirection.VALUE
    is_const: bool = False
    template_args: tuple[TypeRef, ...] = ()

    @property
    def is_value(self) -> bool:
        return self.indirection is Indirection.VALUE

    @property
    def is_pointer(self) -> bool:
        return self.indirection is Indirection.POINTER

    @property
    def is_reference(self) -> bool:
        return self.indirection in (Indirection.LVALUE_REF, Indirection.RVALUE_REF)

    def as_value(self) -> TypeRef:
        return replace(self, indirection=Indirection.VALUE, is_const=False)

    def as_pointer(self) -> TypeRef:
        return replace(self, indirection=Indirection.POINTER)

    def names(self) -> Iterator[str]:
        """Every type name mentioned, outermost first."""
        yield self.name
        for arg in self.template_args:
            yield from arg.names()

    def map_names(self, fn: Callable[[str], str]) -> TypeRef:
        return replace(
            self,
            name=fn(self.name),
            template_args=tuple(arg.map_names(fn) for arg in self.template_args),
        )


def unique_ptr_to(t: TypeRef) -> TypeRef:
    return TypeRef("UniquePtr", template_args=(t.as_value(),))


# Fixed-width types map straight onto host primitives.
FIXED_WIDTH_TYPES = {
    "bool": "bool",
    "float": "f32",
    "double": "f64",
    "int8_t": "i8",
    "int16_t": "i16",
    "int32_t": "i32",
    "int64_t": "i64",
    "uint8_t": "u8",
    "uint16_t": "u16",
    "uint32_t": "u32",
    "uint64_t": "u64",
    "size_t": "usize",
    "ssize_t": "isize",
    "ptrdiff_t": "isize",
    "intptr_t": "isize",
    "uintptr_t": "usize",
}

# Variable-width C types cross as named aliases which both sides must declare.
C_TYPES = {
    "char": "c_char",
    "signed char": "c_schar",
    "unsigned char": "c_uchar",
    "short": "c_short",
    "unsigned short": "c_ushort",
    "int": "c_int",
    "unsigned int": "c_uint",
    "unsigned": "c_uint",
    "long": "c_long",
    "unsigned long": "c_ulong",
    "long long": "c_longlong",
    "unsigned long long": "c_ulonglong",
}

VOID = "void"
C_VOID = "c_void"

# Bridge-native spellings and the C++ types they stand for.
BRIDGE_BUILTINS = {
    "UniquePtr": "std::unique_ptr",
    "SharedPtr": "std::shared_ptr",
    "WeakPtr": "std::weak_ptr",
    "CxxVector": "std::vector",
    "CxxString": "std::string",
    "Str": "rust::Str",
}

# Builtins that may cross by value; the rest are only ever held behind a pointer.
MOVABLE_BUILTINS = frozenset({"UniquePtr", "SharedPtr", "WeakPtr", "Str"})

# Parser spellings of well-known standard types.
PARSER_SPELLINGS = {
    "std::unique_ptr": "UniquePtr",
    "std::shared_ptr": "SharedPtr",
    "std::weak_ptr": "WeakPtr",
    "std::vector": "CxxVector",
    "std::string": "CxxString",
    "std::__cxx11::string": "CxxString",
    "std::size_t": "size_t",
    "std::ptrdiff_t": "ptrdiff_t",
    "std::int8_t": "int8_t",
    "std::int16_t": "int16_t",
    "std::int32_t": "int32_t",
    "std::int64_t": "int64_t",
    "std::uint8_t": "uint8_t",
    "std::uint16_t": "uint16_t",
    "std::uint32_t": "uint32_t",
    "std::uint64_t": "uint64_t",
}

PARSER_ROOT_PREFIX = "root::"


def is_primitive(name: str) -> bool:
    return name in FIXED_WIDTH_TYPES or name in C_TYPES


def is_builtin(name: str) -> bool:
    return name in BRIDGE_BUILTINS


def bridge_spelling(name: str) -> str:
    """Rewrite a parser-internal spelling to the bridge convention's spelling."""
    if name.startswith(PARSER_ROOT_PREFIX):
        name = name[len(PARSER_ROOT_PREFIX):]
    return PARSER_SPELLINGS.get(name, name)


def cpp_spelling(t: TypeRef, qualify: Callable[[str], str] | None = None) -> str:
    """Render ``t`` as C++ source text.

    ``qualify`` maps record names onto their C++ spelling; bridge builtins are
    mapped back to the standard library types they stand for.
    """
    if t.name in BRIDGE_BUILTINS:
        base = BRIDGE_BUILTINS[t.name]
    elif qualify is not None:
        base = qualify(t.name)
    else:
        base = t.name
    if t.template_args:
        base += "<" + ", ".join(cpp_spelling(arg, qualify) for arg in t.template_args) + ">"
    if t.is_const:
        base = f"const {base}"
    suffix = {
        Indirection.VALUE: "",
        Indirection.POINTER: "*",
        Indirection.LVALUE_REF: "&",
        Indirection.RVALUE_REF: "&&",
    }[t.indirection]
    return base + suffix
