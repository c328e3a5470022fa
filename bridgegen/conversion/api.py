"""The record model shared by every phase of the conversion pipeline.

Each declared entity is one immutable :class:`Api`. Phases never edit a record
in place: they return a copy with the one annotation slot they own filled in,
and hand a fresh :class:`ApiCollection` snapshot to the next phase.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from functools import lru_cache
from typing import Callable, Iterable, Iterator, Union

from bridgegen.conversion.errors import DuplicateItemError, UnsupportedItem
from bridgegen.conversion.types import Indirection, TypeRef, cpp_spelling

# Namespace under which synthesized records live; no user declaration may use it.
SYNTHETIC_NAMESPACE = "__bridgegen"


@dataclass(frozen=True, order=True)
class QualifiedName:
    segments: tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> QualifiedName:
        return _parse_qualified(text)

    @classmethod
    def synthetic(cls, *segments: str) -> QualifiedName:
        return cls((SYNTHETIC_NAMESPACE, *segments))

    @property
    def final(self) -> str:
        return self.segments[-1]

    @property
    def namespace(self) -> tuple[str, ...]:
        return self.segments[:-1]

    @property
    def namespace_str(self) -> str:
        return "::".join(self.namespace)

    @property
    def is_synthetic(self) -> bool:
        return self.segments[0] == SYNTHETIC_NAMESPACE

    def child(self, name: str) -> QualifiedName:
        return QualifiedName((*self.segments, name))

    def __str__(self) -> str:
        return "::".join(self.segments)


@lru_cache(maxsize=None)
def _parse_qualified(text: str) -> QualifiedName:
    segments = tuple(segment.strip() for segment in text.split("::") if segment.strip())
    if not segments:
        raise ValueError(f"not a qualified name: {text!r}")
    return QualifiedName(segments)


class Visibility(str, Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


class ApiKind(str, Enum):
    FUNCTION = "function"
    STRUCT = "struct"
    TYPEDEF = "typedef"
    ENUM = "enum"
    CONST = "const"
    WRAPPER_MARKER = "wrapper_marker"


class TypeKind(str, Enum):
    POD = "pod"
    OPAQUE = "opaque"
    ABSTRACT = "abstract"


class SpecialMember(str, Enum):
    CONSTRUCTOR = "constructor"
    COPY_CONSTRUCTOR = "copy_constructor"
    MOVE_CONSTRUCTOR = "move_constructor"
    DESTRUCTOR = "destructor"

    @property
    def is_constructor(self) -> bool:
        return self is not SpecialMember.DESTRUCTOR


class Synthesis(str, Enum):
    WRAPPER = "wrapper"
    UPCAST = "upcast"
    UPCAST_MUT = "upcast_mut"
    DOWNCAST = "downcast"
    ALLOC = "alloc"
    FREE = "free"

    @property
    def is_cast(self) -> bool:
        return self in (Synthesis.UPCAST, Synthesis.UPCAST_MUT, Synthesis.DOWNCAST)


class EdgeKind(str, Enum):
    FIELD_TYPE = "field"
    BASE_TYPE = "base"
    PARAM_TYPE = "param"
    RETURN_TYPE = "return"
    RECEIVER_TYPE = "receiver"
    TYPEDEF_TARGET = "typedef"
    CONST_TYPE = "const"
    WRAPPED_FUNCTION = "wraps"
    WRAPPER_CALL = "wrapper"
    ALLOCATOR = "allocator"
    KEEP_ALIVE = "keep_alive"
    CAST_HELPER = "cast"

    @property
    def is_structural(self) -> bool:
        """Whether the source cannot exist without the target."""
        return self not in (
            EdgeKind.WRAPPER_CALL,
            EdgeKind.ALLOCATOR,
            EdgeKind.KEEP_ALIVE,
            EdgeKind.CAST_HELPER,
        )


@dataclass(frozen=True)
class Dependency:
    target: QualifiedName
    kind: EdgeKind

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.target}"


@dataclass(frozen=True)
class Field:
    name: str
    type: TypeRef
    visibility: Visibility = Visibility.PUBLIC


@dataclass(frozen=True)
class Param:
    name: str
    type: TypeRef
    default: str | None = None


@dataclass(frozen=True)
class StructDetail:
    fields: tuple[Field, ...] = ()
    bases: tuple[QualifiedName, ...] = ()
    is_forward_declaration: bool = False

    def type_refs(self) -> Iterator[tuple[EdgeKind, TypeRef]]:
        for f in self.fields:
            yield EdgeKind.FIELD_TYPE, f.type
        for base in self.bases:
            yield EdgeKind.BASE_TYPE, TypeRef(str(base))

    def map_types(self, fn: Callable[[TypeRef], TypeRef]) -> StructDetail:
        return replace(self, fields=tuple(replace(f, type=fn(f.type)) for f in self.fields))


@dataclass(frozen=True)
class FunctionDetail:
    params: tuple[Param, ...] = ()
    return_type: TypeRef | None = None
    self_type: QualifiedName | None = None
    special_member: SpecialMember | None = None
    visibility: Visibility = Visibility.PUBLIC
    discards_template_param: bool = False
    is_virtual: bool = False
    is_pure_virtual: bool = False
    is_const: bool = False
    is_static: bool = False
    is_defaulted: bool = False
    is_deleted: bool = False
    is_variadic: bool = False
    synthesis: Synthesis | None = None
    # The function a wrapper calls, or the record type a helper belongs to.
    wraps: QualifiedName | None = None
    subject: QualifiedName | None = None

    @property
    def is_method(self) -> bool:
        return self.self_type is not None and not self.is_static and self.special_member is None

    def type_refs(self) -> Iterator[tuple[EdgeKind, TypeRef]]:
        for p in self.params:
            yield EdgeKind.PARAM_TYPE, p.type
        if self.return_type is not None:
            yield EdgeKind.RETURN_TYPE, self.return_type
        if self.self_type is not None:
            yield EdgeKind.RECEIVER_TYPE, TypeRef(str(self.self_type))

    def map_types(self, fn: Callable[[TypeRef], TypeRef]) -> FunctionDetail:
        return replace(
            self,
            params=tuple(replace(p, type=fn(p.type)) for p in self.params),
            return_type=fn(self.return_type) if self.return_type is not None else None,
        )


@dataclass(frozen=True)
class TypedefDetail:
    target: TypeRef

    def type_refs(self) -> Iterator[tuple[EdgeKind, TypeRef]]:
        yield EdgeKind.TYPEDEF_TARGET, self.target

    def map_types(self, fn: Callable[[TypeRef], TypeRef]) -> TypedefDetail:
        return replace(self, target=fn(self.target))


@dataclass(frozen=True)
class EnumDetail:
    variants: tuple[tuple[str, int], ...] = ()

    def type_refs(self) -> Iterator[tuple[EdgeKind, TypeRef]]:
        return iter(())

    def map_types(self, fn: Callable[[TypeRef], TypeRef]) -> EnumDetail:
        return self


@dataclass(frozen=True)
class ConstDetail:
    type: TypeRef
    value: str

    def type_refs(self) -> Iterator[tuple[EdgeKind, TypeRef]]:
        yield EdgeKind.CONST_TYPE, self.type

    def map_types(self, fn: Callable[[TypeRef], TypeRef]) -> ConstDetail:
        return replace(self, type=fn(self.type))


Detail = Union[StructDetail, FunctionDetail, TypedefDetail, EnumDetail, ConstDetail, None]


@dataclass(frozen=True)
class PodAnalysis:
    kind: TypeKind
    reason: str | None = None


class Conversion(str, Enum):
    NONE = "none"
    RECEIVER = "receiver"
    DEFAULT = "default"
    UNIQUE_PTR_TO_VALUE = "unique_ptr_to_value"
    MOVE = "move"
    VALUE_TO_UNIQUE_PTR = "value_to_unique_ptr"
    REFERENCE_TO_POINTER = "reference_to_pointer"


@dataclass(frozen=True)
class ArgumentShape:
    """How one parameter crosses the bridge.

    ``bridged`` is the type in the bridged signature, or None when the
    argument never crosses (a defaulted parameter filled in by the wrapper).
    """

    name: str
    original: TypeRef
    bridged: TypeRef | None
    conversion: Conversion = Conversion.NONE
    default: str | None = None


@dataclass(frozen=True)
class ReturnShape:
    original: TypeRef | None = None
    bridged: TypeRef | None = None
    conversion: Conversion = Conversion.NONE


class CppBodyKind(str, Enum):
    CALL = "call"
    METHOD_CALL = "method_call"
    STATIC_CALL = "static_call"
    CONSTRUCT = "construct"
    DESTROY = "destroy"
    UPCAST = "upcast"
    DOWNCAST = "downcast"
    ALLOC = "alloc"
    FREE = "free"


@dataclass(frozen=True)
class CppBody:
    kind: CppBodyKind
    target: str


@dataclass(frozen=True)
class FnAnalysis:
    """The bridged shape of one function."""

    rust_name: str
    cpp_name: str
    params: tuple[ArgumentShape, ...] = ()
    ret: ReturnShape = ReturnShape()
    receiver: TypeRef | None = None
    special_member: SpecialMember | None = None
    requires_unsafe: bool = False
    # Set on a function which is reached through a synthesized wrapper record.
    wrapper: QualifiedName | None = None
    # Set on every record whose body is emitted into the shim.
    cpp_body: CppBody | None = None
    ignore_reason: UnsupportedItem | None = None

    @property
    def is_host_visible(self) -> bool:
        return self.wrapper is None and self.ignore_reason is None

    def bridged_types(self) -> Iterator[TypeRef]:
        if self.receiver is not None:
            yield self.receiver
        for arg in self.params:
            if arg.bridged is not None:
                yield arg.bridged
        if self.ret.bridged is not None:
            yield self.ret.bridged


@dataclass(frozen=True)
class Api:
    name: QualifiedName
    kind: ApiKind
    detail: Detail = None
    cpp_name: str | None = None
    always_keep: bool = False

    # Annotation slots, each filled by exactly one phase.
    pod: PodAnalysis | None = None
    allocators: tuple[QualifiedName, ...] = ()
    fn: FnAnalysis | None = None
    is_abstract: bool = False
    constructor_deps: tuple[QualifiedName, ...] = ()
    ignored: UnsupportedItem | None = None

    @property
    def effective_cpp_name(self) -> str:
        return self.cpp_name or self.name.final

    @property
    def cpp_qualified_name(self) -> str:
        return "::".join((*self.name.namespace, self.effective_cpp_name))

    @property
    def type_kind(self) -> TypeKind | None:
        if self.is_abstract:
            return TypeKind.ABSTRACT
        return self.pod.kind if self.pod is not None else None

    def match_names(self) -> tuple[str, ...]:
        """Names under which configuration may refer to this record."""
        names = (str(self.name), self.cpp_qualified_name)
        return names if names[0] != names[1] else names[:1]

    def type_refs(self) -> Iterator[tuple[EdgeKind, TypeRef]]:
        if self.detail is None:
            return iter(())
        return self.detail.type_refs()

    def map_types(self, fn: Callable[[TypeRef], TypeRef]) -> Api:
        if self.detail is None:
            return self
        return replace(self, detail=self.detail.map_types(fn))

    def annotate(self, **slots) -> Api:
        return replace(self, **slots)

    def describe(self) -> str:
        text = f"{self.kind.value} {self.name}"
        if self.type_kind is not None:
            text += f" [{self.type_kind.value}]"
        if self.fn is not None:
            text += f" -> {self.fn.rust_name}"
            if self.fn.wrapper is not None:
                text += f" via {self.fn.wrapper}"
        if self.ignored is not None:
            text += f" IGNORED: {self.ignored.message}"
        return text


class Phase(IntEnum):
    PARSED = 1
    TYPEDEFS_CONVERTED = 2
    POD_ANALYZED = 3
    FNS_ANALYZED = 4
    FILTERED = 5
    COLLECTED = 6


@dataclass
class ApiCollection:
    """An ordered, name-indexed snapshot of records."""

    _apis: dict[QualifiedName, Api] = field(default_factory=dict)
    phase: Phase = Phase.PARSED
    # Host alias -> C++ spelling of the variable-width C types still referenced.
    ctypes: dict[str, str] | None = None

    @classmethod
    def of(cls, apis: Iterable[Api], phase: Phase = Phase.PARSED) -> ApiCollection:
        collection = cls(phase=phase)
        for api in apis:
            if api.name in collection._apis:
                raise DuplicateItemError(api.name)
            collection._apis[api.name] = api
        return collection

    def derive(self, apis: Iterable[Api], phase: Phase | None = None) -> ApiCollection:
        return ApiCollection.of(apis, self.phase if phase is None else phase)

    def with_ctypes(self, ctypes: dict[str, str]) -> ApiCollection:
        return ApiCollection(dict(self._apis), self.phase, dict(ctypes))

    def __iter__(self) -> Iterator[Api]:
        return iter(self._apis.values())

    def __len__(self) -> int:
        return len(self._apis)

    def __contains__(self, name: object) -> bool:
        return name in self._apis

    def __getitem__(self, name: QualifiedName) -> Api:
        return self._apis[name]

    def get(self, name: QualifiedName) -> Api | None:
        return self._apis.get(name)

    def names(self) -> list[QualifiedName]:
        return list(self._apis)

    def of_kind(self, kind: ApiKind) -> Iterator[Api]:
        return (api for api in self._apis.values() if api.kind is kind)

    def lookup(self, spelling: str) -> Api | None:
        """The record a type spelling refers to, if any."""
        try:
            return self._apis.get(QualifiedName.parse(spelling))
        except ValueError:
            return None

    def resolve(self, t: TypeRef) -> TypeRef:
        """Follow typedefs until ``t`` names something other than a typedef."""
        seen: set[str] = set()
        while t.name not in seen:
            api = self.lookup(t.name)
            if api is None or api.kind is not ApiKind.TYPEDEF:
                break
            seen.add(t.name)
            target = api.detail.target
            if t.indirection is Indirection.VALUE:
                t = replace(target, is_const=target.is_const or t.is_const)
            elif target.indirection is Indirection.VALUE:
                t = replace(
                    t,
                    name=target.name,
                    template_args=target.template_args,
                    is_const=t.is_const or target.is_const,
                )
            else:
                break
        return t

    def cpp_spelling(self, t: TypeRef) -> str:
        return cpp_spelling(t, self._qualify)

    def _qualify(self, name: str) -> str:
        api = self.lookup(name)
        return api.cpp_qualified_name if api is not None else name
