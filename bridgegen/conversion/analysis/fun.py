"""Function shaping.

Every function record gets an :class:`FnAnalysis` describing the signature it
has on the bridge. A function whose declared shape the bridge cannot express
directly is reached through a synthesized wrapper record instead: a shim
function with a bridge-safe name and signature which performs the real call.
"""

from collections import Counter
from dataclasses import replace

from bridgegen.config import BridgeConfig, UnsafePolicy
from bridgegen.conversion.analysis.names import RUST_KEYWORDS
from bridgegen.conversion.api import (
    Api,
    ApiCollection,
    ApiKind,
    ArgumentShape,
    Conversion,
    CppBody,
    CppBodyKind,
    FnAnalysis,
    FunctionDetail,
    Param,
    Phase,
    QualifiedName,
    ReturnShape,
    SpecialMember,
    Synthesis,
    TypeKind,
)
from bridgegen.conversion.errors import ErrorKind, UnsupportedItem
from bridgegen.conversion.parse import check_for_fatal_attrs
from bridgegen.conversion.types import (
    MOVABLE_BUILTINS,
    VOID,
    Indirection,
    TypeRef,
    is_builtin,
    is_primitive,
    unique_ptr_to,
)

# Shim functions live in the global namespace under this prefix.
SHIM_PREFIX = "bridgegen_"

OPERATORS = {
    "==": "eq",
    "!=": "neq",
    "<": "lt",
    "<=": "le",
    ">": "gt",
    ">=": "ge",
    "+": "add",
    "-": "sub",
    "*": "mul",
    "/": "div",
    "%": "rem",
    "<<": "shl",
    ">>": "shr",
    "&": "bitand",
    "|": "bitor",
    "^": "bitxor",
    "!": "not",
    "~": "bitnot",
    "[]": "index",
    "()": "call",
    "=": "assign",
    "+=": "add_assign",
    "-=": "sub_assign",
    "*=": "mul_assign",
    "/=": "div_assign",
    "%=": "rem_assign",
    "++": "incr",
    "--": "decr",
}

_SYNTHESIZED_BODIES = {
    Synthesis.UPCAST: CppBodyKind.UPCAST,
    Synthesis.UPCAST_MUT: CppBodyKind.UPCAST,
    Synthesis.DOWNCAST: CppBodyKind.DOWNCAST,
    Synthesis.ALLOC: CppBodyKind.ALLOC,
    Synthesis.FREE: CppBodyKind.FREE,
}


def operator_symbol(cpp_name: str) -> str | None:
    """``==`` for ``operator==``; None when the name is not an operator."""
    if not cpp_name.startswith("operator"):
        return None
    rest = cpp_name[len("operator"):]
    if rest[:1].isalnum() or rest[:1] == "_":
        return None
    return rest.strip()


def param_name(name: str, index: int) -> str:
    if not name:
        return f"arg{index}"
    if name in RUST_KEYWORDS:
        return f"{name}_"
    return name


class _IgnoreFunction(Exception):
    def __init__(self, item: UnsupportedItem):
        super().__init__(str(item))
        self.item = item


class FnAnalyzer:
    def __init__(self, apis: ApiCollection, unsafe_policy: UnsafePolicy, config: BridgeConfig):
        self.apis = apis
        self.unsafe_policy = unsafe_policy
        self.config = config
        self.overloads = Counter(
            (api.name.namespace, api.effective_cpp_name)
            for api in apis.of_kind(ApiKind.FUNCTION)
            if api.detail.synthesis is None
        )

    @classmethod
    def analyze_functions(
        cls, apis: ApiCollection, unsafe_policy: UnsafePolicy, config: BridgeConfig
    ) -> ApiCollection:
        """Shape every function, inserting each wrapper right after its original."""
        analyzer = cls(apis, unsafe_policy, config)
        result = []
        for api in apis:
            if api.kind is not ApiKind.FUNCTION or api.ignored is not None:
                result.append(api)
                continue
            analyzed, wrapper = analyzer.analyze_function(api)
            result.append(analyzed)
            if wrapper is not None:
                result.append(wrapper)
        return apis.derive(result, Phase.FNS_ANALYZED)

    def analyze_function(self, api: Api) -> tuple[Api, Api | None]:
        try:
            if api.detail.synthesis is not None:
                return api.annotate(fn=self._synthesized(api)), None
            analysis, needs_wrapper = self._shape(api)
        except _IgnoreFunction as e:
            ignored = FnAnalysis(api.name.final, api.effective_cpp_name, ignore_reason=e.item)
            return api.annotate(fn=ignored), None

        if not needs_wrapper:
            return api.annotate(fn=replace(analysis, cpp_body=None)), None
        wrapper = self._make_wrapper(api, analysis)
        return api.annotate(fn=replace(analysis, wrapper=wrapper.name, cpp_body=None)), wrapper

    def _ignore(self, api: Api, kind: ErrorKind, detail: str | None = None) -> _IgnoreFunction:
        return _IgnoreFunction(UnsupportedItem(api.name, kind, detail))

    def _check_known(self, api: Api, t: TypeRef) -> None:
        for name in t.names():
            if name == VOID or is_primitive(name) or is_builtin(name):
                continue
            if self.apis.lookup(name) is None:
                raise self._ignore(api, ErrorKind.UNKNOWN_TYPE, name)

    def _crosses_by_value(self, t: TypeRef) -> bool:
        if is_primitive(t.name) or t.name in MOVABLE_BUILTINS:
            return True
        record = self.apis.lookup(t.name)
        if record is None:
            return False
        if record.kind is ApiKind.ENUM:
            return True
        return record.kind is ApiKind.STRUCT and record.type_kind is TypeKind.POD

    def _param_shape(self, param: Param, index: int) -> ArgumentShape:
        name = param_name(param.name, index)
        if param.default is not None:
            return ArgumentShape(name, param.type, None, Conversion.DEFAULT, param.default)
        t = self.apis.resolve(param.type)
        if t.is_value:
            if self._crosses_by_value(t):
                return ArgumentShape(name, param.type, t)
            return ArgumentShape(name, param.type, unique_ptr_to(t), Conversion.UNIQUE_PTR_TO_VALUE)
        if t.indirection is Indirection.RVALUE_REF:
            if self._crosses_by_value(t):
                return ArgumentShape(name, param.type, t.as_value(), Conversion.MOVE)
            return ArgumentShape(name, param.type, unique_ptr_to(t), Conversion.UNIQUE_PTR_TO_VALUE)
        return ArgumentShape(name, param.type, t)

    def _return_shape(self, api: Api, t: TypeRef | None, references_in: int) -> ReturnShape:
        if t is None or (t.name == VOID and t.is_value):
            return ReturnShape()
        resolved = self.apis.resolve(t)
        if resolved.is_value:
            if self._crosses_by_value(resolved):
                return ReturnShape(t, resolved)
            return ReturnShape(t, unique_ptr_to(resolved), Conversion.VALUE_TO_UNIQUE_PTR)
        if resolved.indirection is Indirection.RVALUE_REF:
            raise self._ignore(api, ErrorKind.RVALUE_RETURN)
        if resolved.indirection is Indirection.LVALUE_REF and references_in != 1:
            # A returned reference needs exactly one reference input to borrow from.
            return ReturnShape(t, resolved.as_pointer(), Conversion.REFERENCE_TO_POINTER)
        return ReturnShape(t, resolved)

    def _rust_name(self, api: Api, detail: FunctionDetail, operator: str | None) -> str:
        cpp_member = api.effective_cpp_name
        final = api.name.final
        suffix = final[len(cpp_member):] if final != cpp_member and final.startswith(cpp_member) else ""
        if detail.special_member is SpecialMember.DESTRUCTOR:
            return "destroy"
        if detail.special_member is not None:
            return f"new{suffix}"
        if operator is not None:
            if operator not in OPERATORS:
                raise self._ignore(api, ErrorKind.UNSUPPORTED_OPERATOR, f"operator{operator}")
            return f"operator_{OPERATORS[operator]}{suffix}"
        return final

    def _shape(self, api: Api) -> tuple[FnAnalysis, bool]:
        detail = api.detail
        fatal = check_for_fatal_attrs(api.name, detail.visibility, detail.discards_template_param)
        if fatal is not None:
            raise _IgnoreFunction(fatal)
        if detail.is_deleted:
            raise self._ignore(api, ErrorKind.DELETED_FUNCTION)
        if detail.is_variadic:
            raise self._ignore(api, ErrorKind.VARIADIC_FUNCTION)

        self_api = None
        if detail.self_type is not None:
            self_api = self.apis.get(detail.self_type)
            if self_api is None or self_api.kind is not ApiKind.STRUCT:
                raise self._ignore(api, ErrorKind.UNKNOWN_TYPE, str(detail.self_type))
        elif detail.special_member is not None:
            raise self._ignore(api, ErrorKind.UNKNOWN_TYPE, "special member without a record type")
        for _, t in detail.type_refs():
            self._check_known(api, t)

        cpp_member = api.effective_cpp_name
        operator = operator_symbol(cpp_member)
        rust_name = self._rust_name(api, detail, operator)
        params = tuple(self._param_shape(p, i) for i, p in enumerate(detail.params))
        unsafe = self.unsafe_policy is UnsafePolicy.ALL_FUNCTIONS_UNSAFE or any(
            arg.bridged is not None and arg.bridged.is_pointer for arg in params
        )
        analysis = FnAnalysis(
            rust_name,
            cpp_member,
            params,
            special_member=detail.special_member,
            requires_unsafe=unsafe,
        )

        if detail.special_member is not None:
            return self._special_member(self_api, detail, analysis), True

        if detail.is_static and self_api is not None:
            target = f"{self_api.cpp_qualified_name}::{cpp_member}"
            body = CppBody(CppBodyKind.STATIC_CALL, target)
            references_in = self._references_in(params)
            receiver = None
        elif detail.is_method:
            receiver = TypeRef(str(self_api.name), Indirection.LVALUE_REF, is_const=detail.is_const)
            body = CppBody(CppBodyKind.METHOD_CALL, cpp_member)
            references_in = 1
        else:
            body = CppBody(CppBodyKind.CALL, api.cpp_qualified_name)
            references_in = self._references_in(params)
            receiver = None

        ret = self._return_shape(api, detail.return_type, references_in)
        needs_wrapper = (
            any(arg.conversion is not Conversion.NONE for arg in params)
            or ret.conversion is not Conversion.NONE
            or self.overloads[(api.name.namespace, cpp_member)] > 1
            or api.name.final != cpp_member
            or operator is not None
            or (receiver is None and self_api is not None)
            or self.config.wants_wrapper(*api.match_names())
        )
        analysis = replace(analysis, ret=ret, cpp_body=body)
        if receiver is None:
            return analysis, needs_wrapper
        if not needs_wrapper:
            return replace(analysis, receiver=receiver), False
        # The wrapper takes the receiver as an ordinary reference parameter.
        ret = self._return_shape(api, detail.return_type, 1 + self._references_in(params))
        self_arg = ArgumentShape("self_", receiver, receiver, Conversion.RECEIVER)
        return replace(analysis, params=(self_arg, *analysis.params), ret=ret), True

    @staticmethod
    def _references_in(params: tuple[ArgumentShape, ...]) -> int:
        return sum(1 for arg in params if arg.bridged is not None and arg.bridged.is_reference)

    def _special_member(self, self_api: Api, detail: FunctionDetail, analysis: FnAnalysis) -> FnAnalysis:
        self_t = TypeRef(str(self_api.name))
        if detail.special_member is SpecialMember.DESTRUCTOR:
            self_arg = ArgumentShape("self_", self_t.as_pointer(), self_t.as_pointer(), Conversion.RECEIVER)
            destructor = self_api.effective_cpp_name.split("::")[-1]
            return replace(
                analysis,
                params=(self_arg,),
                requires_unsafe=True,
                cpp_body=CppBody(CppBodyKind.DESTROY, destructor),
            )
        if self_api.type_kind is TypeKind.POD:
            ret = ReturnShape(self_t, self_t)
        else:
            ret = ReturnShape(self_t, unique_ptr_to(self_t), Conversion.VALUE_TO_UNIQUE_PTR)
        return replace(
            analysis, ret=ret, cpp_body=CppBody(CppBodyKind.CONSTRUCT, self_api.cpp_qualified_name)
        )

    def _make_wrapper(self, api: Api, analysis: FnAnalysis) -> Api:
        detail = api.detail
        if detail.self_type is not None:
            host_name = f"{detail.self_type.final}_{analysis.rust_name}"
        else:
            host_name = analysis.rust_name
        cpp_name = SHIM_PREFIX + "_".join((*api.name.namespace, analysis.rust_name))
        wrapper_detail = FunctionDetail(
            params=tuple(
                Param(arg.name, arg.bridged) for arg in analysis.params if arg.bridged is not None
            ),
            return_type=analysis.ret.bridged,
            synthesis=Synthesis.WRAPPER,
            wraps=api.name,
            subject=detail.self_type,
        )
        return Api(
            QualifiedName.synthetic(*api.name.namespace, f"{analysis.rust_name}_wrapper"),
            ApiKind.FUNCTION,
            wrapper_detail,
            cpp_name=cpp_name,
            fn=replace(analysis, rust_name=host_name, cpp_name=cpp_name),
        )

    def _synthesized(self, api: Api) -> FnAnalysis:
        detail = api.detail
        body_kind = _SYNTHESIZED_BODIES[detail.synthesis]
        if body_kind in (CppBodyKind.UPCAST, CppBodyKind.DOWNCAST):
            target = self.apis.cpp_spelling(detail.return_type)
        else:
            target = self.apis[detail.subject].cpp_qualified_name
        params = tuple(ArgumentShape(p.name, p.type, p.type) for p in detail.params)
        ret = ReturnShape(detail.return_type, detail.return_type) if detail.return_type else ReturnShape()
        unsafe = (
            self.unsafe_policy is UnsafePolicy.ALL_FUNCTIONS_UNSAFE
            or detail.synthesis in (Synthesis.DOWNCAST, Synthesis.ALLOC, Synthesis.FREE)
            or any(p.type.is_pointer for p in detail.params)
        )
        return FnAnalysis(
            api.name.final,
            SHIM_PREFIX + "_".join(api.name.segments[1:]),
            params,
            ret,
            requires_unsafe=unsafe,
            cpp_body=CppBody(body_kind, target),
        )
