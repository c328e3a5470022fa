"""Upcast and downcast helpers between record types related by inheritance."""

from bridgegen.conversion.api import (
    Api,
    ApiCollection,
    ApiKind,
    FunctionDetail,
    Param,
    QualifiedName,
    Synthesis,
)
from bridgegen.conversion.types import Indirection, TypeRef


def _cast(name: QualifiedName, source: TypeRef, target: TypeRef, synthesis: Synthesis, subject: QualifiedName) -> Api:
    detail = FunctionDetail(
        params=(Param("self_", source),),
        return_type=target,
        synthesis=synthesis,
        subject=subject,
    )
    return Api(name, ApiKind.FUNCTION, detail)


def _casts_between(derived: Api, base: Api) -> list[Api]:
    namespace = derived.name.namespace
    d, b = derived.name.final, base.name.final
    derived_t, base_t = TypeRef(str(derived.name)), TypeRef(str(base.name))
    ref = Indirection.LVALUE_REF
    return [
        _cast(
            QualifiedName.synthetic(*namespace, f"{d}_as_{b}"),
            TypeRef(derived_t.name, ref, is_const=True),
            TypeRef(base_t.name, ref, is_const=True),
            Synthesis.UPCAST,
            derived.name,
        ),
        _cast(
            QualifiedName.synthetic(*namespace, f"{d}_as_{b}_mut"),
            TypeRef(derived_t.name, ref),
            TypeRef(base_t.name, ref),
            Synthesis.UPCAST_MUT,
            derived.name,
        ),
        _cast(
            QualifiedName.synthetic(*namespace, f"{b}_as_{d}_unchecked"),
            TypeRef(base_t.name, Indirection.POINTER, is_const=True),
            TypeRef(derived_t.name, Indirection.POINTER, is_const=True),
            Synthesis.DOWNCAST,
            derived.name,
        ),
    ]


def add_casts(apis: ApiCollection) -> ApiCollection:
    result = []
    for api in apis:
        result.append(api)
        if api.kind is not ApiKind.STRUCT or api.ignored is not None:
            continue
        for base_name in api.detail.bases:
            base = apis.get(base_name)
            if base is not None and base.kind is ApiKind.STRUCT:
                result.extend(_casts_between(api, base))
    return apis.derive(result)
