"""Allocate/free pairs for opaque record types."""

from bridgegen.conversion.api import (
    Api,
    ApiCollection,
    ApiKind,
    FunctionDetail,
    Param,
    QualifiedName,
    Synthesis,
    TypeKind,
)
from bridgegen.conversion.types import TypeRef


def create_alloc_and_frees(apis: ApiCollection) -> ApiCollection:
    result = []
    for api in apis:
        if (
            api.kind is not ApiKind.STRUCT
            or api.ignored is not None
            or api.pod.kind is not TypeKind.OPAQUE
            or api.detail.is_forward_declaration
        ):
            result.append(api)
            continue
        pointer = TypeRef(str(api.name)).as_pointer()
        namespace, final = api.name.namespace, api.name.final
        alloc = Api(
            QualifiedName.synthetic(*namespace, f"{final}_alloc"),
            ApiKind.FUNCTION,
            FunctionDetail(return_type=pointer, synthesis=Synthesis.ALLOC, subject=api.name),
        )
        free = Api(
            QualifiedName.synthetic(*namespace, f"{final}_free"),
            ApiKind.FUNCTION,
            FunctionDetail(
                params=(Param("arg0", pointer),), synthesis=Synthesis.FREE, subject=api.name
            ),
        )
        result += [api.annotate(allocators=(alloc.name, free.name)), alloc, free]
    return apis.derive(result)
