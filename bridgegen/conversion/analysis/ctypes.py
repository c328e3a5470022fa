"""Collection of the variable-width C types the surviving records still use."""

from bridgegen.conversion.api import ApiCollection, ApiKind, TypeKind
from bridgegen.conversion.types import C_TYPES, C_VOID, VOID, TypeRef


def append_ctype_information(apis: ApiCollection) -> ApiCollection:
    found: dict[str, str] = {}

    def visit(t: TypeRef) -> None:
        t = apis.resolve(t)
        if t.name == VOID and not t.is_value:
            found.setdefault(C_VOID, VOID)
        elif t.name in C_TYPES:
            found.setdefault(C_TYPES[t.name], t.name)
        for arg in t.template_args:
            visit(arg)

    for api in apis:
        if api.kind is ApiKind.FUNCTION:
            if api.fn is not None and api.fn.is_host_visible:
                for t in api.fn.bridged_types():
                    visit(t)
        elif api.kind is ApiKind.STRUCT:
            # Only POD records render their fields on the host side.
            if api.type_kind is TypeKind.POD:
                for field in api.detail.fields:
                    visit(field.type)
        else:
            for _, t in api.type_refs():
                visit(t)
    return apis.with_ctypes(found)
