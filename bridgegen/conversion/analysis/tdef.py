"""Typedef target conversion and rejection of typedefs to unbridgeable targets."""

from bridgegen.conversion.api import Api, ApiCollection, ApiKind, Phase
from bridgegen.conversion.errors import ErrorKind, UnsupportedItem
from bridgegen.conversion.types import VOID, TypeRef, bridge_spelling, is_builtin, is_primitive


def _convert(t: TypeRef) -> TypeRef:
    return t.map_names(bridge_spelling)


def convert_typedef_targets(apis: ApiCollection) -> ApiCollection:
    """Replace parser spellings of standard types with bridge spellings.

    Running this on its own output changes nothing.
    """
    return apis.derive((api.map_types(_convert) for api in apis), Phase.TYPEDEFS_CONVERTED)


def _hopeless_reason(apis: ApiCollection, api: Api) -> str | None:
    target = apis.resolve(api.detail.target)
    if target.template_args and not is_builtin(target.name):
        return f"{target.name} is a template"
    for name in target.names():
        if name == VOID or is_primitive(name) or is_builtin(name):
            continue
        record = apis.lookup(name)
        if record is None:
            return f"unknown type {name}"
        if record.ignored is not None:
            return f"{name} is unsupported"
    return None


def replace_hopeless_typedef_targets(apis: ApiCollection) -> ApiCollection:
    result = []
    for api in apis:
        if api.kind is ApiKind.TYPEDEF and api.ignored is None:
            reason = _hopeless_reason(apis, api)
            if reason is not None:
                api = api.annotate(
                    ignored=UnsupportedItem(api.name, ErrorKind.TYPEDEF_TO_UNSUPPORTED, reason)
                )
        result.append(api)
    return apis.derive(result)
