"""Keep-alive edges from record types to their copy/move constructors and destructor."""

from collections import defaultdict

from bridgegen.conversion.api import ApiCollection, ApiKind, QualifiedName, SpecialMember

KEPT_MEMBERS = (
    SpecialMember.COPY_CONSTRUCTOR,
    SpecialMember.MOVE_CONSTRUCTOR,
    SpecialMember.DESTRUCTOR,
)


def decorate_types_with_constructor_deps(apis: ApiCollection) -> ApiCollection:
    deps: dict[QualifiedName, list[QualifiedName]] = defaultdict(list)
    for api in apis.of_kind(ApiKind.FUNCTION):
        detail = api.detail
        if detail.self_type is None or detail.special_member not in KEPT_MEMBERS:
            continue
        if api.ignored is not None or (api.fn is not None and api.fn.ignore_reason is not None):
            continue
        deps[detail.self_type].append(api.name)

    result = []
    for api in apis:
        if api.kind is ApiKind.STRUCT and not api.is_abstract and api.name in deps:
            api = api.annotate(constructor_deps=tuple(deps[api.name]))
        result.append(api)
    return apis.derive(result)
