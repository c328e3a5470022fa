"""Abstract type marking, and turning function ignore reasons into unsupported records."""

from collections import defaultdict
from dataclasses import replace

from bridgegen.conversion.api import (
    Api,
    ApiCollection,
    ApiKind,
    Conversion,
    QualifiedName,
    Synthesis,
)
from bridgegen.conversion.errors import ErrorKind, UnsupportedItem

_OWNS_A_VALUE = (Conversion.UNIQUE_PTR_TO_VALUE, Conversion.VALUE_TO_UNIQUE_PTR)


class _AbstractFinder:
    def __init__(self, apis: ApiCollection):
        self.apis = apis
        self.pure: dict[QualifiedName, set[str]] = defaultdict(set)
        self.implemented: dict[QualifiedName, set[str]] = defaultdict(set)
        for api in apis.of_kind(ApiKind.FUNCTION):
            detail = api.detail
            if detail.self_type is None or not detail.is_virtual:
                continue
            if detail.is_pure_virtual:
                self.pure[detail.self_type].add(api.effective_cpp_name)
            else:
                self.implemented[detail.self_type].add(api.effective_cpp_name)
        self._memo: dict[QualifiedName, frozenset[str]] = {}

    def unimplemented(self, name: QualifiedName) -> frozenset[str]:
        """Pure virtual members of ``name`` (own or inherited) nobody implements."""
        if name in self._memo:
            return self._memo[name]
        self._memo[name] = frozenset()
        api = self.apis.get(name)
        missing: set[str] = set()
        if api is not None and api.kind is ApiKind.STRUCT:
            for base in api.detail.bases:
                missing |= self.unimplemented(base)
            missing -= self.implemented[name]
            missing |= self.pure[name]
        self._memo[name] = frozenset(missing)
        return self._memo[name]


def _abstract_use(api: Api, abstract: set[QualifiedName]) -> str | None:
    fn, detail = api.fn, api.detail
    owner = detail.self_type or detail.subject
    if owner in abstract:
        if fn.special_member is not None or detail.synthesis in (Synthesis.ALLOC, Synthesis.FREE):
            return str(owner)
    shapes = [(arg.conversion, arg.bridged) for arg in fn.params]
    shapes.append((fn.ret.conversion, fn.ret.bridged))
    for conversion, bridged in shapes:
        if conversion in _OWNS_A_VALUE:
            held = bridged.template_args[0].name
            if QualifiedName.parse(held) in abstract:
                return held
    return None


def mark_types_abstract(apis: ApiCollection) -> ApiCollection:
    """Mark record types with unimplemented pure virtuals as abstract.

    Functions which would construct, destroy or hold by value an abstract type
    get an ignore reason.
    """
    finder = _AbstractFinder(apis)
    abstract = {
        api.name
        for api in apis.of_kind(ApiKind.STRUCT)
        if api.ignored is None and finder.unimplemented(api.name)
    }

    result = []
    for api in apis:
        if api.name in abstract:
            api = api.annotate(is_abstract=True)
        elif api.fn is not None and api.fn.ignore_reason is None:
            held = _abstract_use(api, abstract)
            if held is not None:
                reason = UnsupportedItem(api.name, ErrorKind.ABSTRACT_TYPE, held)
                api = api.annotate(fn=replace(api.fn, ignore_reason=reason))
        result.append(api)
    return apis.derive(result)


def discard_ignored_functions(apis: ApiCollection) -> ApiCollection:
    result = []
    for api in apis:
        if api.fn is not None and api.fn.ignore_reason is not None and api.ignored is None:
            api = api.annotate(ignored=api.fn.ignore_reason)
        result.append(api)
    return apis.derive(result)
