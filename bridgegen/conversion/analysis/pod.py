"""Value-semantics classification of record types."""

from bridgegen.config import BridgeConfig
from bridgegen.conversion.api import (
    Api,
    ApiCollection,
    ApiKind,
    Phase,
    PodAnalysis,
    QualifiedName,
    SpecialMember,
    TypeKind,
)
from bridgegen.conversion.errors import ErrorKind, UnsupportedItem
from bridgegen.conversion.types import TypeRef, is_builtin, is_primitive

NON_TRIVIAL_MEMBERS = (
    SpecialMember.COPY_CONSTRUCTOR,
    SpecialMember.MOVE_CONSTRUCTOR,
    SpecialMember.DESTRUCTOR,
)


class PodAnalyzer:
    """Works out, per record type, why it cannot be POD (None when it can)."""

    def __init__(self, apis: ApiCollection):
        self.apis = apis
        self._blockers: dict[QualifiedName, str] = {}
        for api in apis.of_kind(ApiKind.FUNCTION):
            detail = api.detail
            if detail.self_type is None or detail.self_type in self._blockers:
                continue
            if detail.is_virtual:
                self._blockers[detail.self_type] = "has virtual member functions"
            elif detail.special_member in NON_TRIVIAL_MEMBERS and not detail.is_defaulted:
                self._blockers[detail.self_type] = f"declares a {detail.special_member.value}"
        self._memo: dict[QualifiedName, str | None] = {}
        self._in_progress: set[QualifiedName] = set()

    def non_pod_reason(self, name: QualifiedName) -> str | None:
        if name in self._memo:
            return self._memo[name]
        if name in self._in_progress:
            return "contains itself"
        api = self.apis.get(name)
        if api is None or api.kind is not ApiKind.STRUCT:
            return f"{name} is not a record type"
        self._in_progress.add(name)
        try:
            reason = self._struct_reason(api)
        finally:
            self._in_progress.discard(name)
        self._memo[name] = reason
        return reason

    def _struct_reason(self, api: Api) -> str | None:
        if api.ignored is not None:
            return "is unsupported"
        detail = api.detail
        if detail.is_forward_declaration:
            return "is only forward declared"
        if api.name in self._blockers:
            return self._blockers[api.name]
        for base in detail.bases:
            if self.non_pod_reason(base) is not None:
                return f"base {base} is not POD"
        for field in detail.fields:
            reason = self.type_reason(field.type)
            if reason is not None:
                return f"field {field.name} {reason}"
        return None

    def type_reason(self, t: TypeRef) -> str | None:
        t = self.apis.resolve(t)
        if t.is_pointer:
            return None
        if t.is_reference:
            return "is a reference"
        if is_primitive(t.name):
            return None
        if is_builtin(t.name):
            return f"has non-trivial type {t.name}"
        record = self.apis.lookup(t.name)
        if record is None:
            return f"has unknown type {t.name}"
        if record.kind is ApiKind.ENUM:
            return None
        if record.kind is ApiKind.STRUCT:
            if self.non_pod_reason(record.name) is not None:
                return f"has non-POD type {t.name}"
            return None
        return f"has type {t.name} which is not a value type"


def analyze_pod_apis(apis: ApiCollection, config: BridgeConfig) -> ApiCollection:
    analyzer = PodAnalyzer(apis)
    result = []
    for api in apis:
        if api.kind is ApiKind.STRUCT and api.ignored is None:
            reason = analyzer.non_pod_reason(api.name)
            if reason is None:
                api = api.annotate(pod=PodAnalysis(TypeKind.POD))
            else:
                api = api.annotate(pod=PodAnalysis(TypeKind.OPAQUE, reason))
                if config.is_pod_requested(*api.match_names()):
                    api = api.annotate(
                        ignored=UnsupportedItem(api.name, ErrorKind.POD_REQUEST_FOR_NON_POD, reason)
                    )
        result.append(api)
    return apis.derive(result, Phase.POD_ANALYZED)
