"""Rejection of records whose host-facing names the bridge cannot express."""

import re

from bridgegen.config import BridgeConfig
from bridgegen.conversion.api import Api, ApiCollection, ApiKind, QualifiedName
from bridgegen.conversion.errors import ErrorKind, UnsupportedItem
from bridgegen.conversion.types import BRIDGE_BUILTINS, C_TYPES, C_VOID

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

RUST_KEYWORDS = frozenset(
    """
    as async await break const continue crate dyn else enum extern false fn for if impl in
    let loop match mod move mut pub ref return self Self static struct super trait true
    type unsafe use where while abstract become box do final macro override priv try
    typeof unsized virtual yield union
    """.split()
)

RESERVED_TYPE_NAMES = frozenset(
    {"Pin", "Box", "String", "Vec", "Result", "Option", C_VOID, *BRIDGE_BUILTINS, *C_TYPES.values()}
)

RESERVED_PREFIXES = ("bridgegen",)


def host_name(api: Api) -> tuple[object, str] | None:
    """The (name space, name) a record occupies on the host side, if any."""
    if api.kind in (ApiKind.STRUCT, ApiKind.ENUM, ApiKind.TYPEDEF):
        return "type", api.name.final
    if api.kind is ApiKind.CONST:
        return "value", api.name.final
    if api.kind is ApiKind.WRAPPER_MARKER:
        return "value", api.name.final
    fn = api.fn
    if fn is None or not fn.is_host_visible:
        return None
    if fn.receiver is not None:
        return ("method", api.detail.self_type), fn.rust_name
    return "value", fn.rust_name


def _problem(space: object, name: str, config: BridgeConfig) -> tuple[ErrorKind, str | None] | None:
    if not IDENTIFIER.match(name):
        return ErrorKind.INVALID_IDENTIFIER, None
    if name in RUST_KEYWORDS:
        return ErrorKind.KEYWORD_NAME, None
    if "__" in name or name.startswith((*RESERVED_PREFIXES, config.mod_name)):
        return ErrorKind.RESERVED_NAME, None
    if space == "type" and name in RESERVED_TYPE_NAMES:
        return ErrorKind.RESERVED_NAME, None
    return None


def check_names(apis: ApiCollection, config: BridgeConfig) -> ApiCollection:
    """Mark unsupported every record with an illegal or clashing host name.

    The first record to claim a name keeps it; later claimants are rejected.
    """
    taken: dict[tuple[object, str], Api] = {}
    rejected: dict[QualifiedName, UnsupportedItem] = {}
    for api in apis:
        if api.ignored is not None:
            continue
        claim = host_name(api)
        if claim is None:
            continue
        space, name = claim
        problem = _problem(space, name, config)
        if problem is not None:
            kind, detail = problem
            rejected[api.name] = UnsupportedItem(api.name, kind, detail or name)
            continue
        key = (space, name.casefold())
        if key in taken:
            rejected[api.name] = UnsupportedItem(
                api.name, ErrorKind.DUPLICATE_BRIDGE_NAME, f"collides with {taken[key].name}"
            )
            continue
        taken[key] = api

    result = []
    for api in apis:
        if api.name in rejected:
            api = api.annotate(ignored=rejected[api.name])
        elif api.fn is not None and api.fn.wrapper in rejected:
            reason = rejected[api.fn.wrapper]
            api = api.annotate(ignored=UnsupportedItem(api.name, reason.kind, reason.detail))
        result.append(api)
    return apis.derive(result)
