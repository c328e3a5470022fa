"""Reachability pruning from the configured root set."""

from collections import deque

from bridgegen.config import BridgeConfig
from bridgegen.conversion.analysis.deps import build_dependency_graph
from bridgegen.conversion.api import Api, ApiCollection, ApiKind, Phase


def _allowlist_names(api: Api, apis: ApiCollection) -> tuple[str, ...]:
    """Names to match against the allowlist; members also go by their record type's names."""
    names = api.match_names()
    if api.kind is ApiKind.FUNCTION and api.detail.self_type is not None:
        owner = apis.get(api.detail.self_type)
        names += owner.match_names() if owner is not None else (str(api.detail.self_type),)
    return names


def is_root(api: Api, config: BridgeConfig, apis: ApiCollection) -> bool:
    return api.always_keep or config.is_on_allowlist(*_allowlist_names(api, apis))


def filter_apis_by_following_edges_from_allowlist(
    apis: ApiCollection, config: BridgeConfig
) -> ApiCollection:
    graph = build_dependency_graph(apis)
    todo = deque(api.name for api in apis if is_root(api, config, apis))
    reached = set(todo)
    while todo:
        for dep in graph[todo.popleft()]:
            if dep.target not in reached:
                reached.add(dep.target)
                todo.append(dep.target)
    return apis.derive((api for api in apis if api.name in reached), Phase.COLLECTED)
