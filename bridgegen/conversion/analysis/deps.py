"""Typed dependency edges between records."""

from collections import defaultdict
from typing import Iterator

from bridgegen.conversion.api import (
    Api,
    ApiCollection,
    ApiKind,
    Dependency,
    EdgeKind,
    QualifiedName,
)


def _referenced_names(api: Api) -> Iterator[Dependency]:
    for kind, t in api.type_refs():
        for name in t.names():
            try:
                yield Dependency(QualifiedName.parse(name), kind)
            except ValueError:
                continue


def dependencies(api: Api, casts: dict[QualifiedName, list[QualifiedName]]) -> Iterator[Dependency]:
    """Every edge leaving ``api``, including ones to names that may not exist."""
    yield from _referenced_names(api)
    if api.kind is ApiKind.FUNCTION:
        if api.detail.wraps is not None:
            yield Dependency(api.detail.wraps, EdgeKind.WRAPPED_FUNCTION)
        if api.fn is not None and api.fn.wrapper is not None:
            yield Dependency(api.fn.wrapper, EdgeKind.WRAPPER_CALL)
    elif api.kind is ApiKind.STRUCT:
        for allocator in api.allocators:
            yield Dependency(allocator, EdgeKind.ALLOCATOR)
        for keep_alive in api.constructor_deps:
            yield Dependency(keep_alive, EdgeKind.KEEP_ALIVE)
        for cast in casts.get(api.name, ()):
            yield Dependency(cast, EdgeKind.CAST_HELPER)


def build_dependency_graph(apis: ApiCollection) -> dict[QualifiedName, list[Dependency]]:
    """Outgoing edges per record, restricted to records present in ``apis``."""
    casts: dict[QualifiedName, list[QualifiedName]] = defaultdict(list)
    for api in apis.of_kind(ApiKind.FUNCTION):
        detail = api.detail
        if detail.synthesis is not None and detail.synthesis.is_cast:
            casts[detail.subject].append(api.name)

    graph = {}
    for api in apis:
        edges: list[Dependency] = []
        for dep in dependencies(api, casts):
            if dep.target == api.name or dep.target not in apis or dep in edges:
                continue
            edges.append(dep)
        graph[api.name] = edges
    return graph
