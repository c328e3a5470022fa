"""Removal of unsupported records and everything that structurally depends on them."""

from collections import defaultdict, deque

from bridgegen.conversion.analysis.deps import build_dependency_graph
from bridgegen.conversion.api import ApiCollection, Phase, QualifiedName
from bridgegen.conversion.errors import ErrorKind, UnsupportedItem


def filter_apis_by_ignored_dependents(
    apis: ApiCollection,
) -> tuple[ApiCollection, list[UnsupportedItem]]:
    """Drop unsupported records, cascading along structural edges to a fixed point.

    Returns the surviving records and one report entry per dropped record, in
    collection order.
    """
    dependents: dict[QualifiedName, list[QualifiedName]] = defaultdict(list)
    for source, edges in build_dependency_graph(apis).items():
        for dep in edges:
            if dep.kind.is_structural:
                dependents[dep.target].append(source)

    removed = {api.name: api.ignored for api in apis if api.ignored is not None}
    todo = deque(removed)
    while todo:
        name = todo.popleft()
        for dependent in dependents[name]:
            if dependent in removed:
                continue
            removed[dependent] = UnsupportedItem(
                dependent, ErrorKind.IGNORED_DEPENDENT, f"depends on {name}"
            )
            todo.append(dependent)

    report = [removed[api.name] for api in apis if api.name in removed]
    kept = apis.derive((api for api in apis if api.name not in removed), Phase.FILTERED)
    return kept, report
