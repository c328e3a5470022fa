"""Observers called with each intermediate snapshot of the pipeline."""

from typing import Protocol

from bridgegen.console import Console
from bridgegen.conversion.analysis.deps import build_dependency_graph
from bridgegen.conversion.api import ApiCollection


class ApiTrace(Protocol):
    def __call__(self, label: str, apis: ApiCollection, *, with_deps: bool = False) -> None: ...


class NullTrace:
    def __call__(self, label: str, apis: ApiCollection, *, with_deps: bool = False) -> None:
        pass


class ConsoleTrace:
    """Print every record after each phase, optionally with its outgoing edges."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(stderr=True)

    def __call__(self, label: str, apis: ApiCollection, *, with_deps: bool = False) -> None:
        self.console.print(f"[bold]APIs after {label}:[/bold]")
        graph = build_dependency_graph(apis) if with_deps else {}
        for api in apis:
            line = f"  {api.describe()}"
            if with_deps:
                line += ", deps=" + ", ".join(str(dep) for dep in graph[api.name])
            self.console.plain(line)


class RecordingTrace:
    """Keeps the label and record names of every snapshot it sees."""

    def __init__(self):
        self.snapshots: list[tuple[str, list[str]]] = []

    def __call__(self, label: str, apis: ApiCollection, *, with_deps: bool = False) -> None:
        self.snapshots.append((label, [str(name) for name in apis.names()]))

    @property
    def labels(self) -> list[str]:
        return [label for label, _ in self.snapshots]
