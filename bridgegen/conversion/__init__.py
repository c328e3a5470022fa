"""Conversion of parsed C++ declarations into a cxx bridge plus a C++ shim.

:class:`BridgeConverter` runs the whole pipeline. Each phase takes the
previous :class:`ApiCollection` snapshot and returns a new one; the trace sink
sees every snapshot.
"""

from dataclasses import dataclass, field
from typing import Sequence

from bridgegen.config import BridgeConfig, CppCodegenOptions, UnsafePolicy
from bridgegen.conversion.analysis.abstract_types import (
    discard_ignored_functions,
    mark_types_abstract,
)
from bridgegen.conversion.analysis.allocators import create_alloc_and_frees
from bridgegen.conversion.analysis.casts import add_casts
from bridgegen.conversion.analysis.constructor_deps import decorate_types_with_constructor_deps
from bridgegen.conversion.analysis.ctypes import append_ctype_information
from bridgegen.conversion.analysis.fun import FnAnalyzer
from bridgegen.conversion.analysis.gc import filter_apis_by_following_edges_from_allowlist
from bridgegen.conversion.analysis.names import check_names
from bridgegen.conversion.analysis.pod import analyze_pod_apis
from bridgegen.conversion.analysis.remove_ignored import filter_apis_by_ignored_dependents
from bridgegen.conversion.analysis.tdef import (
    convert_typedef_targets,
    replace_hopeless_typedef_targets,
)
from bridgegen.conversion.api import ApiCollection
from bridgegen.conversion.codegen_cpp import CppCodeGenerator, CppFilePair
from bridgegen.conversion.codegen_rs import RsCodeGenerator, RsItem, render_rs
from bridgegen.conversion.errors import UnsupportedItem
from bridgegen.conversion.models import RawItem
from bridgegen.conversion.parse import ParseBindgen
from bridgegen.conversion.trace import ApiTrace, NullTrace


@dataclass
class CodegenResults:
    """Both generated outputs, plus what was left out of them."""

    rs: list[RsItem]
    cpp: CppFilePair | None
    unsupported: list[UnsupportedItem] = field(default_factory=list)
    missing_roots: list[str] = field(default_factory=list)

    @property
    def header_name(self) -> str | None:
        return self.cpp.header_name if self.cpp is not None else None

    def rs_text(self) -> str:
        return render_rs(self.rs)


class BridgeConverter:
    def __init__(
        self,
        include_list: Sequence[str],
        config: BridgeConfig,
        trace: ApiTrace | None = None,
    ):
        self.include_list = list(include_list)
        self.config = config
        self.trace = trace or NullTrace()

    def convert(
        self,
        items: Sequence[RawItem],
        unsafe_policy: UnsafePolicy | None = None,
        inclusions: str | None = None,
        cpp_codegen_options: CppCodegenOptions | None = None,
    ) -> CodegenResults:
        """Run every phase over ``items`` and render both outputs.

        Raises NoContentError for an empty stream, CppFatalError for
        declarations which cannot be represented at all, and CodegenError
        when a record reaches generation without its annotations.
        """
        config = self.config
        unsafe_policy = unsafe_policy or config.unsafe_policy
        if inclusions is None:
            inclusions = "".join(f'#include "{include}"\n' for include in self.include_list)
        cpp_codegen_options = cpp_codegen_options or CppCodegenOptions()

        apis = ParseBindgen(config).parse_items(items)
        self.trace("parsing", apis)
        apis = convert_typedef_targets(apis)
        self.trace("typedefs", apis)
        apis = analyze_pod_apis(apis, config)
        self.trace("pod analysis", apis)
        apis = replace_hopeless_typedef_targets(apis)
        apis = add_casts(apis)
        apis = create_alloc_and_frees(apis)
        self.trace("adding casts", apis)
        apis = FnAnalyzer.analyze_functions(apis, unsafe_policy, config)
        self.trace("analyze fns", apis)
        apis = mark_types_abstract(apis)
        self.trace("marking abstract", apis)
        apis = decorate_types_with_constructor_deps(apis)
        self.trace("adding constructor deps", apis, with_deps=True)
        apis = discard_ignored_functions(apis)
        self.trace("ignoring ignorable fns", apis, with_deps=True)
        # Rejected names must cascade like any other unsupported record.
        apis = check_names(apis, config)
        apis, report = filter_apis_by_ignored_dependents(apis)
        # Helpers and wrappers are internal; their originals carry the report.
        unsupported = [item for item in report if not item.name.is_synthetic]
        self.trace("removing ignored dependents", apis, with_deps=True)
        apis = filter_apis_by_following_edges_from_allowlist(apis, config)
        apis = append_ctype_information(apis)
        self.trace("GC", apis, with_deps=True)

        cpp = CppCodeGenerator.generate_cpp_code(inclusions, apis, config, cpp_codegen_options)
        rs = RsCodeGenerator.generate_rs_code(
            apis,
            self.include_list,
            config,
            cpp.header_name if cpp is not None else None,
        )
        return CodegenResults(rs, cpp, unsupported, self._missing_roots(apis))

    def _missing_roots(self, apis: ApiCollection) -> list[str]:
        surviving = {name for api in apis for name in api.match_names()}
        return [root for root in self.config.explicit_roots() if root not in surviving]
