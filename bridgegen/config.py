#!/usr/bin/env python3

import json
from enum import Enum
from fnmatch import fnmatchcase
from pathlib import Path

from pydantic import BaseModel, Field


class UnsafePolicy(str, Enum):
    """Whether bridged functions are callable without an explicit opt-in."""

    ALL_FUNCTIONS_SAFE = "all_functions_safe"
    ALL_FUNCTIONS_UNSAFE = "all_functions_unsafe"


def _matches(patterns: list[str], names: tuple[str, ...]) -> bool:
    return any(fnmatchcase(name, pattern) for pattern in patterns for name in names)


class BridgeConfig(BaseModel):
    """What to bridge and how, as requested by the caller."""

    # Root set
    allowlist: list[str] = Field(default_factory=list)  # qualified names or globs
    generate_all: bool = False
    blocklist: list[str] = Field(default_factory=list)
    pod_requests: list[str] = Field(default_factory=list)

    # Shaping
    unsafe_policy: UnsafePolicy = UnsafePolicy.ALL_FUNCTIONS_UNSAFE
    force_wrapper: bool = False
    force_wrapper_for: list[str] = Field(default_factory=list)
    exclude_utilities: bool = False

    # Host output
    mod_name: str = "cxxbridge"
    support_path: str = "::bridgegen"  # crate providing the c_int family of aliases

    def is_on_allowlist(self, *names: str) -> bool:
        return self.generate_all or _matches(self.allowlist + self.pod_requests, names)

    def is_on_blocklist(self, *names: str) -> bool:
        return _matches(self.blocklist, names)

    def is_pod_requested(self, *names: str) -> bool:
        return _matches(self.pod_requests, names)

    def wants_wrapper(self, *names: str) -> bool:
        return self.force_wrapper or _matches(self.force_wrapper_for, names)

    def explicit_roots(self) -> list[str]:
        """Allowlist entries which name exactly one declaration."""
        return [
            name
            for name in self.allowlist + self.pod_requests
            if not any(ch in name for ch in "*?[")
        ]

    @classmethod
    def load_from_file(cls, config_path: Path) -> "BridgeConfig":
        """Load configuration from a JSON file."""
        return cls.model_validate(json.loads(config_path.read_text()))

    def save_to_file(self, config_path: Path) -> None:
        config_path.write_text(json.dumps(self.model_dump(mode="json"), indent=2))


class CppCodegenOptions(BaseModel):
    """Knobs for the shim file pair."""

    shim_header_name: str = "bridgegen_ffi.h"
    path_to_cxx_h: str = "cxx.h"
    suppress_system_headers: bool = False

    @property
    def shim_impl_name(self) -> str:
        return Path(self.shim_header_name).with_suffix(".cc").name
