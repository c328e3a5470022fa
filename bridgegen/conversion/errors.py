"""Errors raised or recorded while converting declarations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bridgegen.conversion.api import QualifiedName


class ConvertError(Exception):
    """Base class for errors which abort a conversion run."""


class NoContentError(ConvertError):
    """The declaration stream held nothing to convert."""

    def __init__(self):
        super().__init__("no declarations were found to convert")


class CppFatalError(ConvertError):
    """A declaration the pipeline cannot even represent."""

    def __init__(self, name: QualifiedName | str, message: str):
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}")


class DuplicateItemError(CppFatalError):
    def __init__(self, name: QualifiedName | str):
        super().__init__(name, "declared more than once")


class CodegenError(ConvertError):
    """A record reached code generation in a state no analysis should leave it in."""

    def __init__(self, name: QualifiedName | str, message: str):
        self.name = name
        self.message = message
        super().__init__(f"code generation failed for {name}: {message}")


class ErrorKind(str, Enum):
    UNUSED_TEMPLATE_PARAM = "unused_template_param"
    NON_PUBLIC = "non_public"
    POD_REQUEST_FOR_NON_POD = "pod_request_for_non_pod"
    TYPEDEF_TO_UNSUPPORTED = "typedef_to_unsupported"
    UNKNOWN_TYPE = "unknown_type"
    DELETED_FUNCTION = "deleted_function"
    VARIADIC_FUNCTION = "variadic_function"
    RVALUE_RETURN = "rvalue_return"
    UNSUPPORTED_OPERATOR = "unsupported_operator"
    ABSTRACT_TYPE = "abstract_type"
    INVALID_IDENTIFIER = "invalid_identifier"
    KEYWORD_NAME = "keyword_name"
    RESERVED_NAME = "reserved_name"
    DUPLICATE_BRIDGE_NAME = "duplicate_bridge_name"
    IGNORED_DEPENDENT = "ignored_dependent"


_MESSAGES = {
    ErrorKind.UNUSED_TEMPLATE_PARAM: "uses template parameters which its declaration discards",
    ErrorKind.NON_PUBLIC: "is not public",
    ErrorKind.POD_REQUEST_FOR_NON_POD: "was requested as POD but cannot be passed by value",
    ErrorKind.TYPEDEF_TO_UNSUPPORTED: "is a typedef to a type which cannot be bridged",
    ErrorKind.UNKNOWN_TYPE: "refers to a type which is not known",
    ErrorKind.DELETED_FUNCTION: "is deleted",
    ErrorKind.VARIADIC_FUNCTION: "is variadic",
    ErrorKind.RVALUE_RETURN: "returns an rvalue reference",
    ErrorKind.UNSUPPORTED_OPERATOR: "is an operator with no bridge equivalent",
    ErrorKind.ABSTRACT_TYPE: "would construct or destroy an abstract type",
    ErrorKind.INVALID_IDENTIFIER: "has a name which is not a valid identifier",
    ErrorKind.KEYWORD_NAME: "has a name which is a host language keyword",
    ErrorKind.RESERVED_NAME: "has a name reserved by the bridge",
    ErrorKind.DUPLICATE_BRIDGE_NAME: "has a bridge name which is already taken",
    ErrorKind.IGNORED_DEPENDENT: "depends on an item which could not be bridged",
}


@dataclass(frozen=True)
class UnsupportedItem:
    """Why a single declaration was left out of the bridge."""

    name: QualifiedName
    kind: ErrorKind
    detail: str | None = None

    @property
    def message(self) -> str:
        return _MESSAGES[self.kind]

    def __str__(self) -> str:
        text = f"{self.name} {self.message}"
        if self.detail:
            text += f" ({self.detail})"
        return text
