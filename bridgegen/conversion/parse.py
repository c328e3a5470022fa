"""Ingestion of the header parser's declaration stream."""

import json
from pathlib import Path
from typing import Sequence

import yaml

from bridgegen.config import BridgeConfig
from bridgegen.conversion.api import (
    Api,
    ApiCollection,
    ApiKind,
    ConstDetail,
    EnumDetail,
    Field,
    FunctionDetail,
    Param,
    Phase,
    QualifiedName,
    SpecialMember,
    StructDetail,
    TypedefDetail,
    Visibility,
)
from bridgegen.conversion.errors import (
    DuplicateItemError,
    ErrorKind,
    NoContentError,
    UnsupportedItem,
)
from bridgegen.conversion.models import (
    RawConst,
    RawEnum,
    RawFunction,
    RawItem,
    RawStream,
    RawStruct,
    RawType,
    RawTypedef,
)
from bridgegen.conversion.types import PARSER_ROOT_PREFIX, TypeRef

MAKE_STRING = QualifiedName.synthetic("make_string")


def load_items(path: Path) -> list[RawItem]:
    """Read a JSON or YAML declaration stream from disk."""
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    else:
        data = json.loads(text)
    if isinstance(data, list):
        data = {"items": data}
    return RawStream.model_validate(data or {}).items


def check_for_fatal_attrs(
    name: QualifiedName, visibility: Visibility, discards_template_param: bool
) -> UnsupportedItem | None:
    if discards_template_param:
        return UnsupportedItem(name, ErrorKind.UNUSED_TEMPLATE_PARAM)
    if visibility is not Visibility.PUBLIC:
        return UnsupportedItem(name, ErrorKind.NON_PUBLIC, visibility.value)
    return None


def _flatten_nested(name: QualifiedName, struct_names: set[QualifiedName]) -> tuple[QualifiedName, str | None]:
    """Fold a type nested inside a record into its enclosing namespace.

    ``ns::Outer::Inner`` becomes ``ns::Outer_Inner`` with C++ name ``Outer::Inner``.
    """
    for depth in range(1, len(name.segments)):
        if QualifiedName(name.segments[:depth]) in struct_names:
            namespace = name.segments[: depth - 1]
            nested = name.segments[depth - 1 :]
            return QualifiedName((*namespace, "_".join(nested))), "::".join(nested)
    return name, None


class ParseBindgen:
    """Builds the first :class:`ApiCollection` from raw parser items."""

    def __init__(self, config: BridgeConfig):
        self.config = config
        self._renames: dict[str, str] = {}

    def parse_items(self, items: Sequence[RawItem]) -> ApiCollection:
        if not items:
            raise NoContentError()

        items = [item for item in items if not self.config.is_on_blocklist(item.name)]
        struct_names = {
            QualifiedName.parse(item.name) for item in items if isinstance(item, RawStruct)
        }

        names: list[tuple[QualifiedName, str | None]] = []
        for item in items:
            qualified = QualifiedName.parse(item.name)
            if isinstance(item, RawFunction):
                if len(qualified.segments) > 1:
                    parent, _ = _flatten_nested(QualifiedName(qualified.namespace), struct_names)
                    qualified = parent.child(qualified.final)
                names.append((qualified, item.cpp_name))
            else:
                flattened, nested_cpp_name = _flatten_nested(qualified, struct_names)
                if flattened != qualified:
                    self._renames[str(qualified)] = str(flattened)
                names.append((flattened, item.cpp_name or nested_cpp_name))

        names = self._disambiguate_overloads(items, names)

        apis = []
        for item, (name, cpp_name) in zip(items, names):
            apis.append(self._parse_item(item, name, cpp_name))

        if not self.config.exclude_utilities:
            apis.append(
                Api(MAKE_STRING, ApiKind.WRAPPER_MARKER, cpp_name="make_string", always_keep=True)
            )
        return ApiCollection.of(apis, Phase.PARSED)

    def _disambiguate_overloads(
        self, items: Sequence[RawItem], names: list[tuple[QualifiedName, str | None]]
    ) -> list[tuple[QualifiedName, str | None]]:
        """Give each overload of a function its own name, keeping the C++ name."""
        signatures: dict[QualifiedName, list[tuple]] = {}
        result = []
        for item, (name, cpp_name) in zip(items, names):
            if not isinstance(item, RawFunction):
                result.append((name, cpp_name))
                continue
            signature = (
                tuple(self._type(p.type) for p in item.params),
                item.is_const,
                item.special_member,
            )
            overloads = signatures.setdefault(name, [])
            if signature in overloads:
                raise DuplicateItemError(name)
            overloads.append(signature)
            if len(overloads) == 1:
                result.append((name, cpp_name))
            else:
                renamed = QualifiedName((*name.namespace, f"{name.final}{len(overloads) - 1}"))
                result.append((renamed, cpp_name or name.final))
        return result

    def _rename(self, spelling: str) -> str:
        try:
            key = str(QualifiedName.parse(spelling))
        except ValueError:
            return spelling
        if key in self._renames:
            return self._renames[key]
        if key.startswith(PARSER_ROOT_PREFIX):
            return self._renames.get(key[len(PARSER_ROOT_PREFIX):], key)
        return key

    def _type(self, raw: RawType) -> TypeRef:
        return raw.to_type_ref().map_names(self._rename)

    def _record_name(self, spelling: str) -> QualifiedName:
        return QualifiedName.parse(self._rename(spelling))

    def _parse_item(self, item: RawItem, name: QualifiedName, cpp_name: str | None) -> Api:
        visibility = Visibility(item.visibility)
        if isinstance(item, RawFunction):
            return Api(name, ApiKind.FUNCTION, self._function_detail(item), cpp_name=cpp_name)

        ignored = check_for_fatal_attrs(name, visibility, item.discards_template_param)
        if isinstance(item, RawStruct):
            detail = StructDetail(
                fields=tuple(
                    Field(f.name, self._type(f.type), Visibility(f.visibility)) for f in item.fields
                ),
                bases=tuple(self._record_name(base) for base in item.bases),
                is_forward_declaration=item.is_forward_declaration,
            )
            kind = ApiKind.STRUCT
        elif isinstance(item, RawTypedef):
            detail, kind = TypedefDetail(self._type(item.target)), ApiKind.TYPEDEF
        elif isinstance(item, RawEnum):
            detail = EnumDetail(tuple((v.name, v.value) for v in item.variants))
            kind = ApiKind.ENUM
        elif isinstance(item, RawConst):
            detail, kind = ConstDetail(self._type(item.type), item.value), ApiKind.CONST
        else:
            raise TypeError(f"unexpected item {item!r}")
        return Api(name, kind, detail, cpp_name=cpp_name, ignored=ignored)

    def _function_detail(self, item: RawFunction) -> FunctionDetail:
        return FunctionDetail(
            params=tuple(
                Param(p.name or f"arg{i}", self._type(p.type), p.default)
                for i, p in enumerate(item.params)
            ),
            return_type=self._type(item.return_type) if item.return_type is not None else None,
            self_type=self._record_name(item.self_type) if item.self_type else None,
            special_member=SpecialMember(item.special_member) if item.special_member else None,
            visibility=Visibility(item.visibility),
            discards_template_param=item.discards_template_param,
            is_virtual=item.is_virtual or item.is_pure_virtual,
            is_pure_virtual=item.is_pure_virtual,
            is_const=item.is_const,
            is_static=item.is_static,
            is_defaulted=item.is_defaulted,
            is_deleted=item.is_deleted,
            is_variadic=item.is_variadic,
        )
