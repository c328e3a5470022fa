"""Pydantic models of the declaration stream handed over by the header parser."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from bridgegen.conversion.types import Indirection, TypeRef

VisibilityName = Literal["public", "protected", "private"]


class RawType(BaseModel):
    name: str = Field(description="Qualified type spelling", examples=["int", "ns::Foo"])
    indirection: Indirection = Indirection.VALUE
    is_const: bool = False
    template_args: list["RawType"] = Field(default_factory=list)

    def to_type_ref(self) -> TypeRef:
        return TypeRef(
            name=self.name,
            indirection=self.indirection,
            is_const=self.is_const,
            template_args=tuple(arg.to_type_ref() for arg in self.template_args),
        )


class RawField(BaseModel):
    name: str
    type: RawType
    visibility: VisibilityName = "public"


class RawParam(BaseModel):
    name: str = ""
    type: RawType
    default: str | None = Field(default=None, description="Default argument expression")


class RawEnumVariant(BaseModel):
    name: str
    value: int


class RawItemBase(BaseModel):
    name: str = Field(description="Qualified name, ::-separated")
    cpp_name: str | None = Field(default=None, description="C++ spelling when it differs")
    visibility: VisibilityName = "public"
    discards_template_param: bool = False


class RawStruct(RawItemBase):
    kind: Literal["struct"]
    fields: list[RawField] = Field(default_factory=list)
    bases: list[str] = Field(default_factory=list)
    is_forward_declaration: bool = False


class RawFunction(RawItemBase):
    kind: Literal["function"]
    params: list[RawParam] = Field(default_factory=list)
    return_type: RawType | None = None
    self_type: str | None = None
    special_member: Literal[
        "constructor", "copy_constructor", "move_constructor", "destructor"
    ] | None = None
    is_virtual: bool = False
    is_pure_virtual: bool = False
    is_const: bool = False
    is_static: bool = False
    is_defaulted: bool = False
    is_deleted: bool = False
    is_variadic: bool = False


class RawTypedef(RawItemBase):
    kind: Literal["typedef"]
    target: RawType


class RawEnum(RawItemBase):
    kind: Literal["enum"]
    variants: list[RawEnumVariant] = Field(default_factory=list)


class RawConst(RawItemBase):
    kind: Literal["const"]
    type: RawType
    value: str


RawItem = Annotated[
    Union[RawStruct, RawFunction, RawTypedef, RawEnum, RawConst],
    Field(discriminator="kind"),
]


class RawStream(BaseModel):
    items: list[RawItem] = Field(default_factory=list)


RawType.model_rebuild()
