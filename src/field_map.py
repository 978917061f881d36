# Declarative map descriptors: what to pull out of a document and where to put it.
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from edi_errors import SchemaError


class FieldMap(BaseModel):
    """
    Resolves one scalar: field `value_position` of the segment named
    `segment_identifier`, optionally qualified by `identifier_value` at
    `identifier_position`. Positions are zero-based.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["field"] = "field"
    segment_identifier: str = Field(
        min_length=1, validation_alias=AliasChoices("segment_identifier", "segmentIdentifier")
    )
    identifier_value: Optional[str] = Field(
        None, validation_alias=AliasChoices("identifier_value", "identifierValue")
    )
    identifier_position: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("identifier_position", "identifierPosition")
    )
    value_position: int = Field(ge=0, validation_alias=AliasChoices("value_position", "valuePosition"))

    @model_validator(mode="after")
    def check_qualifier(self) -> "FieldMap":
        if self.identifier_value is not None and self.identifier_position is None:
            raise SchemaError(
                f"FieldMap for '{self.segment_identifier}' has identifier value "
                f"'{self.identifier_value}' but no identifier position."
            )
        return self

    @property
    def is_qualified(self) -> bool:
        return self.identifier_value is not None


class LoopMap(BaseModel):
    """Maps `values` once per tuple of the loop declared at `position`."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["loop"] = "loop"
    position: Union[int, str]
    values: "MapObject"

    @field_validator("values", mode="before")
    @classmethod
    def tag_values(cls, value: Any) -> Any:
        return _tag_node("values", value)


class MapObject(BaseModel):
    """A nested output object; every child resolves against the same scope."""
    model_config = ConfigDict(frozen=True)

    type: Literal["object"] = "object"
    children: Dict[str, "MapNode"] = Field(default_factory=dict)

    @field_validator("children", mode="before")
    @classmethod
    def tag_children(cls, value: Any) -> Any:
        return _tag_children(value)


MapNode = Annotated[Union[FieldMap, LoopMap, MapObject], Field(discriminator="type")]


def _tag_node(key: str, node: Any) -> Any:
    if isinstance(node, (FieldMap, LoopMap, MapObject)):
        return node
    if not isinstance(node, dict):
        raise SchemaError(f"Map entry '{key}' must be a FieldMap, LoopMap or object, got {type(node).__name__}")

    node_type = node.get("type")
    if not isinstance(node_type, str):
        return {"type": "object", "children": _tag_children(node)}
    if node_type == "loop":
        if "values" not in node:
            raise SchemaError(f"Loop map entry '{key}' is missing 'values'.")
        return {**node, "values": _tag_node(key, node["values"])}
    if node_type == "object":
        return {**node, "children": _tag_children(node.get("children", {}))}
    if node_type == "field":
        return node
    raise SchemaError(f"Map entry '{key}' has unknown type '{node_type}'.")


def _tag_children(children: Any) -> Dict[str, Any]:
    if not isinstance(children, dict):
        raise SchemaError(f"Map children must be an object, got {type(children).__name__}")
    return {key: _tag_node(key, value) for key, value in children.items()}


def compile_map(raw: Any) -> MapObject:
    """
    Builds a map tree from a plain nested dict.

    Values may be FieldMap/LoopMap/MapObject instances, dicts tagged with
    "type" ("field", "loop", "object"), or untagged dicts meaning a nested object.
    """
    if isinstance(raw, MapObject):
        return raw
    if isinstance(raw, (FieldMap, LoopMap)):
        raise SchemaError("The root of a map must be an object, not a single FieldMap or LoopMap.")
    try:
        return MapObject.model_validate(_tag_node("<root>", raw))
    except ValidationError as e:
        raise SchemaError(f"Invalid map declaration: {e}") from e


LoopMap.model_rebuild()
MapObject.model_rebuild()
