# FILE: tests/mapping_engine/test_field_map.py
import pytest

from edi_errors import SchemaError
from field_map import FieldMap, LoopMap, MapObject, compile_map

pytestmark = pytest.mark.unit


def test_field_map_accepts_camel_case_declaration():
    field_map = FieldMap.model_validate(
        {"segmentIdentifier": "REF", "identifierValue": "0F", "identifierPosition": 0, "valuePosition": 1}
    )
    assert field_map.segment_identifier == "REF"
    assert field_map.identifier_value == "0F"
    assert field_map.identifier_position == 0
    assert field_map.value_position == 1
    assert field_map.is_qualified


def test_field_map_without_qualifier_is_unconditional():
    field_map = FieldMap(segment_identifier="INS", value_position=0)
    assert field_map.identifier_value is None
    assert not field_map.is_qualified


def test_identifier_value_without_position_is_schema_error():
    with pytest.raises(SchemaError):
        FieldMap(segment_identifier="REF", identifier_value="0F", value_position=1)


def test_negative_positions_are_rejected():
    with pytest.raises(ValueError):
        FieldMap(segment_identifier="INS", value_position=-1)


def test_compile_map_tags_plain_dicts():
    compiled = compile_map({
        "header": {"type": {"type": "field", "segmentIdentifier": "ST", "valuePosition": 0}},
        "members": {"type": "loop", "position": 0, "values": {
            "indicator": FieldMap(segment_identifier="INS", value_position=0),
            "name": {"last": {"type": "field", "segmentIdentifier": "NM1", "valuePosition": 2}},
        }},
    })

    assert isinstance(compiled, MapObject)
    header = compiled.children["header"]
    assert isinstance(header, MapObject)
    assert isinstance(header.children["type"], FieldMap)
    members = compiled.children["members"]
    assert isinstance(members, LoopMap)
    assert isinstance(members.values.children["indicator"], FieldMap)
    assert isinstance(members.values.children["name"], MapObject)


def test_compile_map_returns_existing_tree_unchanged():
    tree = compile_map({"a": FieldMap(segment_identifier="ST", value_position=0)})
    assert compile_map(tree) is tree


@pytest.mark.parametrize("raw", [
    {"a": "ST01"},
    {"a": {"type": "segment", "segmentIdentifier": "ST"}},
    {"a": {"type": "loop", "position": 0}},
    {"a": {"type": "field", "segmentIdentifier": "ST"}},
    {"a": [FieldMap(segment_identifier="ST", value_position=0)]},
    ["not", "a", "map"],
])
def test_compile_map_rejects_malformed_declarations(raw):
    with pytest.raises(SchemaError):
        compile_map(raw)


def test_compile_map_rejects_leaf_root():
    with pytest.raises(SchemaError):
        compile_map(FieldMap(segment_identifier="ST", value_position=0))
