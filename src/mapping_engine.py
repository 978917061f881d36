# Recursive resolution of a map tree against a segment scope.
import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from cdm import CdmSegment
from field_map import FieldMap, LoopMap, MapObject, compile_map
from loop_extractor import LoopPosition, LoopSpec

logger = logging.getLogger(__name__)


class MappingEngine:
    """
    Builds output objects from a map tree.

    Resolution is best effort: a missing segment, field, qualifier or loop leaves
    its key out of the result and is only reported at DEBUG level.
    """

    def __init__(self, loops: Optional[Mapping[LoopPosition, LoopSpec]] = None):
        self.loops: Dict[LoopPosition, LoopSpec] = dict(loops or {})

    def map_segments(
        self,
        map_logic: Union[MapObject, Dict[str, Any]],
        segments: Sequence[CdmSegment],
    ) -> Dict[str, Any]:
        root = compile_map(map_logic)
        return self._map_object(root, list(segments), depth=0)

    def _map_object(self, node: MapObject, scope: Sequence[CdmSegment], depth: int) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, child in node.children.items():
            if child.type == "field":
                value = self._resolve_field(key, child, scope)
                if value is not None:
                    result[key] = value
            elif child.type == "loop":
                items = self._resolve_loop(key, child, depth)
                if items is not None:
                    result[key] = items
            else:
                result[key] = self._map_object(child, scope, depth)
        return result

    def _select_segment(self, key: str, field_map: FieldMap, scope: Sequence[CdmSegment]) -> Optional[CdmSegment]:
        candidates = [segment for segment in scope if segment.name == field_map.segment_identifier]
        if not candidates:
            logger.debug(f"[{key}] Segment '{field_map.segment_identifier}' not found in scope of {len(scope)} segments.")
            return None

        if len(candidates) == 1 or not field_map.is_qualified:
            return candidates[0]

        qualified = [
            segment for segment in candidates
            if segment.get_element(field_map.identifier_position) == field_map.identifier_value
        ]
        if not qualified:
            logger.debug(
                f"[{key}] None of {len(candidates)} '{field_map.segment_identifier}' segments has "
                f"'{field_map.identifier_value}' at position {field_map.identifier_position}."
            )
            return None
        return qualified[0]

    def _resolve_field(self, key: str, field_map: FieldMap, scope: Sequence[CdmSegment]) -> Optional[str]:
        segment = self._select_segment(key, field_map, scope)
        if segment is None:
            return None

        if field_map.is_qualified:
            actual = segment.get_element(field_map.identifier_position)
            if actual != field_map.identifier_value:
                logger.debug(
                    f"[{key}] Invalid identifier value on '{segment.name}' (line {segment.line_number}). "
                    f"Expected: '{field_map.identifier_value}' Received: '{actual}'"
                )
                return None

        value = segment.get_element(field_map.value_position)
        if value is None:
            logger.debug(
                f"[{key}] Field {field_map.value_position} not found on '{segment.name}' "
                f"(line {segment.line_number}, {len(segment.fields)} fields)."
            )
        return value

    def _resolve_loop(self, key: str, loop_map: LoopMap, depth: int) -> Optional[list]:
        indent = "  " * depth
        loop = self.loops.get(loop_map.position)
        if loop is None:
            logger.debug(f"{indent}[{key}] No loop declared at position {loop_map.position!r}.")
            return None
        if not loop.is_populated:
            logger.debug(f"{indent}[{key}] Loop at position {loop_map.position!r} has no extracted tuples.")
            return None

        logger.debug(f"{indent}[{key}] Mapping {len(loop.contents)} tuples of loop {loop.segment_identifiers}.")
        return [self._map_object(loop_map.values, loop_tuple, depth + 1) for loop_tuple in loop.contents]
