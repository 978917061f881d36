# Transaction facade: owns one document and its loops, and sequences
# ingest -> loop extraction -> mapping.
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from cdm import CdmDocument, CdmSegment
from edi_errors import SchemaError, StructuralError
from field_map import MapObject
from loop_extractor import LoopPosition, LoopSpec, infer_loop_pattern, run_loop
from mapping_config import MappingConfig
from mapping_engine import MappingEngine

logger = logging.getLogger(__name__)


class Transaction:
    def __init__(self, document: CdmDocument, loops: Optional[Iterable[LoopSpec]] = None):
        self.document = document
        self._loops: Dict[LoopPosition, LoopSpec] = {}
        for loop in loops or []:
            self.add_loop(loop)
        logger.debug(f"Transaction initialized with {len(document)} segments and {len(self._loops)} loops.")

    @classmethod
    def from_edi(
        cls,
        edi_string: str,
        loops: Optional[Iterable[LoopSpec]] = None,
        element_delimiter: str = "*",
    ) -> "Transaction":
        return cls(CdmDocument.from_edi(edi_string, element_delimiter), loops)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "segments": [segment.model_dump(mode="json", exclude={"line_number"}) for segment in self.document.segments],
            "loops": [loop.to_dict() for loop in self._loops.values()],
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def get_transaction_type(self) -> str:
        """Returns ST01. This is the only mandatory structure in a document."""
        st_segment = self.document.find_first("ST")
        if st_segment is None:
            raise StructuralError("No ST segment found")
        st01 = st_segment.get_element(0)
        if st01 is None:
            raise StructuralError(f"ST segment on line {st_segment.line_number} has no ST01 field")
        logger.debug(f"Transaction type: {st01}")
        return st01

    def require_transaction_type(self, expected: str) -> str:
        transaction_type = self.get_transaction_type()
        if transaction_type != expected:
            raise StructuralError(f"Expected transaction type '{expected}', found '{transaction_type}'")
        return transaction_type

    def get_segments(self) -> List[CdmSegment]:
        return self.document.get_segments()

    def list_segment_identifiers(self) -> List[str]:
        return self.document.list_segment_identifiers()

    def get_loops(self) -> List[LoopSpec]:
        return list(self._loops.values())

    def get_loop(self, position: LoopPosition) -> Optional[LoopSpec]:
        return self._loops.get(position)

    def add_loop(self, loop: LoopSpec) -> LoopSpec:
        """Registers a loop. A loop without a position gets the next free integer position."""
        if loop.position is None:
            next_position = len(self._loops)
            while next_position in self._loops:
                next_position += 1
            loop = loop.model_copy(update={"position": next_position})
        elif loop.position in self._loops:
            raise SchemaError(f"A loop is already declared at position {loop.position!r}")
        self._loops[loop.position] = loop
        return loop

    def remove_loop(self, position: LoopPosition) -> Optional[LoopSpec]:
        return self._loops.pop(position, None)

    def run_loops(self) -> List[LoopSpec]:
        """Extracts every loop against the full document. Safe to call repeatedly."""
        segments = self.document.segments
        self._loops = {position: run_loop(loop, segments) for position, loop in self._loops.items()}
        for position, loop in self._loops.items():
            logger.debug(f"Loop {position!r} {loop.segment_identifiers}: {len(loop.contents)} tuples")
        return self.get_loops()

    def infer_loops(self) -> Optional[LoopSpec]:
        """Declares and runs a loop built from the segment names that repeat, if any."""
        pattern = infer_loop_pattern(self.document.segments)
        if pattern is None:
            logger.info("No repeating segments found. No loop inferred.")
            return None
        loop = self.add_loop(LoopSpec(segment_identifiers=pattern))
        self.run_loops()
        return self._loops[loop.position]

    def map_segments(
        self,
        map_logic: Union[MapObject, Dict[str, Any]],
        segments: Optional[List[CdmSegment]] = None,
    ) -> Dict[str, Any]:
        scope = self.document.segments if segments is None else segments
        return MappingEngine(self._loops).map_segments(map_logic, scope)


def prepare_transaction(
    edi_string: str,
    config: MappingConfig,
    element_delimiter: Optional[str] = None,
) -> Transaction:
    """
    Ingests a document and runs the configured loops.

    ST is only checked when the config names a required transaction type.
    """
    transaction = Transaction.from_edi(edi_string, config.loops, element_delimiter or config.element_delimiter)

    if config.require_transaction_type is not None:
        transaction.require_transaction_type(config.require_transaction_type)

    transaction.run_loops()
    return transaction


def convert(edi_string: str, config: MappingConfig, element_delimiter: Optional[str] = None) -> Dict[str, Any]:
    """Ingests a document, runs the configured loops and maps it in one step."""
    transaction = prepare_transaction(edi_string, config, element_delimiter)
    result = transaction.map_segments(config.map)
    logger.info(f"Converted {config.transaction_name} document: {len(transaction.document)} segments, "
                f"{len(transaction.get_loops())} loops, {len(result)} top-level keys.")
    return result
