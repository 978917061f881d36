# Fixed-count loop extraction over a flat segment list.
import logging
from collections import Counter
from typing import Any, List, Optional, Sequence, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from cdm import CdmSegment
from edi_errors import SchemaError

logger = logging.getLogger(__name__)

LoopPosition = Union[int, str]
LoopTuple = Tuple[CdmSegment, ...]

ENVELOPE_SEGMENTS = frozenset({"ISA", "GS", "ST", "SE", "GE", "IEA"})


def _check_identifiers(identifiers: Any) -> List[str]:
    if not isinstance(identifiers, (list, tuple)):
        raise SchemaError(f"Loop segment identifiers must be a list, got {type(identifiers).__name__}")
    if not identifiers:
        raise SchemaError("Loop segment identifiers must not be empty.")
    for identifier in identifiers:
        if not isinstance(identifier, str) or not identifier:
            raise SchemaError(f"Invalid segment identifier: {identifier!r}")
    return list(identifiers)


class LoopSpec(BaseModel):
    """
    A declared repeating group of segments and, once extracted, its tuples.

    `contents` is None until the loop has been run. Running always replaces it
    with a fresh tuple sequence, never appends to it.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    position: Optional[LoopPosition] = None
    segment_identifiers: List[str] = Field(
        validation_alias=AliasChoices("segment_identifiers", "segmentIdentifiers", "pattern")
    )
    contents: Optional[Tuple[LoopTuple, ...]] = None

    # SchemaError is not a ValueError, so pydantic lets it propagate unwrapped.
    @field_validator("segment_identifiers", mode="before")
    @classmethod
    def validate_identifiers(cls, value: Any) -> List[str]:
        return _check_identifiers(value)

    @property
    def is_populated(self) -> bool:
        return bool(self.contents)

    def get_last_segment_identifier(self) -> str:
        return self.segment_identifiers[-1]

    def with_identifiers(self, identifiers: Sequence[str]) -> "LoopSpec":
        """Returns an unpopulated copy with the identifiers appended to the pattern."""
        return LoopSpec(position=self.position, segment_identifiers=[*self.segment_identifiers, *identifiers])

    def without_identifier(self, identifier: str) -> "LoopSpec":
        """Returns an unpopulated copy with every occurrence of the identifier removed."""
        remaining = [s for s in self.segment_identifiers if s != identifier]
        return LoopSpec(position=self.position, segment_identifiers=remaining)

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "segmentIdentifiers": list(self.segment_identifiers),
            "contents": [
                [segment.model_dump(mode="json", exclude={"line_number"}) for segment in loop_tuple]
                for loop_tuple in (self.contents or ())
            ],
        }


def extract_loop(segments: Sequence[CdmSegment], pattern: Sequence[str]) -> Tuple[LoopTuple, ...]:
    """
    Groups segments into tuples of len(pattern) members.

    The scan starts at the first segment named pattern[0]. Every segment whose name
    is in the pattern joins the open group, and the group closes when it reaches
    len(pattern) members. Groups are never closed by seeing pattern[0] again, and a
    trailing partial group is dropped.
    """
    pattern = _check_identifiers(pattern)
    group_size = len(pattern)
    members = set(pattern)

    start = next((i for i, segment in enumerate(segments) if segment.name == pattern[0]), None)
    if start is None:
        logger.debug(f"Loop start '{pattern[0]}' not found. Extracted 0 tuples.")
        return ()

    tuples: List[LoopTuple] = []
    pending: List[CdmSegment] = []
    for segment in segments[start:]:
        if segment.name not in members:
            continue
        pending.append(segment)
        if len(pending) == group_size:
            tuples.append(tuple(pending))
            pending = []

    if pending:
        logger.debug(
            f"Discarding trailing partial group of {len(pending)}/{group_size} segments "
            f"({', '.join(s.name for s in pending)})."
        )
    logger.debug(f"Loop {pattern} extracted {len(tuples)} tuples starting at segment index {start}.")
    return tuple(tuples)


def run_loop(loop: LoopSpec, segments: Sequence[CdmSegment]) -> LoopSpec:
    """Returns a copy of the loop populated from the given segments."""
    contents = extract_loop(segments, loop.segment_identifiers)
    return loop.model_copy(update={"contents": contents})


def infer_loop_pattern(segments: Sequence[CdmSegment]) -> Optional[List[str]]:
    """
    Guesses a loop pattern from the names that repeat in the document.

    Envelope segments and empty names are ignored. Returns None when nothing repeats.
    Repeats of a name within one iteration cannot be detected, so each name appears once.
    """
    counts = Counter(s.name for s in segments if s.name and s.name not in ENVELOPE_SEGMENTS)
    pattern: List[str] = []
    for segment in segments:
        if counts.get(segment.name, 0) > 1 and segment.name not in pattern:
            pattern.append(segment.name)
    logger.debug(f"Inferred loop pattern: {pattern or 'none'}")
    return pattern or None
