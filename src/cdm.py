# Canonical Data Model (CDM) for a flat, delimiter-based EDI document.
# A document is an ordered list of segments, each segment an ordered list of fields.
# Models are frozen: ingest builds a complete document once and nothing mutates it.
import logging
import re
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_serializer

from edi_errors import SchemaError

logger = logging.getLogger(__name__)

_STRIP_CHARS = re.compile(r"[\n\t\r~]")


def trim_element(value: str) -> str:
    """Strips surrounding whitespace, then removes any newline, tab, carriage return or '~'."""
    return _STRIP_CHARS.sub("", value.strip())


class CdmField(BaseModel):
    """A single delimited value within a segment."""
    model_config = ConfigDict(frozen=True)

    element: str

    def trimmed(self) -> "CdmField":
        return CdmField(element=trim_element(self.element))

    def get_length(self) -> int:
        return len(self.element)

    @model_serializer
    def serialize_element(self) -> str:
        return self.element

    def __str__(self) -> str:
        return self.element


class CdmSegment(BaseModel):
    """Represents a single EDI segment. Field indexes are zero-based."""
    model_config = ConfigDict(frozen=True)

    name: str
    fields: Tuple[CdmField, ...] = Field(default_factory=tuple)
    line_number: int = 0

    def get_field(self, index: Optional[int]) -> Optional[CdmField]:
        if index is None or index < 0 or index >= len(self.fields):
            return None
        return self.fields[index]

    def get_element(self, index: Optional[int]) -> Optional[str]:
        """Retrieves the value of a field by its position (0-based index)."""
        field = self.get_field(index)
        return field.element if field is not None else None

    def field_values(self) -> List[str]:
        return [field.element for field in self.fields]

    @classmethod
    def from_line(cls, line: str, element_delimiter: str = "*", line_number: int = 0) -> "CdmSegment":
        tokens = line.split(element_delimiter)
        return cls(
            name=trim_element(tokens[0]),
            fields=tuple(CdmField(element=token).trimmed() for token in tokens[1:]),
            line_number=line_number,
        )


class CdmDocument(BaseModel):
    """An ordered sequence of segments in source order."""
    model_config = ConfigDict(frozen=True)

    segments: Tuple[CdmSegment, ...] = Field(default_factory=tuple)

    @classmethod
    def from_edi(cls, edi_string: str, element_delimiter: str = "*") -> "CdmDocument":
        if len(element_delimiter) != 1:
            raise SchemaError(f"Element delimiter must be a single character, got {element_delimiter!r}")

        segments = tuple(
            CdmSegment.from_line(line, element_delimiter, line_number=i + 1)
            for i, line in enumerate(edi_string.split("\n"))
        )
        logger.debug(f"Ingested {len(segments)} segments using element delimiter '{element_delimiter}'.")
        return cls(segments=segments)

    def get_segments(self, name: Optional[str] = None) -> List[CdmSegment]:
        if name is None:
            return list(self.segments)
        return [segment for segment in self.segments if segment.name == name]

    def find_first(self, name: str) -> Optional[CdmSegment]:
        return next((segment for segment in self.segments if segment.name == name), None)

    def list_segment_identifiers(self) -> List[str]:
        return [segment.name for segment in self.segments]

    def __len__(self) -> int:
        return len(self.segments)
