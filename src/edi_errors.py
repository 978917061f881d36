# Exception types raised by the mapper. Data-time misses are never raised;
# they are logged and the affected key is left out of the result.


class EdiMapperError(Exception):
    """Base class for all mapper errors."""
    pass


class StructuralError(EdiMapperError):
    """Raised when a mandatory document structure (the ST segment) is missing."""
    pass


class SchemaError(EdiMapperError):
    """Raised for malformed loop or map declarations. Signals an integration bug."""
    pass
