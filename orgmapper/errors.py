"""Exception types raised by the orgmapper pipeline."""


class OrgMapperError(Exception):
    """Base class for all orgmapper errors."""


class ParseError(OrgMapperError, ValueError):
    """The uploaded file is not a usable CSV (empty, headerless, wrong type)."""


class MappingSuggestionError(OrgMapperError, RuntimeError):
    """The column-mapping suggestion call failed or returned unusable data."""


class ProcessingError(OrgMapperError, RuntimeError):
    """Unexpected failure while projecting or aggregating employee data."""
