class LineageError(Exception):
    """Base class for lineage analysis errors."""


class FetchFailure(LineageError):
    """The ancestry data could not be fetched or was malformed."""


class MalformedPedigreeError(FetchFailure):
    """The fetched ancestry contains loops, conflicting parents or missing ids."""


class InvalidDepthError(LineageError, ValueError):
    """The requested number of generations is outside the supported range."""
