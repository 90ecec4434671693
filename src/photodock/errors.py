"""Exception types raised by the ingestion pipeline."""


class PhotodockError(Exception):
    """Base class for all photodock errors."""


class NotFoundError(PhotodockError):
    """A catalog entity referenced by the caller does not exist."""


class ScanError(PhotodockError):
    """The root directory of a scan request could not be read."""


class DerivativeError(PhotodockError):
    """A thumbnail or placeholder could not be generated or written."""
