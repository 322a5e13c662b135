"""Exception types raised by the digest pipeline."""


class SecDigestError(Exception):
    """Base class for all secdigest errors."""


class FeedParseError(SecDigestError):
    """Raised when a document is not a usable RSS or Atom feed."""


class SourceResolutionError(SecDigestError):
    """Raised when a feed directory cannot be loaded."""
