"""Error taxonomy for the referral pipeline."""


class ReferralScraperError(RuntimeError):
    """Base class for pipeline errors."""


class ExtractionError(ReferralScraperError):
    """Raised when a post cannot be turned into an extracted record."""


class TransportFailure(ExtractionError):
    """Raised when a feed or model call fails at the network/HTTP level."""


class MalformedResponse(ExtractionError):
    """Raised when a feed page or model reply has an unexpected shape."""


class ValidationFailure(ReferralScraperError):
    """Raised when a record is missing brand, code/link or expiration."""


class DuplicateConflict(ReferralScraperError):
    """Raised when a record collides with an existing (brand, code, link)."""
