"""Client-facing errors raised while validating a request, before any fetch."""


class InvalidRequestError(ValueError):
    """Request parameters were rejected (mapped to 400)."""


class NotFoundError(LookupError):
    """The requested item does not exist upstream (mapped to 404)."""
