class StorefrontError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(StorefrontError):
    status_code = 404


class DuplicateError(StorefrontError):
    status_code = 409


class ReferentialIntegrityError(StorefrontError):
    """Deleting the row would orphan rows that reference it."""

    status_code = 409


class InvalidTransitionError(StorefrontError):
    status_code = 409


class StoreUnavailableError(StorefrontError):
    status_code = 503


class InvalidEventError(StorefrontError):
    """A verified payment event lacks data needed to act on it."""

    status_code = 400
