"""Error taxonomy shared by the service layer."""


class RewardsError(Exception):
    """Base class for failures surfaced to API callers."""

    code = "rewards_error"
    default_status = 400

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code or self.default_status


class NotFound(RewardsError):
    """Referenced user, reward or redemption does not exist, or reward inactive."""

    code = "not_found"
    default_status = 404


class InsufficientBalance(RewardsError):
    code = "insufficient_balance"
    default_status = 400


class OutOfStock(RewardsError):
    code = "out_of_stock"
    default_status = 409


class InvalidTransition(RewardsError):
    code = "invalid_transition"
    default_status = 409


class Forbidden(RewardsError):
    """Actor's role does not permit the requested change."""

    code = "forbidden"
    default_status = 403


class StorageUnavailable(RewardsError):
    """Transient storage failure; the only error callers may retry."""

    code = "storage_unavailable"
    default_status = 503


class InvalidAward(RewardsError):
    """Points award with a missing or non-positive amount, or a debit reason."""

    code = "invalid_award"
    default_status = 400
