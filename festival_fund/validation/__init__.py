"""Input validation package."""

from festival_fund.validation.validator import (
    MAX_DESCRIPTION_LENGTH,
    ContributionValidator,
    ValidationError,
)

__all__ = ["MAX_DESCRIPTION_LENGTH", "ContributionValidator", "ValidationError"]
