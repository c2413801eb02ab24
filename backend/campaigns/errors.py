"""
Rejected campaign operations.

Every error carries a stable ``kind`` string that the HTTP layer returns as
``error_kind`` next to the human-readable detail.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from campaigns.validation import BracketValidationResult


class CampaignRuleError(Exception):
    kind = "campaign_rule_violation"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CampaignNotFound(CampaignRuleError):
    kind = "campaign_not_found"


class InvalidTransition(CampaignRuleError):
    """An operation that the campaign's current status does not allow."""

    kind = "invalid_transition"

    def __init__(self, current: str, attempted: str, message: str | None = None):
        self.current = current
        self.attempted = attempted
        super().__init__(message or f"Cannot {attempted} while campaign is '{current}'")


class EmptyBracketSetOnPublish(CampaignRuleError):
    kind = "empty_bracket_set_on_publish"

    def __init__(self, message: str = "Campaign must have at least one discount bracket to be published"):
        super().__init__(message)


class InvalidBracketSet(CampaignRuleError):
    kind = "invalid_bracket_set"

    def __init__(self, result: "BracketValidationResult"):
        self.result = result
        super().__init__(result.message or "Invalid bracket set")


class CampaignScheduleError(CampaignRuleError):
    kind = "invalid_schedule"


class MinimumNotMet(CampaignRuleError):
    kind = "minimum_not_met"

    def __init__(self, committed_quantity: int, minimum_required: int):
        self.committed_quantity = committed_quantity
        self.minimum_required = minimum_required
        super().__init__(
            f"Cannot lock campaign: minimum pledges not met ({committed_quantity} < {minimum_required})"
        )


class InvalidPledgeState(CampaignRuleError):
    kind = "invalid_pledge_state"


class PledgeNotFound(CampaignRuleError):
    kind = "pledge_not_found"


class PledgeAccessDenied(CampaignRuleError):
    kind = "pledge_access_denied"

    def __init__(self, message: str = "You do not have permission to modify this pledge"):
        super().__init__(message)


class PledgeAlreadyExists(CampaignRuleError):
    kind = "pledge_already_exists"
