"""
Campaign tier-pricing and lifecycle engine.

Pure, synchronous rules shared by every API and worker call site:
  - brackets    Bracket value type, sorting, exact decimal prices
  - validation  BracketSet validator (inverted ranges, overlaps)
  - tiers       Tier resolver (current / next bracket, units to next)
  - progress    Progress calculator (achieved / current / locked, fill %)
  - lifecycle   Campaign status state machine and operation gates
  - pledges     Pledge aggregator with an explicit status policy
  - summary     CampaignPledgeSummary view

``campaigns.service`` is the only module that touches the database.

Usage:
    from campaigns.tiers import resolve_tier
    from campaigns.validation import validate_brackets

    result = validate_brackets(brackets)
    if result.valid:
        tier = resolve_tier(total_quantity, brackets)
"""
