"""
Subscription plans and the user ceilings derived from them.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from app.core.exceptions import InvalidDateError, InvalidSubscriptionPlanError
from app.core.timeutils import utc_now

PLAN_MAX_USERS = {
    "Basic": 50,
    "Premium": 100,
    "Enterprise": 500,
}

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_SUBSCRIPTION_LENGTH = timedelta(days=365)


@dataclass(frozen=True)
class SubscriptionTerms:
    plan: str
    max_users: int
    start: datetime
    end: datetime


def max_users_for_plan(plan: str) -> int:
    """
    User ceiling of a plan.

    Raises:
        InvalidSubscriptionPlanError: plan is not in the table
    """
    try:
        return PLAN_MAX_USERS[plan]
    except KeyError:
        raise InvalidSubscriptionPlanError(
            f"Invalid subscription plan: {plan!r}",
            details={"allowed": sorted(PLAN_MAX_USERS)},
        )


def parse_date(value: str, field: str) -> datetime:
    """Parse YYYY-MM-DD into an aware UTC midnight."""
    try:
        parsed = datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        raise InvalidDateError(
            f"Invalid {field}: {value!r}, expected YYYY-MM-DD",
            details={"field": field},
        )
    return parsed.replace(tzinfo=timezone.utc)


def resolve_subscription(
    plan: str,
    max_users: int | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
) -> SubscriptionTerms:
    """
    Work out the terms of a subscription change.

    max_users comes from the plan table unless an explicit positive value
    is given. Start defaults to now and end to one year after start; an
end that does not fall after the start is rejected.
    """
    plan_ceiling = max_users_for_plan(plan)
    start = parse_date(start_date, "start_date") if start_date else utc_now()
    end = parse_date(end_date, "end_date") if end_date else start + DEFAULT_SUBSCRIPTION_LENGTH
    if end <= start:
        raise InvalidDateError(
            "end_date must be after start_date",
            details={"field": "end_date"},
        )

    return SubscriptionTerms(
        plan=plan,
        max_users=max_users if max_users and max_users > 0 else plan_ceiling,
        start=start,
        end=end,
    )
