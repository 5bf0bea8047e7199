"""
Pricing Service - resolves the effective discount for a client and quotes plan prices

Discount precedence, first match wins:
    1. active rule scoped to (trainer, client)
    2. active trainer-wide rule (no client)
    3. the plan's default discount
"""

import logging
from typing import Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import MONTHS_PER_YEAR
from crud.plan import PlanRepository
from crud.pricing_rule import PricingRuleRepository
from database_models import PricingRule, TrainerPlan
from models.pricing import DiscountSource, FinalPrice, PriceQuote
from services.errors import InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)

MIN_DISCOUNT = 0.0
MAX_DISCOUNT = 100.0


def validate_discount(value: float, field: str = "discount_percentage") -> float:
    """Reject discount percentages outside [0, 100] at the write boundary."""
    if value is None or isinstance(value, bool):
        raise InvalidArgumentError(f"{field} must be a number between 0 and 100")
    value = float(value)
    if not MIN_DISCOUNT <= value <= MAX_DISCOUNT:
        raise InvalidArgumentError(f"{field} must be between 0 and 100, got {value}")
    return value


def validate_billing_months(billing_months: int) -> int:
    if isinstance(billing_months, bool) or not isinstance(billing_months, int):
        raise InvalidArgumentError("billing_months must be an integer")
    if billing_months < 1:
        raise InvalidArgumentError(f"billing_months must be at least 1, got {billing_months}")
    return billing_months


def _clamp_discount(value: Optional[float]) -> float:
    if value is None:
        return MIN_DISCOUNT
    clamped = min(max(float(value), MIN_DISCOUNT), MAX_DISCOUNT)
    if clamped != value:
        logger.warning(f"Stored discount {value} outside [0, 100], clamped to {clamped}")
    return clamped


def resolve_discount(
    plan: TrainerPlan,
    client_rule: Optional[PricingRule] = None,
    global_rule: Optional[PricingRule] = None,
) -> Tuple[float, DiscountSource, Optional[int]]:
    """
    Pick the discount that applies to a client.

    Args:
        plan: Plan being priced, supplies the fallback discount
        client_rule: Rule scoped to this trainer and client, if any
        global_rule: Trainer-wide rule, if any

    Returns:
        (discount percentage, where it came from, id of the rule applied or None)
    """
    if client_rule is not None and client_rule.is_active:
        return _clamp_discount(client_rule.discount_percentage), DiscountSource.client, client_rule.id
    if global_rule is not None and global_rule.is_active:
        return _clamp_discount(global_rule.discount_percentage), DiscountSource.global_rule, global_rule.id
    return _clamp_discount(plan.discount), DiscountSource.plan, None


def compute_price_quote(
    plan: Optional[TrainerPlan],
    billing_months: int,
    client_rule: Optional[PricingRule] = None,
    global_rule: Optional[PricingRule] = None,
) -> PriceQuote:
    """
    Quote a plan for a billing duration. Pure: reads the given records, writes nothing.

    Raises:
        NotFoundError: plan is None
        InvalidArgumentError: billing_months is not an integer >= 1
    """
    if plan is None:
        raise NotFoundError("Plan not found")
    billing_months = validate_billing_months(billing_months)

    discount, source, rule_id = resolve_discount(plan, client_rule, global_rule)

    monthly_price = plan.monthly_price
    discounted_monthly_price = monthly_price - (monthly_price * discount) / 100

    return PriceQuote(
        plan_id=plan.id,
        original_monthly_price=monthly_price,
        discount=discount,
        discount_source=source,
        pricing_rule_id=rule_id,
        discounted_monthly_price=discounted_monthly_price,
        total_price=discounted_monthly_price * billing_months,
        yearly_price=discounted_monthly_price * MONTHS_PER_YEAR,
        billing_months=billing_months,
        currency=plan.currency,
        sessions_per_month=plan.sessions_per_month,
        total_sessions=plan.sessions_per_month * billing_months,
    )


class PricingService:
    """
    Loads plans and pricing rules and hands them to the pure resolver.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the pricing service.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db
        self.plan_repo = PlanRepository(db)
        self.rule_repo = PricingRuleRepository(db)

    async def get_candidate_rules(
        self, trainer_id: str, client_id: Optional[str]
    ) -> Tuple[Optional[PricingRule], Optional[PricingRule]]:
        """Fetch (client rule, global rule) for a trainer/client pair."""
        client_rule = None
        if client_id:
            client_rule = await self.rule_repo.get_active_client_rule(trainer_id, client_id)
        global_rule = None
        if client_rule is None:
            global_rule = await self.rule_repo.get_active_global_rule(trainer_id)
        return client_rule, global_rule

    async def resolve_price(
        self, plan_id: int, trainer_id: str, client_id: str, billing_months: int
    ) -> PriceQuote:
        """
        Quote a plan for a client.

        Args:
            plan_id: Plan to price
            trainer_id: Trainer whose rules apply
            client_id: Client the quote is for
            billing_months: Number of months billed up front (>= 1)

        Returns:
            PriceQuote for the plan

        Raises:
            NotFoundError: plan_id does not resolve
            InvalidArgumentError: billing_months < 1
        """
        validate_billing_months(billing_months)
        plan = await self.plan_repo.get_plan_by_id(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")

        client_rule, global_rule = await self.get_candidate_rules(trainer_id, client_id)
        quote = compute_price_quote(plan, billing_months, client_rule, global_rule)
        logger.debug(
            f"Quoted plan {plan_id} for client {client_id}: {quote.discount}% "
            f"({quote.discount_source.value}) x {billing_months} months = {quote.total_price} {quote.currency}"
        )
        return quote

    async def get_effective_rule(self, trainer_id: str, client_id: str) -> Optional[PricingRule]:
        """The rule that would apply to the client: client rule, else global rule, else None."""
        client_rule, global_rule = await self.get_candidate_rules(trainer_id, client_id)
        return client_rule or global_rule

    async def get_client_discount(self, trainer_id: str, client_id: str) -> float:
        """Effective rule discount for a client, 0 when no rule applies. Ignores plan defaults."""
        rule = await self.get_effective_rule(trainer_id, client_id)
        if rule is None:
            return MIN_DISCOUNT
        return _clamp_discount(rule.discount_percentage)

    async def calculate_final_price(self, trainer_id: str, client_id: str, original_amount: float) -> FinalPrice:
        """Apply the client's effective rule discount to an arbitrary amount."""
        if original_amount < 0:
            raise InvalidArgumentError("original_amount must not be negative")
        discount = await self.get_client_discount(trainer_id, client_id)
        discount_amount = (original_amount * discount) / 100
        return FinalPrice(
            original_amount=original_amount,
            discount=discount,
            discount_amount=discount_amount,
            final_amount=original_amount - discount_amount,
        )
