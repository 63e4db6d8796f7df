"""Category policy table: bounds, auto-approval limits, default rates and risk weights

The engine treats the table as read-only input. DEFAULT_POLICY is the built-in
table; infrastructure/policy_loader.py builds a PolicyTable from a JSON file.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional

from loan_underwriting.domain.models import CategoryBounds, LoanCategory


@dataclass(frozen=True)
class CategoryPolicy:
    min_amount: Decimal
    max_amount: Decimal
    min_term_months: int
    max_term_months: int
    default_rate: Decimal  # annual percent
    auto_approval_limit: Optional[Decimal] = None  # None: never auto-approvable

    @property
    def bounds(self) -> CategoryBounds:
        return CategoryBounds(
            min_amount=self.min_amount,
            max_amount=self.max_amount,
            min_term_months=self.min_term_months,
            max_term_months=self.max_term_months,
        )


@dataclass(frozen=True)
class RiskWeights:
    """
    Weights and penalty curve for the risk classifier.

    Each ratio component is 0 at ratio 0, reaches `knee_risk` at its knee and
    100 at its `*_full` ratio. Past the knee the slope is steeper, which is
    the penalty.
    """

    credit_score: Decimal = Decimal("0.35")
    debt_to_income: Decimal = Decimal("0.30")
    loan_to_value: Decimal = Decimal("0.20")
    amount_ratio: Decimal = Decimal("0.15")

    dti_knee: Decimal = Decimal("0.4")
    dti_full: Decimal = Decimal("1.0")
    ltv_knee: Decimal = Decimal("0.8")
    ltv_full: Decimal = Decimal("1.2")
    amount_ratio_knee: Decimal = Decimal("0.9")
    amount_ratio_full: Decimal = Decimal("1.0")
    knee_risk: Decimal = Decimal("40")

    min_credit_score: int = 300
    max_credit_score: int = 850


@dataclass(frozen=True)
class PolicyTable:
    categories: Mapping[LoanCategory, CategoryPolicy]
    weights: RiskWeights = RiskWeights()

    def for_category(self, category: LoanCategory) -> CategoryPolicy:
        return self.categories[category]


DEFAULT_POLICY = PolicyTable(
    categories={
        LoanCategory.PERSONAL: CategoryPolicy(
            min_amount=Decimal("100000"),
            max_amount=Decimal("10000000"),
            min_term_months=3,
            max_term_months=60,
            default_rate=Decimal("12.0"),
            auto_approval_limit=Decimal("1000000"),
        ),
        LoanCategory.BUSINESS: CategoryPolicy(
            min_amount=Decimal("1000000"),
            max_amount=Decimal("100000000"),
            min_term_months=12,
            max_term_months=120,
            default_rate=Decimal("14.0"),
        ),
        LoanCategory.MORTGAGE: CategoryPolicy(
            min_amount=Decimal("5000000"),
            max_amount=Decimal("500000000"),
            min_term_months=12,
            max_term_months=360,
            default_rate=Decimal("8.0"),
        ),
        LoanCategory.CAR: CategoryPolicy(
            min_amount=Decimal("2000000"),
            max_amount=Decimal("50000000"),
            min_term_months=12,
            max_term_months=84,
            default_rate=Decimal("10.0"),
            auto_approval_limit=Decimal("3000000"),
        ),
        LoanCategory.CONSUMER: CategoryPolicy(
            min_amount=Decimal("500000"),
            max_amount=Decimal("50000000"),
            min_term_months=6,
            max_term_months=60,
            default_rate=Decimal("16.0"),
            auto_approval_limit=Decimal("1000000"),
        ),
        LoanCategory.EDUCATION: CategoryPolicy(
            min_amount=Decimal("500000"),
            max_amount=Decimal("10000000"),
            min_term_months=12,
            max_term_months=120,
            default_rate=Decimal("6.0"),
            auto_approval_limit=Decimal("2000000"),
        ),
        LoanCategory.MEDICAL: CategoryPolicy(
            min_amount=Decimal("100000"),
            max_amount=Decimal("20000000"),
            min_term_months=3,
            max_term_months=36,
            default_rate=Decimal("9.0"),
            auto_approval_limit=Decimal("500000"),
        ),
    },
)
