"""Load the category policy table from a JSON file"""

import logging
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional

import pydantic
from pydantic import BaseModel, Field, model_validator

from loan_underwriting.domain.exceptions import ValidationError
from loan_underwriting.domain.models import LoanCategory
from loan_underwriting.domain.policy import DEFAULT_POLICY, CategoryPolicy, PolicyTable, RiskWeights

logger = logging.getLogger(__name__)


class CategoryPolicySchema(BaseModel):
    """One category's bounds, default rate and optional auto-approval limit"""

    min_amount: Decimal = Field(..., gt=0)
    max_amount: Decimal = Field(..., gt=0)
    min_term_months: int = Field(..., gt=0)
    max_term_months: int = Field(..., gt=0)
    default_rate: Decimal = Field(..., ge=0, description="Annual rate in percent")
    auto_approval_limit: Optional[Decimal] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_ranges(self) -> "CategoryPolicySchema":
        if self.min_amount > self.max_amount:
            raise ValueError(f"min_amount {self.min_amount} exceeds max_amount {self.max_amount}")
        if self.min_term_months > self.max_term_months:
            raise ValueError(
                f"min_term_months {self.min_term_months} exceeds max_term_months {self.max_term_months}"
            )
        return self


class RiskWeightsSchema(BaseModel):
    """Classifier weights and penalty curve; omitted fields keep the built-in values"""

    credit_score: Decimal = Field(RiskWeights.credit_score, ge=0)
    debt_to_income: Decimal = Field(RiskWeights.debt_to_income, ge=0)
    loan_to_value: Decimal = Field(RiskWeights.loan_to_value, ge=0)
    amount_ratio: Decimal = Field(RiskWeights.amount_ratio, ge=0)

    dti_knee: Decimal = Field(RiskWeights.dti_knee, gt=0)
    dti_full: Decimal = Field(RiskWeights.dti_full, gt=0)
    ltv_knee: Decimal = Field(RiskWeights.ltv_knee, gt=0)
    ltv_full: Decimal = Field(RiskWeights.ltv_full, gt=0)
    amount_ratio_knee: Decimal = Field(RiskWeights.amount_ratio_knee, gt=0)
    amount_ratio_full: Decimal = Field(RiskWeights.amount_ratio_full, gt=0)
    knee_risk: Decimal = Field(RiskWeights.knee_risk, gt=0, lt=100)

    min_credit_score: int = Field(RiskWeights.min_credit_score, ge=0)
    max_credit_score: int = Field(RiskWeights.max_credit_score, gt=0)

    @model_validator(mode="after")
    def check_curve(self) -> "RiskWeightsSchema":
        total = self.credit_score + self.debt_to_income + self.loan_to_value + self.amount_ratio
        if total <= 0:
            raise ValueError("at least one risk weight must be positive")
        for name in ("dti", "ltv", "amount_ratio"):
            knee = getattr(self, f"{name}_knee")
            full = getattr(self, f"{name}_full")
            if knee >= full:
                raise ValueError(f"{name}_knee {knee} must be below {name}_full {full}")
        if self.min_credit_score >= self.max_credit_score:
            raise ValueError("min_credit_score must be below max_credit_score")
        return self


class PolicyFileSchema(BaseModel):
    categories: Dict[LoanCategory, CategoryPolicySchema]
    weights: RiskWeightsSchema = Field(default_factory=RiskWeightsSchema)

    @model_validator(mode="after")
    def check_all_categories(self) -> "PolicyFileSchema":
        missing = [c.value for c in LoanCategory if c not in self.categories]
        if missing:
            raise ValueError(f"policy is missing categories: {', '.join(missing)}")
        return self


def to_policy_table(schema: PolicyFileSchema) -> PolicyTable:
    return PolicyTable(
        categories={
            category: CategoryPolicy(**entry.model_dump()) for category, entry in schema.categories.items()
        },
        weights=RiskWeights(**schema.weights.model_dump()),
    )


def load_policy(path) -> PolicyTable:
    """
    Read and validate a JSON policy file.

    Raises:
        ValidationError: When the file is unreadable or fails validation
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Cannot read policy file {path}: {e}", field="policy_file") from e

    try:
        schema = PolicyFileSchema.model_validate_json(raw)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid policy file {path}: {e}", field="policy_file") from e

    logger.info("Loaded category policy", extra={"policy_file": str(path)})
    return to_policy_table(schema)


def resolve_policy(policy_file: Optional[str]) -> PolicyTable:
    """Policy from the configured file, or the built-in table when none is set"""
    if not policy_file:
        return DEFAULT_POLICY
    return load_policy(policy_file)
