"""Data models for the DSR calculator.

This module defines the enums and dataclasses shared by the engine and its
collaborators: loan categories and repayment methods, the terms of a new or
existing loan, the market and customer settings entered on the form, and the
values the engine returns. Loan terms are frozen dataclasses so a calculation
can never alter the snapshot it was given.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union
from uuid import uuid4

from .config import DEFAULT_ANNUAL_INCOME, DEFAULT_STRESS_RATE
from .utils import to_decimal, whole_months


class _LabelledEnum(str, Enum):
    """String enum whose members also carry the Korean label used on forms."""

    def __new__(cls, value: str, label: str):
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.label = label
        return obj

    @classmethod
    def parse(cls, value):
        """Look up a member by value, name or Korean label."""
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text in (member.value, member.label) or text.upper() == member.name:
                return member
        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown {cls.__name__} {value!r}; expected one of: {choices}")


class LoanType(_LabelledEnum):
    MORTGAGE = ("mortgage", "주택담보대출")
    STUDIO = ("studio", "오피스텔담보대출")
    CREDIT = ("credit", "신용대출")
    NON_HOUSING = ("non-housing", "비주택담보대출")
    OTHER = ("other", "기타")


class RepaymentMethod(_LabelledEnum):
    EQUAL_INSTALLMENT = ("equal-installment", "원리금균등분할")
    EQUAL_PRINCIPAL = ("equal-principal", "원금균등분할")
    LUMP_SUM = ("lump-sum", "만기일시상환")
    MIXED = ("mixed", "혼합상환")


class Status(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class LoanTerms:
    """Financial parameters of a single loan.

    Attributes
    ----------
    principal: Decimal
        Loan amount (new loan) or outstanding balance (existing loan) in won.
    interest_rate: Decimal
        Nominal annual interest rate in percent.
    term_months: int
        Declared term (new loan) or remaining months (existing loan).
    loan_type: LoanType
    repayment_method: RepaymentMethod
    """

    principal: Decimal
    interest_rate: Decimal
    term_months: int
    loan_type: LoanType
    repayment_method: RepaymentMethod

    def __post_init__(self) -> None:
        object.__setattr__(self, "principal", to_decimal(self.principal))
        object.__setattr__(self, "interest_rate", to_decimal(self.interest_rate))
        object.__setattr__(self, "term_months", whole_months(self.term_months))
        object.__setattr__(self, "loan_type", LoanType.parse(self.loan_type))
        object.__setattr__(self, "repayment_method", RepaymentMethod.parse(self.repayment_method))


@dataclass(frozen=True)
class NewLoan(LoanTerms):
    """The prospective loan being assessed; the stress rate applies to it."""


@dataclass(frozen=True)
class ExistingLoan(LoanTerms):
    """A loan the applicant already carries.

    ``id`` only identifies the loan in lists and reports; the engine ignores it.
    """

    id: str = field(default_factory=lambda: uuid4().hex[:8])

    @property
    def balance(self) -> Decimal:
        return self.principal

    @property
    def remaining_months(self) -> int:
        return self.term_months


@dataclass
class MarketSettings:
    """Market-wide inputs; ``stress_rate`` is in percentage points."""

    stress_rate: Decimal = DEFAULT_STRESS_RATE

    def __post_init__(self) -> None:
        self.stress_rate = to_decimal(self.stress_rate)


@dataclass
class CustomerInfo:
    borrower_name: str = ""
    annual_income: Decimal = DEFAULT_ANNUAL_INCOME

    def __post_init__(self) -> None:
        self.borrower_name = str(self.borrower_name or "").strip()
        self.annual_income = to_decimal(self.annual_income)


@dataclass(frozen=True)
class AnnualRepayment:
    """First-year principal and interest attributable to one loan."""

    annual_principal: Decimal
    annual_interest: Decimal

    @property
    def total(self) -> Decimal:
        return self.annual_principal + self.annual_interest


# Amortization strategies. ``resolve_strategy`` in the engine maps every
# (LoanType, RepaymentMethod) pair onto exactly one of these.


@dataclass(frozen=True)
class Annuity:
    """Equal installments over the declared term."""


@dataclass(frozen=True)
class EqualPrincipal:
    """Equal principal portions over the declared term."""


@dataclass(frozen=True)
class ImputedMaturity:
    """Interest-only, with principal spread over a regulatory maturity."""

    years: int


@dataclass(frozen=True)
class InterestOnly:
    """No principal until maturity; only interest counts."""


AmortizationStrategy = Union[Annuity, EqualPrincipal, ImputedMaturity, InterestOnly]


@dataclass(frozen=True)
class LoanRepayment:
    """Per-loan line of a calculation result."""

    loan_id: Optional[str]
    is_new: bool
    loan_type: LoanType
    repayment_method: RepaymentMethod
    effective_rate: Decimal
    basis: str
    annual_principal: int
    annual_interest: int

    @property
    def annual_repayment(self) -> int:
        return self.annual_principal + self.annual_interest

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loan_id": self.loan_id,
            "is_new": self.is_new,
            "loan_type": self.loan_type.value,
            "repayment_method": self.repayment_method.value,
            "effective_rate": float(self.effective_rate),
            "basis": self.basis,
            "annual_principal": self.annual_principal,
            "annual_interest": self.annual_interest,
            "annual_repayment": self.annual_repayment,
        }


@dataclass(frozen=True)
class CalculationResult:
    """Aggregate DSR/DTI figures for one input snapshot.

    Ratios are percentages rounded to two decimals; amounts are whole won.
    ``new_loan_share`` and ``existing_loans_share`` split the total annual
    repayment between the new loan and the existing ones.
    """

    dsr: Decimal
    dti: Decimal
    total_annual_repayment: int
    total_annual_interest: int
    total_annual_principal: int
    new_loan_annual_repayment: int
    existing_loans_annual_repayment: int
    status: Status
    message: str
    new_loan_share: Decimal = Decimal("0")
    existing_loans_share: Decimal = Decimal("0")
    loans: Tuple[LoanRepayment, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dsr": float(self.dsr),
            "dti": float(self.dti),
            "total_annual_repayment": self.total_annual_repayment,
            "total_annual_interest": self.total_annual_interest,
            "total_annual_principal": self.total_annual_principal,
            "new_loan_annual_repayment": self.new_loan_annual_repayment,
            "existing_loans_annual_repayment": self.existing_loans_annual_repayment,
            "status": self.status.value,
            "message": self.message,
            "new_loan_share": float(self.new_loan_share),
            "existing_loans_share": float(self.existing_loans_share),
            "loans": [loan.to_dict() for loan in self.loans],
        }
