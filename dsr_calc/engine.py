"""Core calculation engine for the DSR calculator.

This module implements the regulatory repayment logic used to assess a loan
applicant: first-year amortization for equal-installment and equal-principal
loans, the imputed maturities that replace the declared term for higher-risk
loan types, and the aggregation of every loan into DSR and DTI ratios with a
three-tier status. Every function here is pure; the same inputs always give
the same ``CalculationResult``.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Tuple

from . import config
from .data_models import (
    AmortizationStrategy,
    AnnualRepayment,
    Annuity,
    CalculationResult,
    EqualPrincipal,
    ExistingLoan,
    ImputedMaturity,
    InterestOnly,
    LoanRepayment,
    LoanTerms,
    LoanType,
    NewLoan,
    RepaymentMethod,
    Status,
)
from .utils import Number, round_ratio, round_won, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

_AMORTIZING = {
    RepaymentMethod.EQUAL_INSTALLMENT: Annuity(),
    RepaymentMethod.EQUAL_PRINCIPAL: EqualPrincipal(),
}


def _monthly_rate(annual_rate_pct: Decimal) -> Decimal:
    return annual_rate_pct / HUNDRED / Decimal(12)


def _check_term(total_months: int) -> None:
    if total_months <= 0:
        raise ValueError("Term must be positive")


def annuity_repayment(principal: Number, annual_rate_pct: Number, total_months: int) -> AnnualRepayment:
    """Return the first-year split of an equal-installment (annuity) loan.

    The fixed monthly payment is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. The first ``min(12, n)`` months are then
    amortized one by one, because the interest portion shrinks as the balance
    falls. When the interest rate is zero, the payment simplifies to ``P / n``.
    """
    _check_term(total_months)
    principal = to_decimal(principal)
    rate_per_month = _monthly_rate(to_decimal(annual_rate_pct))
    months = min(config.MONTHS_PER_YEAR, total_months)

    if rate_per_month == 0:
        return AnnualRepayment(principal / Decimal(total_months) * months, ZERO)

    factor = (1 + rate_per_month) ** total_months
    monthly_payment = principal * rate_per_month * factor / (factor - 1)

    balance = principal
    total_principal = ZERO
    total_interest = ZERO
    for _ in range(months):
        interest_payment = balance * rate_per_month
        principal_payment = monthly_payment - interest_payment
        total_interest += interest_payment
        total_principal += principal_payment
        balance -= principal_payment
    return AnnualRepayment(total_principal, total_interest)


def equal_principal_repayment(principal: Number, annual_rate_pct: Number, total_months: int) -> AnnualRepayment:
    """Return the first-year split of an equal-principal loan.

    Each month repays ``P / n`` of principal plus interest on the balance
    still outstanding at the start of that month.
    """
    _check_term(total_months)
    principal = to_decimal(principal)
    rate_per_month = _monthly_rate(to_decimal(annual_rate_pct))
    monthly_principal = principal / Decimal(total_months)

    balance = principal
    total_principal = ZERO
    total_interest = ZERO
    for _ in range(min(config.MONTHS_PER_YEAR, total_months)):
        total_interest += balance * rate_per_month
        total_principal += monthly_principal
        balance -= monthly_principal
    return AnnualRepayment(total_principal, total_interest)


def resolve_strategy(loan_type: LoanType, repayment_method: RepaymentMethod) -> AmortizationStrategy:
    """Decide how a loan's annual repayment is counted for DSR purposes.

    Loan type is checked first. Non-housing collateral loans always use an
    8-year imputed maturity. Studio/office and credit loans keep their real
    schedule when they amortize, otherwise they get an 8-year or 5-year
    imputed maturity. For every other type the repayment method alone decides,
    and mixed repayment is counted exactly like lump-sum.
    """
    loan_type = LoanType.parse(loan_type)
    repayment_method = RepaymentMethod.parse(repayment_method)

    if loan_type is LoanType.NON_HOUSING:
        return ImputedMaturity(config.NON_HOUSING_IMPUTED_YEARS)
    if loan_type is LoanType.STUDIO:
        return _AMORTIZING.get(repayment_method, ImputedMaturity(config.STUDIO_IMPUTED_YEARS))
    if loan_type is LoanType.CREDIT:
        return _AMORTIZING.get(repayment_method, ImputedMaturity(config.CREDIT_IMPUTED_YEARS))
    return _AMORTIZING.get(repayment_method, InterestOnly())


def apply_strategy(
    strategy: AmortizationStrategy, principal: Number, annual_rate_pct: Number, term_months: int
) -> AnnualRepayment:
    principal = to_decimal(principal)
    annual_rate_pct = to_decimal(annual_rate_pct)
    if isinstance(strategy, Annuity):
        return annuity_repayment(principal, annual_rate_pct, term_months)
    if isinstance(strategy, EqualPrincipal):
        return equal_principal_repayment(principal, annual_rate_pct, term_months)
    annual_interest = principal * annual_rate_pct / HUNDRED
    if isinstance(strategy, ImputedMaturity):
        return AnnualRepayment(principal / Decimal(strategy.years), annual_interest)
    if isinstance(strategy, InterestOnly):
        return AnnualRepayment(ZERO, annual_interest)
    raise TypeError(f"Unsupported amortization strategy: {strategy!r}")


def calculate_dsr_repayment(
    loan_type: LoanType,
    principal: Number,
    rate: Number,
    term_months: int,
    repayment_method: RepaymentMethod,
    apply_stress_rate: bool = False,
    stress_rate: Number = 0,
) -> AnnualRepayment:
    """Annual principal and interest a loan contributes to DSR.

    The stress rate is added to ``rate`` only when ``apply_stress_rate`` is
    set, which the aggregator does for the new loan alone.
    """
    effective_rate = to_decimal(rate)
    if apply_stress_rate:
        effective_rate += to_decimal(stress_rate)
    strategy = resolve_strategy(loan_type, repayment_method)
    logger.debug(
        "Resolved %s/%s to %r at %s%%",
        LoanType.parse(loan_type).value,
        RepaymentMethod.parse(repayment_method).value,
        strategy,
        effective_rate,
    )
    return apply_strategy(strategy, principal, effective_rate, term_months)


def get_basis_description(loan_type: LoanType, repayment_method: RepaymentMethod) -> str:
    """Human-readable label for the repayment basis a loan is assessed on."""
    loan_type = LoanType.parse(loan_type)
    strategy = resolve_strategy(loan_type, repayment_method)
    if isinstance(strategy, ImputedMaturity):
        return f"{strategy.years}-year maturity imputed"
    if loan_type in (LoanType.STUDIO, LoanType.CREDIT):
        return "Actual amortization applied"
    return "Actual repayment terms"


def classify_dsr(dsr: Number) -> Tuple[Status, str]:
    """Map a DSR percentage onto its status and dashboard message."""
    dsr = to_decimal(dsr)
    if dsr > config.DSR_LIMIT:
        status = Status.DANGER
    elif dsr > config.DSR_WARNING:
        status = Status.WARNING
    else:
        status = Status.SAFE
    return status, config.STATUS_MESSAGES[status.value]


def _loan_line(loan: LoanTerms, repayment: AnnualRepayment, effective_rate: Decimal, is_new: bool) -> LoanRepayment:
    return LoanRepayment(
        loan_id=None if is_new else getattr(loan, "id", None),
        is_new=is_new,
        loan_type=loan.loan_type,
        repayment_method=loan.repayment_method,
        effective_rate=effective_rate,
        basis=get_basis_description(loan.loan_type, loan.repayment_method),
        annual_principal=round_won(repayment.annual_principal),
        annual_interest=round_won(repayment.annual_interest),
    )


def _share(part: Decimal, total: Decimal) -> Decimal:
    if total <= 0:
        return ZERO
    return (part / total * HUNDRED).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def compute_dsr_dti(
    annual_income: Number,
    new_loan: Optional[NewLoan],
    existing_loans: Iterable[ExistingLoan],
    stress_rate: Number,
) -> CalculationResult:
    """Compute DSR, DTI and the risk status for one input snapshot.

    The new loan is assessed at its rate plus ``stress_rate``; existing loans
    at their own rate. Loans with a non-positive principal or balance are
    skipped. With zero income both ratios are zero.

    DTI adds the total annual interest of every loan to the new loan's full
    annual repayment, so the new loan's interest is counted twice. This is the
    simplified DTI the dashboard has always shown.
    """
    income = to_decimal(annual_income)
    stress = to_decimal(stress_rate)

    total_principal = ZERO
    total_interest = ZERO
    new_loan_repayment = ZERO
    existing_repayment = ZERO
    lines = []

    if new_loan is not None and new_loan.principal > 0:
        repayment = calculate_dsr_repayment(
            new_loan.loan_type,
            new_loan.principal,
            new_loan.interest_rate,
            new_loan.term_months,
            new_loan.repayment_method,
            apply_stress_rate=True,
            stress_rate=stress,
        )
        total_principal += repayment.annual_principal
        total_interest += repayment.annual_interest
        new_loan_repayment = repayment.total
        lines.append(_loan_line(new_loan, repayment, new_loan.interest_rate + stress, is_new=True))

    for loan in existing_loans:
        if loan.principal <= 0:
            logger.debug("Skipping existing loan %s with non-positive balance", getattr(loan, "id", None))
            continue
        repayment = calculate_dsr_repayment(
            loan.loan_type,
            loan.principal,
            loan.interest_rate,
            loan.term_months,
            loan.repayment_method,
        )
        total_principal += repayment.annual_principal
        total_interest += repayment.annual_interest
        existing_repayment += repayment.total
        lines.append(_loan_line(loan, repayment, loan.interest_rate, is_new=False))

    total_repayment = total_principal + total_interest

    if income > 0:
        dsr = total_repayment / income * HUNDRED
        dti = (total_interest + new_loan_repayment) / income * HUNDRED
    else:
        dsr = ZERO
        dti = ZERO

    status, message = classify_dsr(dsr)

    return CalculationResult(
        dsr=round_ratio(dsr),
        dti=round_ratio(dti),
        total_annual_repayment=round_won(total_repayment),
        total_annual_interest=round_won(total_interest),
        total_annual_principal=round_won(total_principal),
        new_loan_annual_repayment=round_won(new_loan_repayment),
        existing_loans_annual_repayment=round_won(existing_repayment),
        status=status,
        message=message,
        new_loan_share=_share(new_loan_repayment, total_repayment),
        existing_loans_share=_share(existing_repayment, total_repayment),
        loans=tuple(lines),
    )
