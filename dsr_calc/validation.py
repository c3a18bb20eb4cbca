"""Input checks performed before a snapshot reaches the engine.

The engine assumes sane inputs; the CLI and the web API call
``validate_inputs`` first and surface every problem at once.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from .config import MAX_STRESS_RATE
from .data_models import ExistingLoan, LoanTerms, NewLoan
from .utils import Number, to_decimal


class LoanInputError(ValueError):
    """Raised when a calculation snapshot violates the engine's preconditions."""

    def __init__(self, problems: List[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


def loan_problems(loan: LoanTerms, name: str) -> List[str]:
    problems = []
    if loan.principal < 0:
        problems.append(f"{name}: amount must not be negative")
    if loan.interest_rate < 0:
        problems.append(f"{name}: interest rate must not be negative")
    if loan.principal > 0 and loan.term_months < 1:
        problems.append(f"{name}: term must be at least 1 month")
    return problems


def validate_inputs(
    annual_income: Number,
    new_loan: Optional[NewLoan],
    existing_loans: Iterable[ExistingLoan],
    stress_rate: Number,
) -> None:
    problems = []
    if to_decimal(annual_income) < 0:
        problems.append("annual income must not be negative")
    stress = to_decimal(stress_rate)
    if stress < 0 or stress > MAX_STRESS_RATE:
        problems.append(f"stress rate must be between 0 and {MAX_STRESS_RATE}")
    if new_loan is not None:
        problems.extend(loan_problems(new_loan, "new loan"))
    for index, loan in enumerate(existing_loans, start=1):
        problems.extend(loan_problems(loan, f"existing loan {index} ({loan.id})"))
    if problems:
        raise LoanInputError(problems)
