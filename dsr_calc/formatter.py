"""Output helpers for the DSR calculator.

This module renders a ``CalculationResult`` as plain text for the terminal.
Amounts use the same units as the result dashboard: 억원 for values of a
hundred million won or more, 만원 from ten thousand, plain won below that.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Tuple, Union

from .data_models import CalculationResult, LoanRepayment

_EOK = 100_000_000
_MAN = 10_000


def format_krw(value: Union[int, Decimal]) -> str:
    """Format a won amount for display, e.g. ``1.20억원`` or ``650만원``."""
    amount = Decimal(value)
    if abs(amount) >= _EOK:
        return f"{amount / _EOK:.2f}억원"
    if abs(amount) >= _MAN:
        return f"{amount / _MAN:.0f}만원"
    return f"{int(amount):,}원"


def format_percent(value: Decimal) -> str:
    return f"{value:.2f}%"


def print_result(result: CalculationResult, borrower_name: str = "") -> None:
    """Print the DSR/DTI summary in a human-readable format."""
    title = f"DSR / DTI - {borrower_name}" if borrower_name else "DSR / DTI"
    print(title)
    print("-" * 72)
    print(f"DSR                 : {format_percent(result.dsr)}")
    print(f"DTI                 : {format_percent(result.dti)}")
    print(f"Status              : {result.status.value.upper()} ({result.message})")
    print(f"Annual repayment    : {format_krw(result.total_annual_repayment)}")
    print(f"  principal         : {format_krw(result.total_annual_principal)}")
    print(f"  interest          : {format_krw(result.total_annual_interest)}")
    if result.total_annual_repayment:
        print(
            f"New loan            : {format_krw(result.new_loan_annual_repayment)} "
            f"({result.new_loan_share}%)"
        )
        print(
            f"Existing loans      : {format_krw(result.existing_loans_annual_repayment)} "
            f"({result.existing_loans_share}%)"
        )
    print("-" * 72)


def print_loans(loans: Iterable[LoanRepayment]) -> None:
    """Print one row per loan with the basis its repayment was assessed on."""
    headers = ["Loan", "Type", "Method", "Rate", "Principal", "Interest", "Basis"]
    print("\t".join(headers))
    for line in loans:
        row = [
            "new" if line.is_new else str(line.loan_id),
            line.loan_type.label,
            line.repayment_method.label,
            f"{line.effective_rate:.2f}",
            f"{line.annual_principal:,}",
            f"{line.annual_interest:,}",
            line.basis,
        ]
        print("\t".join(row))


def print_stress_table(rows: List[Tuple[Decimal, CalculationResult]]) -> None:
    """Print DSR and status for each stress rate tried."""
    print(f"{'Stress %':>10s} {'DSR %':>10s} {'DTI %':>10s} {'New loan':>16s}  Status")
    print("=" * 72)
    for stress_rate, result in rows:
        print(
            f"{stress_rate:10.2f} {result.dsr:10.2f} {result.dti:10.2f} "
            f"{format_krw(result.new_loan_annual_repayment):>16s}  {result.status.value}"
        )
    print("=" * 72)
