"""Command-line interface for the DSR calculator.

This module uses the ``click`` library to implement a multi-command interface.
Users can compute DSR/DTI for a new loan on top of their existing loans, look
up which repayment basis applies to a loan, or see how the result moves as the
stress rate changes. Results can be printed to the terminal or exported to
JSON.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .config import MAX_STRESS_RATE, default_stress_rate
from .data_models import CustomerInfo, ExistingLoan, LoanType, MarketSettings, NewLoan, RepaymentMethod
from .engine import compute_dsr_dti, get_basis_description
from .formatter import print_loans, print_result, print_stress_table
from .utils import parse_amount, parse_percent
from .validation import validate_inputs

logger = logging.getLogger(__name__)

LOAN_TYPE_CHOICES = [t.value for t in LoanType]
METHOD_CHOICES = [m.value for m in RepaymentMethod]


def parse_existing_loan_strings(values: Tuple[str, ...]) -> List[ExistingLoan]:
    """Parse ``TYPE:BALANCE:RATE:MONTHS:METHOD`` entries into existing loans."""
    loans: List[ExistingLoan] = []
    for index, item in enumerate(values, start=1):
        parts = item.split(":")
        if len(parts) != 5:
            raise click.BadParameter(
                f"Existing loan must be in TYPE:BALANCE:RATE:MONTHS:METHOD format; got {item}"
            )
        loan_type, balance, rate, months, method = parts
        try:
            loans.append(
                ExistingLoan(
                    principal=parse_amount(balance),
                    interest_rate=parse_percent(rate),
                    term_months=int(months),
                    loan_type=loan_type,
                    repayment_method=method,
                    id=f"loan-{index}",
                )
            )
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return loans


def build_inputs_from_options(
    income: str,
    loan_type: str,
    amount: Optional[str],
    rate: Optional[str],
    term: int,
    method: str,
    existing: Tuple[str, ...],
    stress_rate: Optional[str],
    borrower: str = "",
) -> Tuple[CustomerInfo, Optional[NewLoan], List[ExistingLoan], MarketSettings]:
    try:
        customer = CustomerInfo(borrower_name=borrower, annual_income=parse_amount(income))
        market = MarketSettings(
            stress_rate=parse_percent(stress_rate) if stress_rate else default_stress_rate()
        )
        new_loan = None
        if amount:
            new_loan = NewLoan(
                principal=parse_amount(amount),
                interest_rate=parse_percent(rate or "0"),
                term_months=term,
                loan_type=loan_type,
                repayment_method=method,
            )
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    existing_loans = parse_existing_loan_strings(existing)
    try:
        validate_inputs(customer.annual_income, new_loan, existing_loans, market.stress_rate)
    except ValueError as exc:
        raise click.UsageError(str(exc))
    return customer, new_loan, existing_loans, market


def export_to_json(path: Path, payload: dict) -> None:
    """Export a result payload to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)


def loan_options(func):
    """Attach the options shared by every command that runs a calculation."""
    options = [
        click.option("--income", "-i", "income", required=True, help="Annual income (e.g. 50000000, 5000만)"),
        click.option("--loan-type", "loan_type", type=click.Choice(LOAN_TYPE_CHOICES), default="mortgage", help="New loan type"),
        click.option("--amount", "-a", "amount", help="New loan amount; omit to assess existing loans only"),
        click.option("--rate", "-r", "rate", help="New loan annual interest rate (percent)"),
        click.option("--term", "-t", "term", type=int, default=360, show_default=True, help="New loan term in months"),
        click.option("--method", "-m", "method", type=click.Choice(METHOD_CHOICES), default="equal-installment", help="New loan repayment method"),
        click.option("--existing", "-e", "existing", multiple=True, help="Existing loan in TYPE:BALANCE:RATE:MONTHS:METHOD format"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log engine decisions to stderr")
def cli(verbose: bool) -> None:
    """DSR / DTI calculator for Korean loan regulations."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--stress-rate", "-s", "stress_rate", help="Stress rate added to the new loan (percent)")
@click.option("--borrower", "borrower", default="", help="Borrower name shown in the report")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def calculate(
    income: str,
    loan_type: str,
    amount: Optional[str],
    rate: Optional[str],
    term: int,
    method: str,
    existing: Tuple[str, ...],
    stress_rate: Optional[str],
    borrower: str,
    output: Optional[str],
) -> None:
    """Compute DSR/DTI for a new loan and the existing loans."""
    customer, new_loan, existing_loans, market = build_inputs_from_options(
        income, loan_type, amount, rate, term, method, existing, stress_rate, borrower
    )
    result = compute_dsr_dti(customer.annual_income, new_loan, existing_loans, market.stress_rate)
    logger.info("DSR %s%% (%s)", result.dsr, result.status.value)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Unsupported output format; use .json")
        payload = {
            "borrower_name": customer.borrower_name,
            "annual_income": float(customer.annual_income),
            "stress_rate": float(market.stress_rate),
            "result": result.to_dict(),
        }
        export_to_json(path, payload)
        click.echo(f"Result exported to {path}")
    else:
        print_result(result, customer.borrower_name)
        if result.loans:
            print_loans(result.loans)


@cli.command()
@click.argument("loan_type", type=click.Choice(LOAN_TYPE_CHOICES))
@click.argument("method", type=click.Choice(METHOD_CHOICES))
def basis(loan_type: str, method: str) -> None:
    """Show which repayment basis a loan type and method are assessed on."""
    click.echo(get_basis_description(loan_type, method))


@cli.command()
@loan_options
@click.option("--from", "start", default="0", show_default=True, help="First stress rate (percent)")
@click.option("--to", "stop", default=str(MAX_STRESS_RATE), show_default=True, help="Last stress rate (percent)")
@click.option("--step", "step", default="0.5", show_default=True, help="Stress rate increment (percent)")
def stress(
    income: str,
    loan_type: str,
    amount: Optional[str],
    rate: Optional[str],
    term: int,
    method: str,
    existing: Tuple[str, ...],
    start: str,
    stop: str,
    step: str,
) -> None:
    """Compare DSR across a range of stress rates.

    Example:

        dsr-calc stress -i 5000만 -a 3억 -r 4.5 --from 0 --to 3 --step 0.5
    """
    try:
        first, last, increment = parse_percent(start), parse_percent(stop), parse_percent(step)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    if increment <= 0:
        raise click.BadParameter("Step must be positive")
    if first > last:
        raise click.BadParameter("--from must not exceed --to")

    rows = []
    stress_rate = first
    while stress_rate <= last:
        customer, new_loan, existing_loans, market = build_inputs_from_options(
            income, loan_type, amount, rate, term, method, existing, str(stress_rate)
        )
        rows.append(
            (
                market.stress_rate,
                compute_dsr_dti(customer.annual_income, new_loan, existing_loans, market.stress_rate),
            )
        )
        stress_rate += increment
    print_stress_table(rows)


if __name__ == "__main__":
    cli()
