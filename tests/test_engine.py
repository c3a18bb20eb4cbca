from decimal import Decimal

import pytest

from dsr_calc.data_models import (
    Annuity,
    EqualPrincipal,
    ExistingLoan,
    ImputedMaturity,
    InterestOnly,
    LoanType,
    NewLoan,
    RepaymentMethod,
    Status,
)
from dsr_calc.engine import (
    annuity_repayment,
    calculate_dsr_repayment,
    classify_dsr,
    compute_dsr_dti,
    equal_principal_repayment,
    get_basis_description,
    _share,
    resolve_strategy,
)
from dsr_calc.utils import round_ratio, round_won


def _close(a, b, tol=Decimal("0.0001")):
    return abs(Decimal(a) - Decimal(b)) <= tol


def _mortgage(amount=100_000_000, rate=4.5, term=360, method="equal-installment"):
    return NewLoan(
        principal=amount,
        interest_rate=rate,
        term_months=term,
        loan_type=LoanType.MORTGAGE,
        repayment_method=method,
    )


def _existing(balance, loan_type="credit", rate=5.0, months=24, method="equal-installment", loan_id="a"):
    return ExistingLoan(
        principal=balance,
        interest_rate=rate,
        term_months=months,
        loan_type=loan_type,
        repayment_method=method,
        id=loan_id,
    )


def test_annuity_first_year_matches_hand_schedule():
    principal = Decimal("100000000")
    r = Decimal("6.0") / 100 / 12
    n = 360
    factor = (1 + r) ** n
    payment = principal * r * factor / (factor - 1)
    res = annuity_repayment(principal, 6.0, n)
    # 12 equal payments split between principal and interest
    assert _close(res.total, payment * 12)
    assert res.annual_interest > res.annual_principal > 0


def test_annuity_short_term_repays_everything():
    res = annuity_repayment(1_200_000, 12.0, 6)
    assert _close(res.annual_principal, 1_200_000, tol=Decimal("0.01"))
    assert res.annual_interest > 0


def test_equal_principal_interest_declines_with_balance():
    res = equal_principal_repayment(12_000_000, 12.0, 120)
    assert _close(res.annual_principal, 1_200_000)
    # interest on balances 12_000_000, 11_900_000, ... 10_900_000 at 1% a month
    expected_interest = sum(Decimal(12_000_000 - 100_000 * k) * Decimal("0.01") for k in range(12))
    assert _close(res.annual_interest, expected_interest)


@pytest.mark.parametrize("calc", [annuity_repayment, equal_principal_repayment])
@pytest.mark.parametrize("term", [6, 12, 60])
def test_zero_rate_is_straight_line(calc, term):
    res = calc(6_000_000, 0, term)
    assert res.annual_interest == 0
    assert _close(res.annual_principal, Decimal(6_000_000) * min(12, term) / term)


@pytest.mark.parametrize("calc", [annuity_repayment, equal_principal_repayment])
def test_non_positive_term_rejected(calc):
    with pytest.raises(ValueError):
        calc(1_000_000, 4.0, 0)


def test_calculators_leave_inputs_untouched():
    principal = Decimal("5000000")
    annuity_repayment(principal, 3.0, 24)
    assert principal == Decimal("5000000")


@pytest.mark.parametrize(
    "loan_type, method, expected",
    [
        (LoanType.NON_HOUSING, RepaymentMethod.EQUAL_INSTALLMENT, ImputedMaturity(8)),
        (LoanType.NON_HOUSING, RepaymentMethod.LUMP_SUM, ImputedMaturity(8)),
        (LoanType.STUDIO, RepaymentMethod.EQUAL_INSTALLMENT, Annuity()),
        (LoanType.STUDIO, RepaymentMethod.EQUAL_PRINCIPAL, EqualPrincipal()),
        (LoanType.STUDIO, RepaymentMethod.MIXED, ImputedMaturity(8)),
        (LoanType.CREDIT, RepaymentMethod.EQUAL_PRINCIPAL, EqualPrincipal()),
        (LoanType.CREDIT, RepaymentMethod.LUMP_SUM, ImputedMaturity(5)),
        (LoanType.MORTGAGE, RepaymentMethod.EQUAL_INSTALLMENT, Annuity()),
        (LoanType.MORTGAGE, RepaymentMethod.LUMP_SUM, InterestOnly()),
        (LoanType.OTHER, RepaymentMethod.MIXED, InterestOnly()),
    ],
)
def test_resolve_strategy(loan_type, method, expected):
    assert resolve_strategy(loan_type, method) == expected


@pytest.mark.parametrize("method", list(RepaymentMethod))
@pytest.mark.parametrize("term", [12, 120, 480])
def test_non_housing_always_uses_eight_year_maturity(method, term):
    res = calculate_dsr_repayment(LoanType.NON_HOUSING, 80_000_000, 5.0, term, method, True, 1.0)
    assert res.annual_principal == Decimal(80_000_000) / 8
    assert res.annual_interest == Decimal(80_000_000) * Decimal("6.0") / 100


def test_credit_lump_sum_uses_five_year_maturity():
    res = calculate_dsr_repayment(LoanType.CREDIT, 20_000_000, 8.0, 36, RepaymentMethod.LUMP_SUM)
    assert res.annual_principal == 4_000_000
    assert res.annual_interest == 1_600_000


def test_mortgage_lump_sum_counts_interest_only():
    res = calculate_dsr_repayment(LoanType.MORTGAGE, 50_000_000, 4.0, 120, RepaymentMethod.LUMP_SUM)
    assert res.annual_principal == 0
    assert res.annual_interest == 2_000_000


@pytest.mark.parametrize("loan_type", list(LoanType))
def test_mixed_repayment_matches_lump_sum(loan_type):
    # mixed repayment has no blended schedule of its own
    mixed = calculate_dsr_repayment(loan_type, 30_000_000, 5.5, 60, RepaymentMethod.MIXED, True, 1.5)
    lump = calculate_dsr_repayment(loan_type, 30_000_000, 5.5, 60, RepaymentMethod.LUMP_SUM, True, 1.5)
    assert mixed == lump


def test_stress_rate_ignored_unless_applied():
    plain = calculate_dsr_repayment(LoanType.MORTGAGE, 10_000_000, 4.0, 12, RepaymentMethod.LUMP_SUM, False, 2.0)
    stressed = calculate_dsr_repayment(LoanType.MORTGAGE, 10_000_000, 4.0, 12, RepaymentMethod.LUMP_SUM, True, 2.0)
    assert plain.annual_interest == 400_000
    assert stressed.annual_interest == 600_000


@pytest.mark.parametrize(
    "loan_type, method, expected",
    [
        ("studio", "equal-installment", "Actual amortization applied"),
        ("studio", "lump-sum", "8-year maturity imputed"),
        ("credit", "equal-principal", "Actual amortization applied"),
        ("credit", "mixed", "5-year maturity imputed"),
        ("non-housing", "equal-installment", "8-year maturity imputed"),
        ("mortgage", "lump-sum", "Actual repayment terms"),
        ("기타", "원리금균등분할", "Actual repayment terms"),
    ],
)
def test_basis_description(loan_type, method, expected):
    assert get_basis_description(loan_type, method) == expected


@pytest.mark.parametrize(
    "dsr, status",
    [
        ("40.00", Status.WARNING),
        ("40.01", Status.DANGER),
        ("35.00", Status.SAFE),
        ("34.99", Status.SAFE),
        ("35.01", Status.WARNING),
        ("0", Status.SAFE),
    ],
)
def test_classification_boundaries(dsr, status):
    assert classify_dsr(Decimal(dsr))[0] is status


@pytest.mark.parametrize(
    "part, total, expected",
    [
        (1, 16, "6.3"),
        (1, 3, "33.3"),
        (15, 16, "93.8"),
        (5, 0, "0"),
    ],
)
def test_share_rounds_half_up(part, total, expected):
    assert _share(Decimal(part), Decimal(total)) == Decimal(expected)


def test_reference_mortgage_scenario():
    res = compute_dsr_dti(50_000_000, _mortgage(), [], 1.5)
    expected = annuity_repayment(100_000_000, 6.0, 360)
    assert res.new_loan_annual_repayment == round_won(expected.total)
    assert res.existing_loans_annual_repayment == 0
    assert res.total_annual_repayment == res.new_loan_annual_repayment
    assert res.dsr == round_ratio(expected.total / 50_000_000 * 100)
    # DTI counts the new loan's interest twice
    dti = (expected.annual_interest + expected.total) / 50_000_000 * 100
    assert res.dti == round_ratio(dti)
    assert res.status is Status.SAFE
    assert res.new_loan_share == Decimal("100.0")
    assert res.loans[0].is_new and res.loans[0].effective_rate == Decimal("6.0")


def test_zero_income_gives_zero_ratios():
    res = compute_dsr_dti(0, _mortgage(), [_existing(10_000_000)], 1.5)
    assert res.dsr == 0
    assert res.dti == 0
    assert res.total_annual_repayment > 0
    assert res.status is Status.SAFE


def test_total_is_sum_of_loan_contributions():
    existing = [
        _existing(30_000_000, "credit", 6.0, 36, "lump-sum", "c1"),
        _existing(200_000_000, "mortgage", 3.8, 300, "equal-principal", "m1"),
        _existing(50_000_000, "studio", 4.9, 120, "equal-installment", "s1"),
    ]
    res = compute_dsr_dti(80_000_000, _mortgage(), existing, 1.5)
    parts = [
        calculate_dsr_repayment(LoanType.MORTGAGE, 100_000_000, 4.5, 360, RepaymentMethod.EQUAL_INSTALLMENT, True, 1.5)
    ] + [
        calculate_dsr_repayment(l.loan_type, l.balance, l.interest_rate, l.remaining_months, l.repayment_method)
        for l in existing
    ]
    total = sum((p.total for p in parts), Decimal("0"))
    assert abs(res.total_annual_repayment - total) <= 1
    assert abs(res.total_annual_repayment - (res.new_loan_annual_repayment + res.existing_loans_annual_repayment)) <= 1
    assert abs(res.total_annual_repayment - (res.total_annual_principal + res.total_annual_interest)) <= 1
    assert [line.loan_id for line in res.loans] == [None, "c1", "m1", "s1"]


@pytest.mark.parametrize("balance", [0, -5_000_000])
def test_non_positive_balances_are_skipped(balance):
    base = compute_dsr_dti(60_000_000, _mortgage(), [], 1.5)
    with_empty = compute_dsr_dti(60_000_000, _mortgage(), [_existing(balance, months=0)], 1.5)
    assert with_empty == base


def test_zero_amount_new_loan_is_skipped():
    res = compute_dsr_dti(60_000_000, _mortgage(amount=0, term=0), [_existing(10_000_000)], 1.5)
    assert res.new_loan_annual_repayment == 0
    assert abs(res.dti - round_ratio(Decimal(res.total_annual_interest) / 60_000_000 * 100)) <= Decimal("0.01")
    assert res.existing_loans_share == Decimal("100.0")


def test_no_loans_at_all():
    res = compute_dsr_dti(60_000_000, None, [], 1.5)
    assert res.total_annual_repayment == 0
    assert res.dsr == 0
    assert res.new_loan_share == 0
    assert res.loans == ()


def test_stress_rate_only_moves_new_loan():
    existing = [_existing(40_000_000, "credit", 7.0, 48, "equal-installment")]
    low = compute_dsr_dti(70_000_000, _mortgage(), existing, 0)
    high = compute_dsr_dti(70_000_000, _mortgage(), existing, 3.0)
    assert high.new_loan_annual_repayment > low.new_loan_annual_repayment
    assert high.existing_loans_annual_repayment == low.existing_loans_annual_repayment


def test_higher_income_lowers_dsr():
    loans = [_existing(150_000_000, "mortgage", 4.0, 240, "equal-installment")]
    previous = None
    for income in (30_000_000, 45_000_000, 90_000_000):
        res = compute_dsr_dti(income, _mortgage(), loans, 1.5)
        if previous is not None:
            assert res.dsr < previous
        previous = res.dsr


def test_danger_status_when_over_limit():
    res = compute_dsr_dti(20_000_000, _mortgage(amount=300_000_000), [], 1.5)
    assert res.dsr > 40
    assert res.status is Status.DANGER
    assert "40%" in res.message


def test_result_to_dict_is_json_ready():
    data = compute_dsr_dti(50_000_000, _mortgage(), [_existing(5_000_000)], 1.5).to_dict()
    assert data["status"] == "safe"
    assert isinstance(data["dsr"], float)
    assert data["loans"][1]["loan_id"] == "a"
    assert data["loans"][1]["basis"] == "Actual amortization applied"
