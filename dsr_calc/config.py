"""Default settings and regulatory thresholds for the DSR calculator.

Values here mirror the defaults of the original form (a 1.5 %p stress rate and
an annual income of 50,000,000 won) and the 40 % DSR ceiling applied by Korean
lenders. The stress rate default can be overridden with the ``DSR_STRESS_RATE``
environment variable.
"""

from __future__ import annotations

import os
from decimal import Decimal

DEFAULT_STRESS_RATE = Decimal("1.5")
MAX_STRESS_RATE = Decimal("5")
DEFAULT_ANNUAL_INCOME = Decimal("50000000")

# DSR classification thresholds, in percent
DSR_LIMIT = Decimal("40")
DSR_WARNING = Decimal("35")

# Imputed maturities (years) for non-amortizing loans
STUDIO_IMPUTED_YEARS = 8
NON_HOUSING_IMPUTED_YEARS = 8
CREDIT_IMPUTED_YEARS = 5

# First-year window simulated by the amortization calculators
MONTHS_PER_YEAR = 12

STATUS_MESSAGES = {
    "safe": "DSR within 40%: loan can proceed",
    "warning": "Caution: DSR approaching the limit",
    "danger": "Limit exceeded: DSR above 40%",
}


def default_stress_rate() -> Decimal:
    """Return the stress rate to use when the caller does not supply one."""
    raw = os.environ.get("DSR_STRESS_RATE")
    if not raw:
        return DEFAULT_STRESS_RATE
    try:
        return Decimal(raw.strip())
    except Exception as exc:
        raise ValueError(f"Invalid DSR_STRESS_RATE value: {raw}") from exc
