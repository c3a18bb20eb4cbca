"""Flask JSON API for the DSR calculator.

The front end keeps all form state in the browser and posts the whole input
snapshot on every change; this app validates it, runs the engine and returns
the result as JSON. Nothing is stored between requests.

Run locally with:

    flask --app dsr_calc_web.app run
"""

import logging
import os

from flask import Flask, jsonify, request

from dsr_calc.config import DEFAULT_ANNUAL_INCOME, MAX_STRESS_RATE, default_stress_rate
from dsr_calc.data_models import (
    CustomerInfo,
    ExistingLoan,
    LoanType,
    MarketSettings,
    NewLoan,
    RepaymentMethod,
)
from dsr_calc.engine import compute_dsr_dti, get_basis_description
from dsr_calc.validation import LoanInputError, validate_inputs

app = Flask(__name__)
app.config["MAX_EXISTING_LOANS"] = int(os.environ.get("DSR_MAX_EXISTING_LOANS", "20"))

logger = logging.getLogger(__name__)


def _new_loan_from_payload(data):
    if not data:
        return None
    if not isinstance(data, dict):
        raise ValueError("new_loan must be an object")
    return NewLoan(
        principal=data.get("amount", 0),
        interest_rate=data.get("interest_rate", 0),
        term_months=data.get("term_months", 0),
        loan_type=data.get("loan_type", LoanType.MORTGAGE),
        repayment_method=data.get("repayment_method", RepaymentMethod.EQUAL_INSTALLMENT),
    )


def _existing_loans_from_payload(items):
    loans = []
    for index, item in enumerate(items or [], start=1):
        if not isinstance(item, dict):
            raise ValueError(f"existing loan {index} must be an object")
        loans.append(
            ExistingLoan(
                principal=item.get("balance", 0),
                interest_rate=item.get("interest_rate", 0),
                term_months=item.get("remaining_months", 0),
                loan_type=item.get("loan_type", LoanType.OTHER),
                repayment_method=item.get("repayment_method", RepaymentMethod.EQUAL_INSTALLMENT),
                id=str(item.get("id") or f"loan-{index}"),
            )
        )
    if len(loans) > app.config["MAX_EXISTING_LOANS"]:
        raise ValueError(f"at most {app.config['MAX_EXISTING_LOANS']} existing loans are supported")
    return loans


def _payload_to_inputs(payload):
    customer = CustomerInfo(
        borrower_name=payload.get("borrower_name", ""),
        annual_income=payload.get("annual_income", DEFAULT_ANNUAL_INCOME),
    )
    stress_rate = payload.get("stress_rate")
    market = MarketSettings(stress_rate=default_stress_rate() if stress_rate is None else stress_rate)
    new_loan = _new_loan_from_payload(payload.get("new_loan"))
    existing_loans = _existing_loans_from_payload(payload.get("existing_loans"))
    validate_inputs(customer.annual_income, new_loan, existing_loans, market.stress_rate)
    return customer, new_loan, existing_loans, market


def _error(message, status=400, problems=None):
    body = {"error": message}
    if problems:
        body["problems"] = problems
    return jsonify(body), status


@app.post("/api/calculate")
def calculate():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return _error("Request body must be a JSON object")
    try:
        customer, new_loan, existing_loans, market = _payload_to_inputs(payload)
    except LoanInputError as exc:
        logger.warning("Rejected calculation request: %s", exc)
        return _error("Invalid input", problems=exc.problems)
    except (ValueError, TypeError) as exc:
        logger.warning("Rejected calculation request: %s", exc)
        return _error(str(exc))

    result = compute_dsr_dti(customer.annual_income, new_loan, existing_loans, market.stress_rate)
    return jsonify(
        {
            "borrower_name": customer.borrower_name,
            "annual_income": float(customer.annual_income),
            "stress_rate": float(market.stress_rate),
            "result": result.to_dict(),
        }
    )


@app.get("/api/basis")
def basis():
    try:
        description = get_basis_description(
            request.args.get("loan_type", ""), request.args.get("repayment_method", "")
        )
    except ValueError as exc:
        return _error(str(exc))
    return jsonify({"basis": description})


@app.get("/api/options")
def options():
    return jsonify(
        {
            "loan_types": [{"value": t.value, "label": t.label} for t in LoanType],
            "repayment_methods": [{"value": m.value, "label": m.label} for m in RepaymentMethod],
            "defaults": {
                "annual_income": float(DEFAULT_ANNUAL_INCOME),
                "stress_rate": float(default_stress_rate()),
                "max_stress_rate": float(MAX_STRESS_RATE),
            },
        }
    )


if __name__ == "__main__":
    print("Starting DSR calculator API...")
    app.run(debug=os.environ.get("FLASK_DEBUG") == "1")
