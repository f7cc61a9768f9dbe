"""Flask REST API exposing the ledger services."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from ledger_core.config import Settings
from ledger_core.exceptions import (
    DuplicateError,
    PersistenceError,
    RecordNotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from ledger_core.queries import TransactionFilters
from ledger_core.seeding import generate_test_data
from ledger_core.services import LedgerServices, create_services
from ledger_core.storage import JSONStorage
from ledger_core.validators import validate_id, validate_year_month

FILTER_ARGS = (
    "start_date",
    "end_date",
    "payment_method",
    "category",
    "search_text",
    "year",
    "month",
    "limit",
    "exclude_category_ids",
)


def create_app(
    data_dir: Optional[Path] = None,
    *,
    settings: Optional[Settings] = None,
    services: Optional[LedgerServices] = None,
) -> Flask:
    app = Flask(__name__)
    settings = settings or Settings.from_env()

    if settings.is_development:
        CORS(app, resources={r"/*": {"origins": "*"}}, supports_credentials=True)
    elif settings.allowed_origins:
        CORS(app, resources={r"/*": {"origins": list(settings.allowed_origins)}}, supports_credentials=True)
    else:
        CORS(app)

    if services is None:
        storage = JSONStorage(Path(data_dir or settings.data_dir))
        services = create_services(storage, strict_balance=settings.strict_balance)
    app.extensions["pocket_ledger"] = services

    def _success(payload: Any, status: int = 200):
        if status == 204:
            return ("", status)
        return jsonify(payload), status

    def _handle_error(exc: Exception, status: int, message: str):
        app.logger.error("%s: %s", message, exc)
        return jsonify({"error": message, "kind": type(exc).__name__, "details": str(exc)}), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return _handle_error(exc, 400, "Validation error")

    @app.errorhandler(DuplicateError)
    def handle_duplicate(exc: DuplicateError):
        return _handle_error(exc, 409, "Duplicate record")

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(exc: RecordNotFoundError):
        return _handle_error(exc, 404, "Record not found")

    @app.errorhandler(ReferentialIntegrityError)
    def handle_in_use(exc: ReferentialIntegrityError):
        return _handle_error(exc, 409, "Record in use")

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(exc: PersistenceError):
        return _handle_error(exc, 500, "Persistence error")

    def _json_body() -> Dict[str, Any]:
        if not request.is_json:
            raise ValidationError("Request content must be application/json")
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Malformed JSON body")
        return data

    def _month_args() -> tuple:
        return validate_year_month(request.args.get("year"), request.args.get("month"))

    # Categories ---------------------------------------------------------------
    @app.get("/categories")
    def list_categories():
        categories = services.categories.list()
        return _success({"items": [category.to_dict() for category in categories]})

    @app.post("/categories")
    def create_category():
        payload = _json_body()
        category = services.categories.add(payload.get("name"), payload.get("monthly_limit"))
        return _success(category.to_dict(), 201)

    @app.put("/categories/<int:category_id>")
    def update_category(category_id: int):
        payload = _json_body()
        category = services.categories.update(
            category_id, payload.get("name"), payload.get("monthly_limit")
        )
        return _success(category.to_dict())

    @app.delete("/categories/<int:category_id>")
    def delete_category(category_id: int):
        services.categories.delete(category_id)
        return _success({}, 204)

    # Balances -----------------------------------------------------------------
    @app.get("/balances")
    def list_balances():
        balances = services.balances.get_all()
        return _success({
            "items": [{"type": method, "amount": f"{amount:.2f}"} for method, amount in balances.items()],
            "total": f"{services.balances.total():.2f}",
        })

    @app.get("/balances/<method>")
    def get_balance(method: str):
        amount = services.balances.get(method)
        return _success({"type": method.lower(), "amount": f"{amount:.2f}"})

    @app.put("/balances/<method>")
    def set_balance(method: str):
        payload = _json_body()
        balance = services.balances.set(method, payload.get("amount"))
        return _success(balance.to_dict())

    # Transactions -------------------------------------------------------------
    @app.get("/transactions")
    def list_transactions():
        filters = TransactionFilters.from_mapping(
            {name: request.args.get(name) for name in FILTER_ARGS}
        )
        transactions = services.queries.list_transactions(filters)
        return _success({"items": [tx.to_dict() for tx in transactions]})

    @app.post("/transactions")
    def create_transaction():
        payload = _json_body()
        transaction = services.ledger.add(
            payload.get("payment_method"),
            payload.get("category_id"),
            payload.get("amount"),
            payload.get("reason"),
        )
        return _success(transaction.to_dict(), 201)

    @app.get("/transactions/<transaction_id>")
    def get_transaction(transaction_id: str):
        transaction = services.ledger.get(transaction_id)
        return _success(transaction.to_dict())

    @app.put("/transactions/<transaction_id>")
    def update_transaction(transaction_id: str):
        payload = _json_body()
        transaction = services.ledger.update(
            transaction_id,
            payload.get("payment_method"),
            payload.get("category_id"),
            payload.get("amount"),
            payload.get("reason"),
        )
        return _success(transaction.to_dict())

    @app.delete("/transactions/<transaction_id>")
    def delete_transaction(transaction_id: str):
        services.ledger.delete(transaction_id)
        return _success({}, 204)

    # Reports ------------------------------------------------------------------
    @app.get("/summary")
    def summary():
        year, month = _month_args()
        excluded = [
            validate_id(part, "exclude_category_ids")
            for part in (request.args.get("exclude_category_ids") or "").split(",")
            if part.strip()
        ]
        report = services.queries.monthly_summary(year, month, excluded)
        return _success(report.to_dict())

    @app.get("/budgets")
    def budgets():
        year, month = _month_args()
        statuses = services.queries.budget_status(year, month)
        return _success({"items": [status.to_dict() for status in statuses]})

    @app.post("/seed")
    def seed():
        payload = _json_body()
        count = validate_id(payload.get("count", 100), "count")
        if count < 0:
            raise ValidationError("count cannot be negative")
        created = generate_test_data(services, payload.get("year"), payload.get("month"), count)
        return _success({"success": created}, 201 if created else 200)

    return app
