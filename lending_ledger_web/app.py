import logging
from uuid import uuid4

from flask import Flask, jsonify, request, session

from lending_ledger.balance import annotate_running_balance, portfolio_totals
from lending_ledger.config import load_settings
from lending_ledger.exceptions import (
    BorrowerNotFoundError,
    LedgerError,
    TransactionNotFoundError,
)
from lending_ledger.formatter import (
    borrower_to_dict,
    ledger_to_list,
    portfolio_to_dict,
    summary_to_dict,
)
from lending_ledger.ledger_store import LedgerStore, create_store_from_env
from lending_ledger.summary import build_summary
from lending_ledger.utils import decimal_from_str, parse_iso_date, parse_optional_date

logger = logging.getLogger(__name__)


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _optional_decimal(data: dict, key: str):
    if data.get(key) is None:
        return None
    return decimal_from_str(str(data[key]))


def create_app(store: LedgerStore = None) -> Flask:
    """Build the JSON API around ``store`` (or one configured from the env)."""
    settings = load_settings()
    app = Flask(__name__)
    app.secret_key = settings.secret_key
    ledger_store = store or create_store_from_env(settings.database_url)

    def _owned_borrower(borrower_id: str):
        borrower = ledger_store.get_borrower(borrower_id)
        if borrower.owner != _ensure_user_token():
            raise BorrowerNotFoundError(f"No borrower with id {borrower_id}")
        return borrower

    @app.errorhandler(BorrowerNotFoundError)
    @app.errorhandler(TransactionNotFoundError)
    def not_found(exc):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(ValueError)
    @app.errorhandler(LedgerError)
    def bad_request(exc):
        logger.info("rejected request to %s: %s", request.path, exc)
        return jsonify({"error": str(exc)}), 400

    @app.get("/borrowers")
    def list_borrowers():
        owner = _ensure_user_token()
        return jsonify([borrower_to_dict(b) for b in ledger_store.list_borrowers(owner)])

    @app.get("/borrowers/summary")
    def portfolio_summary():
        owner = _ensure_user_token()
        return jsonify(portfolio_to_dict(portfolio_totals(ledger_store.list_borrowers(owner))))

    @app.post("/borrowers")
    def create_borrower():
        data = _json_body()
        rate = _optional_decimal(data, "interest_rate")
        borrower = ledger_store.create_borrower(
            data.get("name"),
            settings.default_rate if rate is None else rate,
            data.get("interest_method", "compound"),
            owner=_ensure_user_token(),
        )
        return jsonify(borrower_to_dict(borrower)), 201

    @app.get("/borrowers/<borrower_id>")
    def get_borrower(borrower_id):
        return jsonify(borrower_to_dict(_owned_borrower(borrower_id)))

    @app.patch("/borrowers/<borrower_id>")
    def update_borrower(borrower_id):
        _owned_borrower(borrower_id)
        data = _json_body()
        borrower = ledger_store.update_borrower(
            borrower_id,
            name=data.get("name"),
            interest_rate=_optional_decimal(data, "interest_rate"),
            interest_method=data.get("interest_method"),
        )
        return jsonify(borrower_to_dict(borrower))

    @app.delete("/borrowers/<borrower_id>")
    def delete_borrower(borrower_id):
        _owned_borrower(borrower_id)
        ledger_store.delete_borrower(borrower_id)
        return "", 204

    @app.post("/borrowers/<borrower_id>/transactions")
    def add_transaction(borrower_id):
        _owned_borrower(borrower_id)
        data = _json_body()
        if data.get("amount") is None:
            raise ValueError("amount is required")
        transaction = ledger_store.add_transaction(
            borrower_id,
            parse_iso_date(str(data.get("date", ""))),
            data.get("type", ""),
            decimal_from_str(str(data["amount"])),
        )
        return jsonify({"id": transaction.id}), 201

    @app.patch("/borrowers/<borrower_id>/transactions/<transaction_id>")
    def update_transaction(borrower_id, transaction_id):
        _owned_borrower(borrower_id)
        data = _json_body()
        ledger_store.update_transaction(
            borrower_id,
            transaction_id,
            date=parse_optional_date(data.get("date")),
            type=data.get("type"),
            amount=_optional_decimal(data, "amount"),
        )
        return jsonify(borrower_to_dict(ledger_store.get_borrower(borrower_id)))

    @app.delete("/borrowers/<borrower_id>/transactions/<transaction_id>")
    def delete_transaction(borrower_id, transaction_id):
        _owned_borrower(borrower_id)
        ledger_store.delete_transaction(borrower_id, transaction_id)
        return "", 204

    @app.get("/borrowers/<borrower_id>/summary")
    def borrower_summary(borrower_id):
        borrower = _owned_borrower(borrower_id)
        summary = build_summary(
            borrower,
            start=parse_optional_date(request.args.get("start")),
            end=parse_optional_date(request.args.get("end")),
            as_of=parse_optional_date(request.args.get("as_of")),
        )
        payload = summary_to_dict(summary)
        payload["preferred_method"] = borrower.interest_method
        return jsonify(payload)

    @app.get("/borrowers/<borrower_id>/ledger")
    def borrower_ledger(borrower_id):
        borrower = _owned_borrower(borrower_id)
        rows = annotate_running_balance(
            borrower.transactions,
            parse_optional_date(request.args.get("start")),
            parse_optional_date(request.args.get("end")),
        )
        return jsonify(ledger_to_list(rows))

    return app


if __name__ == "__main__":
    print("Starting Lending Ledger API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
