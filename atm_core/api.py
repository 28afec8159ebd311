"""
FastAPI REST API Module

HTTP adapter over a single ATM session. The app is built around one
ATMService instance; the service answers True/False and the adapter turns a
False into a generic 400 without explaining which rule declined it.
"""

from decimal import Decimal
from typing import Optional
from fastapi import FastAPI, HTTPException, Depends, Request, status
from pydantic import BaseModel, Field
import uvicorn

from .currency import Money, to_amount
from .service import ATMService
from .transactions import TransactionType


SESSION_EXPIRED = 440


# Pydantic models for API requests/responses
class MoneyModel(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    currency: str = Field(..., description="Currency code (INR, USD, etc.)")

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyModel':
        return cls(amount=str(money.amount), currency=money.currency.code)


class AuthenticateRequest(BaseModel):
    pin: str


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")


class TransferRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    target_account: str


class ChangePinRequest(BaseModel):
    old_pin: str
    new_pin: str


def _money(service: ATMService, amount) -> dict:
    return MoneyModel.from_money(Money(amount, service.account.currency)).model_dump()


def create_app(service: ATMService) -> FastAPI:
    """Create the API application for one session"""
    app = FastAPI(
        title="ATM Session API",
        description="Single-account ATM session over HTTP",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.atm_service = service

    def get_service(request: Request) -> ATMService:
        return request.app.state.atm_service

    def get_active_session(request: Request) -> ATMService:
        """Require an authenticated session that has not timed out"""
        atm = get_service(request)
        if not atm.is_authenticated:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
        if atm.is_session_timed_out():
            atm.end_session()
            raise HTTPException(status_code=SESSION_EXPIRED, detail="Session timed out")
        atm.reset_session_timeout()
        return atm

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    @app.post("/session/authenticate")
    def authenticate(request: AuthenticateRequest, atm: ATMService = Depends(get_service)):
        """Authenticate the session with a PIN"""
        if atm.authenticate(request.pin):
            atm.reset_session_timeout()
            return {
                "authenticated": True,
                "account_holder": atm.get_account_holder_name(),
                "account_number": atm.get_masked_account_number()
            }

        if atm.is_account_frozen:
            raise HTTPException(status_code=status.HTTP_423_LOCKED, detail="Account is locked")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication failed")

    @app.get("/session/status")
    def session_status(atm: ATMService = Depends(get_service)):
        """Session flags and daily counters"""
        return {
            "session_id": atm.session_id,
            "authenticated": atm.is_authenticated,
            "frozen": atm.is_account_frozen,
            "card_status": atm.card_status.value,
            "failed_login_attempts": atm.failed_login_attempts,
            "timed_out": atm.is_session_timed_out(),
            "daily_transaction_count": atm.daily_transaction_count,
            "remaining_daily_withdrawal": _money(atm, atm.get_remaining_daily_withdrawal_limit())
        }

    @app.post("/session/end")
    def end_session(atm: ATMService = Depends(get_service)):
        """End the session"""
        atm.end_session()
        return {"authenticated": False}

    @app.get("/account/balance")
    def get_balance(atm: ATMService = Depends(get_active_session)):
        """Current balance"""
        return {
            "account_number": atm.get_masked_account_number(),
            "balance": _money(atm, atm.check_balance())
        }

    @app.get("/account/statement")
    def get_statement(limit: Optional[int] = None, atm: ATMService = Depends(get_active_session)):
        """Recent transactions, oldest first"""
        records = atm.get_transaction_history()
        if limit is not None:
            records = atm.account.get_last_transactions(limit)
        return {
            "account_number": atm.get_masked_account_number(),
            "balance": _money(atm, atm.check_balance()),
            "transactions": [record.to_dict() for record in records]
        }

    @app.post("/account/pin")
    def change_pin(request: ChangePinRequest, atm: ATMService = Depends(get_active_session)):
        """Change the account PIN"""
        if not atm.change_pin(request.old_pin, request.new_pin):
            raise HTTPException(status_code=400, detail="PIN change declined")
        return {"message": "PIN changed successfully"}

    @app.post("/transactions/deposit")
    def deposit(request: AmountRequest, atm: ATMService = Depends(get_active_session)):
        """Deposit cash"""
        amount = _parse_amount(atm, request.amount)
        if not atm.deposit_money(amount):
            raise HTTPException(status_code=400, detail="Transaction declined")
        return _transaction_response(atm, TransactionType.DEPOSIT, amount)

    @app.post("/transactions/withdraw")
    def withdraw(request: AmountRequest, atm: ATMService = Depends(get_active_session)):
        """Withdraw cash"""
        amount = _parse_amount(atm, request.amount)
        if not atm.withdraw_money(amount):
            raise HTTPException(status_code=400, detail="Transaction declined")
        return _transaction_response(atm, TransactionType.WITHDRAWAL, amount)

    @app.post("/transactions/transfer")
    def transfer(request: TransferRequest, atm: ATMService = Depends(get_active_session)):
        """Transfer to another account number"""
        amount = _parse_amount(atm, request.amount)
        fee = atm.calculate_transaction_fee(TransactionType.TRANSFER, amount)
        if not atm.transfer_money(amount, request.target_account):
            raise HTTPException(status_code=400, detail="Transaction declined")
        response = _transaction_response(atm, TransactionType.TRANSFER, amount)
        response["fee"] = _money(atm, fee)
        return response

    return app


def _parse_amount(atm: ATMService, raw: str) -> Decimal:
    """Parse a request amount once; malformed input is a 400"""
    try:
        return to_amount(raw, atm.account.currency)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid amount")


def _transaction_response(atm: ATMService, transaction_type: TransactionType, amount: Decimal) -> dict:
    return {
        "transaction_type": transaction_type.display_name,
        "amount": _money(atm, amount),
        "balance": _money(atm, atm.check_balance()),
        "receipt": atm.generate_receipt(transaction_type, amount)
    }


def run_server(service: ATMService, host: str = "127.0.0.1", port: int = 8090):
    """Run the FastAPI server for one session"""
    uvicorn.run(
        create_app(service),
        host=host,
        port=port,
        log_level="info"
    )
