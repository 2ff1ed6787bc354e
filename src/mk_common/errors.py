"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Actor / eligibility
  2xxx: Balance / withdrawal
  3xxx: Catalog
  4xxx: Order
  5xxx: Dispute
  9xxx: System

None of these are retried by the core. The exception handler in
src/main.py renders them as ApiResponse(code, message, data=None).
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class NotFoundError(AppError):
    """Base for every "record does not exist" error."""


# --- 1xxx: Actor / eligibility ---

class NotEligibleError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1101, f"Not eligible: {detail}", 403)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1102, "Administrator privileges required", 403)


# --- 2xxx: Balance / withdrawal ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required} cents, available {available} cents",
            422,
        )


class MissingFinancialDetailsError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"No financial details on file for user {user_id}", 422)


class WithdrawalNotFoundError(NotFoundError):
    def __init__(self, withdrawal_id: str) -> None:
        super().__init__(2003, f"Withdrawal not found: {withdrawal_id}", 404)


class BelowMinimumWithdrawalError(AppError):
    def __init__(self, amount: int, minimum: int) -> None:
        super().__init__(
            2004,
            f"Withdrawal of {amount} cents is below the minimum of {minimum} cents",
            422,
        )


# --- 3xxx: Catalog ---

class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: str) -> None:
        super().__init__(3001, f"Product not found: {product_id}", 404)


class InsufficientStockError(AppError):
    def __init__(self, requested: int, stock: int) -> None:
        super().__init__(3002, f"Insufficient stock: requested {requested}, in stock {stock}", 422)


class BelowMinimumQuantityError(AppError):
    def __init__(self, requested: int, minimum: int) -> None:
        super().__init__(
            3003,
            f"Quantity {requested} is below the minimum order quantity of {minimum}",
            422,
        )


# --- 4xxx: Order ---

class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class InvalidTransitionError(AppError):
    def __init__(self, entity: str, entity_id: str, status: str, action: str) -> None:
        super().__init__(
            4010,
            f"{entity} {entity_id} in status {status} cannot {action}",
            409,
        )


class PaymentMismatchError(AppError):
    def __init__(self, order_id: str, detail: str) -> None:
        super().__init__(4011, f"Payment does not match order {order_id}: {detail}", 422)


# --- 5xxx: Dispute ---

class DisputeNotFoundError(NotFoundError):
    def __init__(self, dispute_id: str) -> None:
        super().__init__(5001, f"Dispute not found: {dispute_id}", 404)


class DuplicateDisputeError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(5002, f"Order {order_id} already has an active dispute", 409)


class AlreadyResolvedError(AppError):
    def __init__(self, dispute_id: str, status: str) -> None:
        super().__init__(5003, f"Dispute {dispute_id} is already closed ({status})", 409)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class PaymentGatewayError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Payment gateway error: {detail}", 502)


class InvalidWebhookTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(9004, "Invalid webhook token", 401)
