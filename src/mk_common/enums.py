"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"
    RESOLVED_REFUND = "resolved_refund"
    RESOLVED_RELEASE = "resolved_release"


ORDER_TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.CANCELLED.value,
        OrderStatus.RESOLVED_REFUND.value,
        OrderStatus.RESOLVED_RELEASE.value,
    }
)

# Statuses a dispute may be opened from (and restored to on withdrawal)
ORDER_DISPUTABLE_STATUSES = frozenset({OrderStatus.PAID.value, OrderStatus.COMPLETED.value})

# Re-confirming payment from these is a no-op, not an error
ORDER_PAYMENT_SETTLED_STATUSES = frozenset(
    {
        OrderStatus.PAID.value,
        OrderStatus.COMPLETED.value,
        OrderStatus.DISPUTED.value,
        OrderStatus.RESOLVED_REFUND.value,
        OrderStatus.RESOLVED_RELEASE.value,
    }
)


class DisputeStatus(str, Enum):
    OPEN = "open"
    IN_REVIEW = "in_review"
    RESOLVED_REFUND = "resolved_refund"
    RESOLVED_RELEASE = "resolved_release"
    CANCELLED = "cancelled"


DISPUTE_ACTIVE_STATUSES = frozenset({DisputeStatus.OPEN.value, DisputeStatus.IN_REVIEW.value})


class DisputeResolution(str, Enum):
    REFUND = "refund"
    RELEASE = "release"

    @property
    def dispute_status(self) -> DisputeStatus:
        if self is DisputeResolution.REFUND:
            return DisputeStatus.RESOLVED_REFUND
        return DisputeStatus.RESOLVED_RELEASE

    @property
    def order_status(self) -> OrderStatus:
        if self is DisputeResolution.REFUND:
            return OrderStatus.RESOLVED_REFUND
        return OrderStatus.RESOLVED_RELEASE


class DisputeReason(str, Enum):
    NOT_DELIVERED = "not_delivered"
    NOT_AS_DESCRIBED = "not_as_described"
    INVALID_CREDENTIALS = "invalid_credentials"
    FRAUD = "fraud"
    OTHER = "other"
    PAYMENT_REVERSED = "payment_reversed"    # opened by the payment webhook, not by buyers


class SenderRole(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REJECTED = "rejected"


class PixKeyType(str, Enum):
    CPF = "cpf"
    CNPJ = "cnpj"
    EMAIL = "email"
    PHONE = "phone"
    RANDOM = "random"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
