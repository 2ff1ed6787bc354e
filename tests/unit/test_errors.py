"""Tests for mk_common.errors and mk_common.response."""

from src.mk_common.errors import (
    AlreadyResolvedError,
    AppError,
    DisputeNotFoundError,
    DuplicateDisputeError,
    InsufficientBalanceError,
    InvalidTransitionError,
    NotFoundError,
    OrderNotFoundError,
    WithdrawalNotFoundError,
)
from src.mk_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1, message="x"), Exception)


class TestSpecificErrors:
    def test_insufficient_balance(self) -> None:
        err = InsufficientBalanceError(required=5000, available=1200)
        assert err.code == 2001
        assert err.http_status == 422
        assert "5000" in err.message and "1200" in err.message

    def test_not_found_family(self) -> None:
        for err in (
            OrderNotFoundError("o1"),
            DisputeNotFoundError("d1"),
            WithdrawalNotFoundError("w1"),
        ):
            assert isinstance(err, NotFoundError)
            assert err.http_status == 404

    def test_invalid_transition(self) -> None:
        err = InvalidTransitionError("Order", "o1", "cancelled", "confirm_payment")
        assert err.code == 4010
        assert err.http_status == 409
        assert "cancelled" in err.message

    def test_dispute_conflicts(self) -> None:
        assert DuplicateDisputeError("o1").http_status == 409
        err = AlreadyResolvedError("d1", "resolved_refund")
        assert err.code == 5003
        assert "resolved_refund" in err.message


class TestApiResponse:
    def test_success_response(self) -> None:
        resp = success_response({"id": "o1"})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"id": "o1"}
        assert resp.request_id.startswith("req_")

    def test_error_response(self) -> None:
        resp = error_response(2001, "Insufficient balance")
        assert resp.code == 2001
        assert resp.data is None

    def test_serializes(self) -> None:
        data = ApiResponse(data={"x": 1}).model_dump()
        assert set(data) == {"code", "message", "data", "timestamp", "request_id"}
