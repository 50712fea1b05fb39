# laundrypos/errors.py
from fastapi import Request, status
from fastapi.responses import JSONResponse


class LaundryPOSError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class EntitlementDenied(LaundryPOSError):
    """Write attempted while the tenant's verdict is not active."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, tenant_id: str, verdict: str):
        super().__init__(f"License is {verdict}; tenant {tenant_id} is read-only")
        self.tenant_id = tenant_id
        self.verdict = verdict


class PermissionDenied(LaundryPOSError):
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransition(LaundryPOSError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move order from {current} to {target}")
        self.current = current
        self.target = target


class OrderNotFound(LaundryPOSError):
    status_code = status.HTTP_404_NOT_FOUND


class CustomerNotFound(LaundryPOSError):
    status_code = status.HTTP_404_NOT_FOUND


class VoucherRejected(LaundryPOSError):
    status_code = 422


class InvalidPayment(LaundryPOSError):
    status_code = 422


class PaymentNotFound(LaundryPOSError):
    status_code = status.HTTP_404_NOT_FOUND


class PaymentAlreadyProcessed(LaundryPOSError):
    status_code = status.HTTP_409_CONFLICT


def laundrypos_error_handler(request: Request, exc: LaundryPOSError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__},
    )
