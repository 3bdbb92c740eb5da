import hmac

from fastapi import Header, HTTPException, Request, status

from backend.core import config
from backend.scheduling.service import AppointmentService
from backend.services.call_logs import CallLog
from backend.services.faqs import FAQService


def get_appointment_service(request: Request) -> AppointmentService:
    service = getattr(request.app.state, 'appointment_service', None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Scheduling service is not initialized.',
        )
    return service


def get_faq_service(request: Request) -> FAQService:
    return request.app.state.faq_service


def get_call_log(request: Request) -> CallLog:
    return request.app.state.call_log


def verify_webhook_secret(x_vapi_secret: str | None = Header(default=None)) -> None:
    expected = config.VAPI_WEBHOOK_SECRET
    if not expected:
        return
    if not x_vapi_secret or not hmac.compare_digest(x_vapi_secret, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid webhook secret')
