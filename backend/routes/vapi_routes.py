import logging
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from backend.core import config
from backend.dependencies import get_appointment_service, get_call_log, get_faq_service, verify_webhook_secret
from backend.scheduling.service import AppointmentService
from backend.services.call_logs import CallLog
from backend.services.faqs import FAQService

router = APIRouter(tags=['vapi'])

logger = logging.getLogger(__name__)

ERROR_MESSAGE = 'I apologize, but I encountered an error. Let me transfer you to our staff.'
TRANSFER_MESSAGE = "I'm transferring you to our staff now. Please hold."


class FunctionCall(BaseModel):
    name: str | None = None
    parameters: dict[str, Any] | None = None


class VapiMessage(BaseModel):
    type: str | None = None
    function_call: FunctionCall | None = Field(default=None, alias='functionCall')
    ended_reason: str | None = Field(default=None, alias='endedReason')
    summary: str | None = None
    status: str | None = None

    class Config:
        populate_by_name = True
        extra = 'allow'


class VapiCall(BaseModel):
    id: str | None = None
    customer: dict[str, Any] | None = None
    duration: float | None = None

    class Config:
        extra = 'allow'

    @property
    def customer_number(self) -> str | None:
        return (self.customer or {}).get('number')


class VapiWebhookRequest(BaseModel):
    message: VapiMessage | None = None
    call: VapiCall | None = None


def escalate_to_staff(parameters: dict, call: VapiCall | None, call_log: CallLog) -> dict:
    logger.info('Escalating to staff: %s', parameters)

    call_log.record(
        callId=call.id if call else None,
        type='escalation',
        reason=parameters.get('reason'),
        message=parameters.get('message'),
        callerPhone=call.customer_number if call else None,
    )

    return {
        'success': True,
        'message': TRANSFER_MESSAGE,
        'action': 'transfer',
        'transferNumber': config.CLINIC_INFO['phone'],
    }


def build_function_table(
    appointments: AppointmentService,
    faqs: FAQService,
    call: VapiCall | None,
    call_log: CallLog,
) -> dict[str, Callable[[dict], dict]]:
    return {
        'check_availability': appointments.check_availability,
        'book_appointment': appointments.book_appointment,
        'find_appointment': appointments.find_appointment,
        'reschedule_appointment': appointments.reschedule_appointment,
        'cancel_appointment': appointments.cancel_appointment,
        'get_faq': faqs.get_faq,
        'escalate_to_staff': lambda parameters: escalate_to_staff(parameters, call, call_log),
    }


def handle_function_call(
    payload: VapiWebhookRequest,
    appointments: AppointmentService,
    faqs: FAQService,
    call_log: CallLog,
) -> dict:
    function_call = payload.message.function_call or FunctionCall()
    function_name = function_call.name
    parameters = function_call.parameters or {}
    call = payload.call

    logger.info('Function called: %s %s', function_name, parameters)

    handlers = build_function_table(appointments, faqs, call, call_log)
    handler = handlers.get(function_name or '')

    try:
        if handler is None:
            result = {'success': False, 'message': f'Unknown function: {function_name}'}
        else:
            result = handler(parameters)
    except Exception as exc:
        logger.exception(
            'Function %s failed (call=%s, parameters=%s)',
            function_name,
            call.id if call else None,
            parameters,
        )
        return {
            'result': {
                'success': False,
                'message': ERROR_MESSAGE,
                'escalate': True,
                'transferNumber': config.CLINIC_INFO['staff_phone'],
                'error': str(exc),
            }
        }

    call_log.record(
        callId=call.id if call else None,
        function=function_name,
        parameters=parameters,
        result=result,
        success=result.get('success'),
    )

    return {'result': result}


def handle_end_of_call(payload: VapiWebhookRequest, call_log: CallLog) -> dict:
    call = payload.call
    logger.info('Call ended: call=%s reason=%s', call.id if call else None, payload.message.ended_reason)

    call_log.record(
        callId=call.id if call else None,
        type='call-ended',
        duration=call.duration if call else None,
        endReason=payload.message.ended_reason,
        summary=payload.message.summary,
    )

    return {'success': True}


@router.post('/webhook', dependencies=[Depends(verify_webhook_secret)])
def vapi_webhook(
    payload: VapiWebhookRequest,
    appointments: AppointmentService = Depends(get_appointment_service),
    faqs: FAQService = Depends(get_faq_service),
    call_log: CallLog = Depends(get_call_log),
):
    message_type = payload.message.type if payload.message else None

    logger.info(
        'Vapi webhook received: type=%s call=%s',
        message_type,
        payload.call.id if payload.call else None,
    )

    if message_type == 'function-call':
        return handle_function_call(payload, appointments, faqs, call_log)

    if message_type == 'end-of-call-report':
        return handle_end_of_call(payload, call_log)

    if message_type == 'status-update':
        logger.debug(
            'Status update: call=%s status=%s',
            payload.call.id if payload.call else None,
            payload.message.status,
        )
        return {'success': True}

    logger.warning('Unknown message type: %s', message_type)
    return {'success': True}


@router.get('/logs')
def list_call_logs(
    limit: int = Query(default=config.CALL_LOG_LIMIT, ge=1, le=500),
    call_log: CallLog = Depends(get_call_log),
):
    return {
        'logs': call_log.recent(limit),
        'total': len(call_log),
    }


@router.delete('/logs')
def clear_call_logs(call_log: CallLog = Depends(get_call_log)):
    call_log.clear()
    return {'success': True, 'message': 'Logs cleared'}
