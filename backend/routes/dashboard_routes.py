import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.dependencies import get_appointment_service, get_faq_service
from backend.scheduling.normalizer import normalize_date
from backend.scheduling.service import AppointmentService
from backend.services.faqs import FAQService

router = APIRouter(tags=['dashboard'])

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_DETAIL = 'Appointment store unavailable. Verify DATABASE_URL and database credentials.'


@router.get('/clinic-info')
def get_clinic_info():
    return {'success': True, 'clinic': config.CLINIC_INFO}


@router.get('/appointments')
def list_appointments(appointments: AppointmentService = Depends(get_appointment_service)):
    try:
        records = appointments.list_appointments()
    except SQLAlchemyError as exc:
        logger.exception('Listing appointments failed')
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=STORE_UNAVAILABLE_DETAIL,
        ) from exc

    return {'success': True, 'appointments': records, 'count': len(records)}


@router.get('/available-slots')
def list_available_slots(
    date: str | None = Query(default=None),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    slot_date = None
    if date:
        slot_date = normalize_date(date)
        if slot_date is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Date must look like YYYY-MM-DD.',
            )

    try:
        slots = appointments.list_available_slots(slot_date)
    except SQLAlchemyError as exc:
        logger.exception('Listing slots failed')
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=STORE_UNAVAILABLE_DETAIL,
        ) from exc

    return {'success': True, 'slots': slots, 'count': len(slots)}


@router.get('/faqs')
def list_faqs(faqs: FAQService = Depends(get_faq_service)):
    entries = faqs.get_all_faqs()
    return {'success': True, 'faqs': entries, 'count': len(entries)}


@router.get('/stats')
def get_stats(
    appointments: AppointmentService = Depends(get_appointment_service),
    faqs: FAQService = Depends(get_faq_service),
):
    try:
        counts = appointments.stats()
    except SQLAlchemyError as exc:
        logger.exception('Computing stats failed')
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=STORE_UNAVAILABLE_DETAIL,
        ) from exc

    return {
        'success': True,
        'stats': {
            **counts,
            'totalFAQs': len(faqs.get_all_faqs()),
            'clinicName': config.CLINIC_INFO['name'],
        },
    }
