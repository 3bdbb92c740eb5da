import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.core.logging_config import configure_logging
from backend.database import SessionLocal, ensure_scheduling_schema
from backend.routes import dashboard_routes, vapi_routes
from backend.scheduling.seed import seed_demo_data
from backend.scheduling.service import AppointmentService
from backend.scheduling.sql_stores import build_sql_stores
from backend.scheduling.stores import AppointmentStore, InMemoryAppointmentStore, InMemorySlotStore, SlotStore
from backend.services.call_logs import CallLog
from backend.services.faqs import FAQService

configure_logging()

app = FastAPI(title='SmileCare Voice Receptionist API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials='*' not in config.CORS_ALLOW_ORIGINS,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


def build_stores(store_backend: str) -> tuple[SlotStore, AppointmentStore]:
    if store_backend == 'sql':
        ensure_scheduling_schema()
        return build_sql_stores(SessionLocal)
    return InMemorySlotStore(), InMemoryAppointmentStore()


@app.on_event('startup')
def initialize_services() -> None:
    config.validate_runtime_config()

    app.state.faq_service = FAQService()
    app.state.call_log = CallLog()

    try:
        slot_store, appointment_store = build_stores(config.STORE_BACKEND)
        if config.SEED_DEMO_DATA:
            seed_demo_data(slot_store, appointment_store)
    except SQLAlchemyError:
        logger.exception('Store initialization failed. Check DATABASE_URL and database credentials.')
        return

    app.state.appointment_service = AppointmentService(slot_store, appointment_store)

    logger.info('Clinic: %s (store=%s)', config.CLINIC_INFO['name'], config.STORE_BACKEND)
    logger.info('Vapi webhook path: /api/vapi/webhook')


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Server error on %s %s', request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={'error': 'Internal server error', 'message': str(exc)},
    )


@app.get('/')
def root():
    return {'status': 'Voice Receptionist API Running', 'clinic': config.CLINIC_INFO['name']}


@app.get('/health')
def health():
    return {
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'environment': config.APP_ENV,
    }


app.include_router(vapi_routes.router, prefix='/api/vapi')
app.include_router(dashboard_routes.router, prefix='/api/dashboard')


if __name__ == '__main__':
    import uvicorn

    uvicorn.run('backend.main:app', host='0.0.0.0', port=config.PORT)
