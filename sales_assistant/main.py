import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from sales_assistant.config import settings
from sales_assistant.database import create_tables, async_session, engine
from sales_assistant.dependencies import verify_api_key
from sales_assistant.routers.history import router as history_router
from sales_assistant.routers.images import router as images_router
from sales_assistant.routers.workflow import router as workflow_router
from sales_assistant.services.ai_service import analyze_car_images, generate_ads
from sales_assistant.services.history_store import HistoryStore
from sales_assistant.services.resources import ResourceLifecycle
from sales_assistant.services.storage import KeyValueStorage, SqlKeyValueStorage
from sales_assistant.services.workflow import WorkflowController
from sales_assistant.utils.exceptions import register_exception_handlers

logger = logging.getLogger(__name__)


def build_controller(storage: KeyValueStorage, resources: ResourceLifecycle) -> WorkflowController:
    history = HistoryStore(storage, key=settings.history_storage_key, limit=settings.history_limit)
    return WorkflowController(analyze_car_images, generate_ads, history, resources)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    resources = ResourceLifecycle()
    storage = SqlKeyValueStorage(async_session, quota_bytes=settings.storage_quota_bytes)
    controller = build_controller(storage, resources)
    history = await controller.load_history()
    logger.info("Loaded %d history item(s)", len(history))

    app.state.resources = resources
    app.state.controller = controller
    yield
    controller.reset()
    await engine.dispose()


app = FastAPI(
    title="Car Sales Assistant API",
    description="Аналіз стану вживаних авто та генерація оголошень",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

_api_key_dep = [Depends(verify_api_key)]

app.include_router(workflow_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(history_router, prefix="/api/v1", dependencies=_api_key_dep)
app.include_router(images_router, prefix="/api/v1", dependencies=_api_key_dep)


@app.get("/health")
async def health_check():
    return {"status": "success", "data": {"service": "car-sales-assistant-api", "version": "0.1.0"}, "message": None}
