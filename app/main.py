import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app import config
from app.courses.course_router import router as course_router
from app.courses.database import Store
from app.courses.enrollment_router import router as enrollment_router
from app.courses.instructor_router import router as instructor_router
from app.courses.progress_router import router as progress_router
from app.storage.media import MediaStorage
from app.system.health_router import router as health_router

logger = logging.getLogger(__name__)


def create_app(store: Optional[Store] = None, upload_dir: Optional[str] = None,
               certificate_dir: Optional[str] = None) -> FastAPI:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = FastAPI(title="LearnHub API", version=config.VERSION or "0.1.0")

    # MongoDB Configuration
    app.state.store = store or Store.from_url(
        config.MONGO_URL,
        config.MONGO_DB_NAME,
        use_transactions=config.MONGO_TRANSACTIONS
    )
    app.state.media = MediaStorage(upload_dir or config.UPLOAD_DIR)
    app.state.certificate_dir = certificate_dir or config.CERTIFICATE_DIR

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(health_router)
    app.include_router(course_router)
    app.include_router(instructor_router)
    app.include_router(enrollment_router)
    app.include_router(progress_router)

    # StaticFiles checks the directory at construction time
    app.state.media.ensure_dirs()
    os.makedirs(app.state.certificate_dir, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=app.state.media.upload_dir), name="uploads")
    app.mount("/certificates", StaticFiles(directory=app.state.certificate_dir), name="certificates")

    @app.on_event("startup")
    async def startup_event():
        await app.state.store.ensure_indexes()
        await app.state.store.seed_categories()
        logger.info("LearnHub API started (transactions %s)",
                    "on" if app.state.store.use_transactions else "off")

    return app


app = create_app()
