from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from monety.api.routes import router as api_router
from monety.core.config import get_settings
from monety.core.logging import configure_logging
from monety.db.base import Base
from monety.db.session import engine

settings = get_settings()

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix=settings.api_prefix)


@app.on_event("startup")
def on_startup() -> None:
    configure_logging()
    Base.metadata.create_all(bind=engine)
    logger.info("Ledger API started", extra={"database_url": settings.database_url.split("@")[-1]})
