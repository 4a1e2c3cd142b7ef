import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import FRONTEND_URL
from .database import get_database, set_database
from .domain.archive import router as archive_router
from .domain.archive.service import ArchiveService
from .domain.feedback import router as feedback_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("aiomysql").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    database = get_database()

    connection = await database.test_connection()
    if connection["success"]:
        result = await ArchiveService(database).create_tables()
        if not result["success"]:
            logger.error(f"Failed to create archive tables: {result['error']}")
    else:
        # Tables are created and healed on first archival once the store is reachable
        logger.warning(f"Archive database unavailable at startup: {connection['error']}")

    yield
    logger.info("Application shutting down...")
    await database.dispose()
    set_database(None)


app = FastAPI(title="Theater Booking Archive API", version="1.0.0", lifespan=lifespan)

ALLOWED_ORIGINS = [FRONTEND_URL]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(archive_router)
app.include_router(feedback_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
