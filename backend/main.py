import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.auth import fastapi_users, auth_backend
from core.config import settings
from core.logging_config import configure_logging
from db.database import create_db_and_tables, engine
from db.migrations import add_missing_user_columns
from routers.inventory import router as inventory_router
from routers.locations import router as locations_router
from routers.users import router as users_router
from schemas.users import UserRead, UserCreate, UserUpdate

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await add_missing_user_columns(engine)
    await create_db_and_tables()
    logger.info("Database ready")
    yield
    await engine.dispose()


app = FastAPI(
    title="Book Stall Inventory API",
    description="Inventory, locations and stock transfers for the temple book stall",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"],)
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_verify_router(UserRead), prefix="/auth", tags=["auth"])

# User management (role/status) before the fastapi-users /users/{id} routes
app.include_router(users_router, prefix="/users", tags=["users"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

app.include_router(locations_router, prefix="/locations", tags=["locations"])
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
