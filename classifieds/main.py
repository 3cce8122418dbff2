import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

import classifieds.database.connection as db_connection
from classifieds.database.connection import create_asyncpg_pool
from classifieds.middleware.auth import init_firebase
from classifieds.middleware.rate_limit import custom_rate_limit_handler, limiter
from classifieds.services.category_directory import CategoryChangeListener

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CLASSIFIEDS_CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    init_firebase()
    db_connection._db_pool = await create_asyncpg_pool()
    logger.info("Database pool created at startup")
    category_listener = CategoryChangeListener()
    await category_listener.start()

    yield  # App runs

    # Shutdown
    await category_listener.stop()
    if db_connection._db_pool:
        await db_connection._db_pool.close()
        logger.info("🔒 Database pool closed")


app = FastAPI(lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)

# Include API routers
from classifieds.api.admin_ads import router as admin_ads_router
from classifieds.api.admin_categories import router as admin_categories_router
from classifieds.api.admin_coupons import router as admin_coupons_router
from classifieds.api.admin_plans import router as admin_plans_router
from classifieds.api.admin_special_ads import router as admin_special_ads_router
from classifieds.api.favorites import router as favorites_router
from classifieds.api.footer_ads import router as footer_ads_router
from classifieds.api.listings import router as listings_router
from classifieds.api.messages import router as messages_router
from classifieds.api.my_ads import router as my_ads_router
from classifieds.api.special_ads import router as special_ads_router

app.include_router(listings_router, prefix="/api")
app.include_router(footer_ads_router, prefix="/api")
app.include_router(special_ads_router, prefix="/api")
app.include_router(favorites_router, prefix="/api")
app.include_router(messages_router, prefix="/api")
app.include_router(my_ads_router, prefix="/api")
app.include_router(admin_categories_router, prefix="/api")
app.include_router(admin_coupons_router, prefix="/api")
app.include_router(admin_plans_router, prefix="/api")
app.include_router(admin_ads_router, prefix="/api")
app.include_router(admin_special_ads_router, prefix="/api")


@app.get("/api/health")
@limiter.limit("100/minute")
async def health(request: Request):
    logger.info("Health check endpoint accessed")
    return {"message": "Classifieds API is up"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("classifieds.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
