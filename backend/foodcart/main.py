from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from foodcart.api.health import router as health_router
from foodcart.api.routes_cart import router as cart_router
from foodcart.api.routes_checkout import router as checkout_router
from foodcart.config import settings
from foodcart.db import SessionLocal, init_db
from foodcart.repositories.local_cart_store import purge_stale_carts
from foodcart.utils.log import get_logger

log = get_logger("app")


def purge_job():
    db = SessionLocal()
    try:
        # naive UTC, matching what SQLite stores for func.now()
        cutoff = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(
            seconds=settings.GUEST_CART_TTL_SECONDS
        )
        purged = purge_stale_carts(db, cutoff)
        if purged:
            log.info("Purged %d stale guest cart(s)", len(purged))
    except Exception as e:
        log.error("Guest cart purge failed: %s", e)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        purge_job,
        "interval",
        seconds=settings.GUEST_CART_PURGE_INTERVAL_SECONDS,
        id="purge_guest_carts",
    )
    scheduler.start()

    try:
        yield
    finally:
        scheduler.shutdown(wait=False)


app = FastAPI(title="FoodCart - Cart & Checkout", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(cart_router, tags=["cart"])

app.include_router(checkout_router, prefix="/api/checkout", tags=["checkout"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("foodcart.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
