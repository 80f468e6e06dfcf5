from fastapi import APIRouter, Depends
from sqlalchemy import text

from foodcart.api.deps import get_payment_client
from foodcart.db import engine
from foodcart.utils.log import get_logger

log = get_logger("health")

router = APIRouter()


@router.get("/health", tags=["health"])
def health(payment_client=Depends(get_payment_client)):
    db_ok = False
    payment_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except Exception as e:
        log.error("Database check failed: %s", e)
    try:
        payment_ok = payment_client.health_check()
    except Exception as e:
        log.error("Payment adapter check failed: %s", e)

    return {
        "status": "ok" if db_ok and payment_ok else "degraded",
        "db": db_ok,
        "payment_adapter": payment_ok,
        "payment_mode": type(payment_client).__name__,
    }
