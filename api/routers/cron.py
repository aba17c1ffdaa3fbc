"""
Cron endpoints: called by the external scheduler.

POST /subscriptions runs the renewal scan; GET /subscriptions/upcoming is
the reminder feed for subscriptions due REMINDER_DAYS_AHEAD days out.
"""

from datetime import timedelta
from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from db.database import get_db
from schemas import RenewalRunResponse, UpcomingSubscription
from services.clock import Clock, get_clock
from services.renewal import get_last_run, process_due_subscriptions
from services.subscriptions import list_upcoming

router = APIRouter()


def verify_cron_secret(x_cron_secret: str | None = Header(None)) -> None:
    if settings.ENVIRONMENT == "development":
        return
    if not settings.CRON_SECRET or x_cron_secret != settings.CRON_SECRET:
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/subscriptions", response_model=RenewalRunResponse, dependencies=[Depends(verify_cron_secret)])
async def run_renewals(db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Place orders for every due subscription and advance their dates."""
    report = await process_due_subscriptions(db, clock)
    return report.as_dict()


@router.get("/subscriptions/upcoming", response_model=list[UpcomingSubscription], dependencies=[Depends(verify_cron_secret)])
async def upcoming_subscriptions(db: AsyncSession = Depends(get_db), clock: Clock = Depends(get_clock)):
    reminder_date = clock.today() + timedelta(days=settings.REMINDER_DAYS_AHEAD)
    return await list_upcoming(db, reminder_date)


@router.get("/subscriptions/last-run", dependencies=[Depends(verify_cron_secret)])
async def last_renewal_run():
    """Summary of the most recent renewal scan, or null."""
    return {"last_run": await get_last_run()}
