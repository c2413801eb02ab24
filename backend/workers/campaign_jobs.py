"""
Campaign Lifecycle Workers — time-based status transitions.

  trigger_grace_periods  active campaigns ending within 48h enter the grace
                         period (buyers may now commit pledges)
  evaluate_campaigns     campaigns whose grace period has passed are locked
                         if committed demand met the first bracket, else
                         cancelled

Each campaign runs in its own session and transaction, so one failure
rolls back only that campaign and the rest of the batch continues.

Schedule: trigger_grace_periods hourly, evaluate_campaigns daily at 2 AM
Queue: lifecycle
"""

import asyncio
from datetime import date, datetime, timezone

import structlog
from sqlalchemy import select

from workers.celery_app import celery_app

logger = structlog.get_logger()


async def _run_batch(job: str, settings, select_due, apply) -> dict:
    """Select due campaign ids, then apply the transition to each one."""
    from db.session import build_session_factory

    engine, session_factory = build_session_factory(settings.database_url)
    results: list[dict] = []
    try:
        async with session_factory() as db:
            campaign_ids = await select_due(db)

        for campaign_id in campaign_ids:
            async with session_factory() as db:
                try:
                    campaign = await apply(db, campaign_id)
                    await db.commit()
                    results.append(
                        {"campaign_id": str(campaign_id), "status": "success", "new_status": campaign.status}
                    )
                except Exception as exc:
                    await db.rollback()
                    logger.error(f"{job}.campaign_failed", campaign_id=str(campaign_id), error=str(exc), exc_info=True)
                    results.append({"campaign_id": str(campaign_id), "status": "failed", "error": str(exc)})
    finally:
        await engine.dispose()

    succeeded = sum(1 for r in results if r["status"] == "success")
    summary = {
        "status": "success",
        "processed": len(results),
        "succeeded": succeeded,
        "failed": len(results) - succeeded,
        "results": results,
        "completed_at": datetime.now(timezone.utc).isoformat(),
    }
    logger.info(f"{job}.completed", processed=summary["processed"], succeeded=succeeded, failed=summary["failed"])
    return summary


@celery_app.task(
    name="workers.campaign_jobs.trigger_grace_periods",
    bind=True,
    max_retries=2,
    default_retry_delay=60,
    acks_late=True,
)
def trigger_grace_periods(self):
    """
    Hourly job: move active campaigns into their grace period once the end
    date is within the configured window (48 hours by default).
    """
    from campaigns.lifecycle import CampaignStatus, is_due_for_grace_period
    from campaigns.service import CampaignLifecycleService
    from core.config import get_settings
    from db.models import Campaign

    run_id = self.request.id or "manual"
    logger.info("grace_period_trigger.started", run_id=run_id)
    settings = get_settings()
    now = datetime.utcnow()

    async def _select_due(db):
        result = await db.execute(
            select(Campaign.campaign_id, Campaign.end_date).where(Campaign.status == CampaignStatus.ACTIVE.value)
        )
        return [
            row.campaign_id
            for row in result.all()
            if is_due_for_grace_period(row.end_date, now, settings.grace_period_hours_before_end)
        ]

    async def _apply(db, campaign_id):
        return await CampaignLifecycleService(db, settings).start_grace_period(campaign_id)

    try:
        return asyncio.run(_run_batch("grace_period_trigger", settings, _select_due, _apply))
    except Exception as exc:
        logger.error("grace_period_trigger.failed", error=str(exc), exc_info=True)
        raise self.retry(exc=exc)


@celery_app.task(
    name="workers.campaign_jobs.evaluate_campaigns",
    bind=True,
    max_retries=2,
    default_retry_delay=120,
    acks_late=True,
)
def evaluate_campaigns(self):
    """
    Daily job: settle campaigns whose grace period ended before today.
    """
    from campaigns.lifecycle import CampaignStatus, is_grace_period_over
    from campaigns.service import CampaignLifecycleService
    from core.config import get_settings
    from db.models import Campaign

    run_id = self.request.id or "manual"
    logger.info("campaign_evaluation.started", run_id=run_id)
    settings = get_settings()
    today = date.today()

    async def _select_due(db):
        result = await db.execute(
            select(Campaign.campaign_id, Campaign.grace_period_end_date).where(
                Campaign.status == CampaignStatus.GRACE_PERIOD.value
            )
        )
        return [row.campaign_id for row in result.all() if is_grace_period_over(row.grace_period_end_date, today)]

    async def _apply(db, campaign_id):
        return await CampaignLifecycleService(db, settings).evaluate(campaign_id)

    try:
        return asyncio.run(_run_batch("campaign_evaluation", settings, _select_due, _apply))
    except Exception as exc:
        logger.error("campaign_evaluation.failed", error=str(exc), exc_info=True)
        raise self.retry(exc=exc)
