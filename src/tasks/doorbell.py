"""
Doorbell Background Tasks
"""
from src.worker import celery_app
from src.core.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="src.tasks.doorbell.route_timed_out_calls")
def route_timed_out_calls() -> dict:
    """
    Route unanswered doorbell calls to the front desk.
    Runs every few seconds via Celery Beat.
    """
    import asyncio
    from src.core.database import async_session_maker, engine
    from src.modules import import_all_models
    from src.modules.doorbell.routing import check_and_route_timed_out_calls

    import_all_models()

    async def _route():
        try:
            async with async_session_maker() as session:
                routed = await check_and_route_timed_out_calls(session)
                await session.commit()
        finally:
            # Each asyncio.run gets a fresh loop; pooled connections cannot outlive it
            await engine.dispose()

        if routed:
            logger.info("Doorbell timeout check completed", routed=routed)
        return {"status": "completed", "routed": routed}

    return asyncio.run(_route())
