from apscheduler.schedulers.asyncio import AsyncIOScheduler

from salesdesk.services.cart.session_registry import registry

scheduler = AsyncIOScheduler()


@scheduler.scheduled_job("interval", minutes=5)  # every 5 minutes
async def sweep_idle_cart_sessions_job():
    registry.sweep_idle()
