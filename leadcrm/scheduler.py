import logging
from apscheduler.schedulers.background import BackgroundScheduler
from leadcrm.core.database import SessionLocal
from leadcrm.services.user_service import UserService

logger = logging.getLogger(__name__)
scheduler = BackgroundScheduler()

# ---------------------------------------------------------
# JOB: Purge soft-deleted accounts
# ---------------------------------------------------------
def run_cleanup():
    """
    Hard-deletes users and system clients whose soft delete is older than
    the retention window. Opens its own session, the scheduler passes no args.
    """
    db = SessionLocal()
    try:
        logger.info("🧹 Scheduler: Starting deleted-records cleanup...")
        result = UserService(db).purge_deleted()
        logger.info(f"✅ Scheduler: Cleanup finished {result}")
        return result
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Scheduler Error (Cleanup): {str(e)}")
    finally:
        db.close()

# ---------------------------------------------------------
# SCHEDULER SETUP
# ---------------------------------------------------------
def start_scheduler():
    if scheduler.running:
        return

    # Daily at 02:00
    scheduler.add_job(run_cleanup, "cron", hour=2, minute=0, id="cleanup_deleted", replace_existing=True)

    scheduler.start()
    logger.info("🚀 Background Scheduler Started.")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
