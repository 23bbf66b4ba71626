import sys
import os

# Ensure project root is in path
sys.path.append(os.getcwd())

from leadcrm.core.database import SessionLocal
from leadcrm.models import *
from leadcrm.services.callback_sync import CallbackSync


def backfill():
    db = SessionLocal()
    print("🚀 Scanning leads with a callback but no reminder...")

    try:
        created = CallbackSync(db).backfill_missing()
        print(f"✅ Created {created} missing reminder events.")
    except Exception as e:
        db.rollback()
        print(f"❌ Backfill failed: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    backfill()
