from apscheduler.schedulers.background import BackgroundScheduler
import atexit
from datetime import datetime
from app.extensions import db
from app.services.cleanup_service import clean_old_appointments, cleanup_old_posts
from app.services.promotions_processor import process_promotions
from app.services.reminder_processor import process_appointment_reminders
from app.utils.format_utils import format_duration

scheduler = BackgroundScheduler()


def _run_job(app, label, job):
    """Run ``job(now)`` inside an app context; failures roll back and are printed."""
    current_time = datetime.now()
    current_time_str = current_time.strftime("%Y-%m-%d %H:%M:%S")

    try:
        with app.app_context():
            result = job(current_time)
            elapsed = format_duration((datetime.now() - current_time).total_seconds())
            print(f"[SCHEDULER] {current_time_str} - {label} ({elapsed}): {result}")
            return result

    except Exception as e:
        print(f"[SCHEDULER] {current_time_str} - Error in {label}: {e}")
        with app.app_context():
            db.session.rollback()
        return None


def init_scheduler(app):
    """Initialize the APScheduler scheduler with Flask app context."""

    @scheduler.scheduled_job("interval", minutes=5, id="appointment_reminders")
    def send_reminders():
        """24h, 12h, 2h and 30 minute reminders plus thank-you emails."""
        _run_job(app, "appointment reminders", process_appointment_reminders)

    @scheduler.scheduled_job("interval", minutes=15, id="promotions")
    def run_promotions():
        """Expire finished promotions; activate and announce the ones that started."""
        _run_job(app, "promotions", process_promotions)

    @scheduler.scheduled_job("interval", hours=24, id="appointment_cleanup")
    def clean_appointments():
        _run_job(app, "appointment cleanup (deleted)", clean_old_appointments)

    @scheduler.scheduled_job("interval", hours=24, id="post_cleanup")
    def clean_posts():
        _run_job(app, "post cleanup (deleted)", cleanup_old_posts)

    if not scheduler.running:
        scheduler.start()
        print("[SCHEDULER] Scheduler started")
    else:
        print("[SCHEDULER] Scheduler already running (skipping duplicate start)")

    # Shut down the scheduler when exiting the app
    atexit.register(lambda: scheduler.shutdown())
