"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab

# Schedule configuration
beat_schedule = {
    # Nightly cleanup of intraday events carrying out-of-range metric values
    'purge-intraday-outliers': {
        'task': 'tasks.purge_intraday_outliers',
        'schedule': crontab(hour=3, minute=30),  # 03:30 UTC daily
    },
}
