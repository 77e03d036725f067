import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("dorfkiste")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

# Periodic tasks (Celery Beat)
app.conf.beat_schedule = {
    "expire-pending-rentals": {
        "task": "rentals.expire_pending_rentals",
        "schedule": float(os.environ.get("RENTALS_EXPIRY_SWEEP_SECONDS", 300)),
        "options": {"expires": 240},
    },
}

app.conf.timezone = "Europe/Berlin"
