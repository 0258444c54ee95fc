"""Wall-clock helpers in the configured scheduling timezone."""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from telemed.config import settings


def local_tz() -> ZoneInfo:
    """Timezone that slot dates and times are expressed in."""
    return ZoneInfo(settings.timezone)


def local_now() -> datetime:
    """Current aware datetime in the scheduling timezone."""
    return datetime.now(local_tz())


def local_today() -> date:
    """Today's date in the scheduling timezone."""
    return local_now().date()


def slot_start(slot_date: date, start_time: time) -> datetime:
    """Aware datetime at which a slot begins."""
    return datetime.combine(slot_date, start_time, tzinfo=local_tz())
