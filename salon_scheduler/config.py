# salon_scheduler/config.py

import logging
import os
from dataclasses import dataclass, field
from datetime import time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid integer for {env_var}: {raw!r}") from None


def _safe_time(env_var: str, default: str) -> time:
    raw = os.getenv(env_var, default)
    try:
        return time.fromisoformat(raw)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid HH:MM time for {env_var}: {raw!r}") from None


@dataclass(frozen=True)
class ShopSettings:
    """Shop-wide scheduling settings, overridable from the environment or ``.env``.

    Defaults are read from the environment each time an instance is built.
    """

    database_url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///./salon.db"))
    timezone: str = field(default_factory=lambda: os.getenv("SHOP_TIMEZONE", "America/New_York"))
    open_time: time = field(default_factory=lambda: _safe_time("SHOP_OPEN_TIME", "09:00"))
    close_time: time = field(default_factory=lambda: _safe_time("SHOP_CLOSE_TIME", "18:00"))
    # booking grid used for availability
    slot_minutes: int = field(default_factory=lambda: _safe_int("SLOT_MINUTES", "15"))
    # row height of the day view
    day_view_slot_minutes: int = field(default_factory=lambda: _safe_int("DAY_VIEW_SLOT_MINUTES", "30"))
    month_preview_limit: int = field(default_factory=lambda: _safe_int("MONTH_PREVIEW_LIMIT", "3"))
    # 0=Monday ... 6=Sunday
    week_starts_on: int = field(default_factory=lambda: _safe_int("WEEK_STARTS_ON", "6"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def validate_settings(settings: ShopSettings) -> None:
    try:
        ZoneInfo(settings.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"SHOP_TIMEZONE is not a known timezone: {settings.timezone!r}") from None
    if settings.open_time >= settings.close_time:
        raise ValueError(
            f"SHOP_OPEN_TIME must be before SHOP_CLOSE_TIME, "
            f"got {settings.open_time} >= {settings.close_time}"
        )
    for name, value in [
        ("SLOT_MINUTES", settings.slot_minutes),
        ("DAY_VIEW_SLOT_MINUTES", settings.day_view_slot_minutes),
    ]:
        if not 1 <= value <= 24 * 60:
            raise ValueError(f"{name} must be between 1 and 1440, got {value}")
    if settings.month_preview_limit < 0:
        raise ValueError(f"MONTH_PREVIEW_LIMIT must be >= 0, got {settings.month_preview_limit}")
    if not 0 <= settings.week_starts_on <= 6:
        raise ValueError(f"WEEK_STARTS_ON must be between 0 and 6, got {settings.week_starts_on}")


def configure_logging(settings: ShopSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_settings() -> ShopSettings:
    settings = ShopSettings()
    validate_settings(settings)
    return settings


settings = load_settings()
