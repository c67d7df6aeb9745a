import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_DEFAULT_TIMEZONE = "UTC"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="PENNYWISE_", extra="ignore")

    db_url: str = "sqlite:///pennywise.db"

    # Reference zone for deciding what "today" is. Bill dates themselves are
    # zone-less calendar dates.
    timezone: str = _DEFAULT_TIMEZONE

    owner_id: int = 1

    log_level: str = "INFO"
    log_json: bool = False

    def get_timezone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(
                "PENNYWISE_TIMEZONE=%r is not a known zone, falling back to %s",
                self.timezone,
                _DEFAULT_TIMEZONE,
            )
            self.timezone = _DEFAULT_TIMEZONE
            return ZoneInfo(_DEFAULT_TIMEZONE)


settings = Settings()
