from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # Discord host
    DISCORD_BOT_TOKEN: str | None = Field(None, description="Discord bot token")
    MONITOR_OWNER_ID: str = "0"

    # Management endpoint
    MONITOR_OBJECT_NAME: str = "monitor:type=Performance"

    # Interception
    MONITOR_POINTCUT: str = "discord.client:Client.dispatch"
    MONITOR_POINTCUT_EVENT: str | None = "message"

    # Counter behaviour
    MONITOR_FRACTIONAL_AVERAGE: bool = False
    MONITOR_RETENTION_SECONDS: int | None = None
    MONITOR_CLOCK: str = "wall"  # wall | monotonic

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()  # singleton
