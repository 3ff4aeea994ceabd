from __future__ import annotations

import discord
from discord.ext import commands

from actor_monitor.config import settings
from actor_monitor.errors import ConfigurationError
from actor_monitor.monitor.aspect import MonitorAspect
from actor_monitor.utils.logging import configure_logging, get_logger
from actor_monitor.utils.metrics import EventRateCounter, make_clock
from actor_monitor.bot.report import format_rate, render_registry

log = get_logger(__name__)

INTENTS = discord.Intents.default()
INTENTS.message_content = True
INTENTS.guilds = True


def is_owner(user: discord.abc.User) -> bool:
    try:
        return str(user.id) == str(settings.MONITOR_OWNER_ID)
    except Exception:
        return False


def build_counter() -> EventRateCounter:
    try:
        clock = make_clock(settings.MONITOR_CLOCK)
        return EventRateCounter(
            clock=clock,
            fractional=settings.MONITOR_FRACTIONAL_AVERAGE,
            retention_seconds=settings.MONITOR_RETENTION_SECONDS,
        )
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def create_bot(aspect: MonitorAspect) -> commands.Bot:
    bot = commands.Bot(command_prefix="!", intents=INTENTS)

    @bot.event
    async def on_ready():
        try:
            await bot.tree.sync()
            log.info("bot_ready", extra={"extra_fields": {"status": "synced", "user": str(bot.user)}})
        except Exception as e:
            log.error("sync_error", extra={"extra_fields": {"error": str(e)}})

    @bot.tree.command(description="Show the current messages-per-second rate.")
    async def rate(interaction: discord.Interaction):
        if aspect.bean is None:
            return await interaction.response.send_message("Monitoring is not active.", ephemeral=True)
        await interaction.response.send_message(format_rate(aspect.bean), ephemeral=True)

    @bot.tree.command(description="Admin dump of registered management beans.")
    async def metrics(interaction: discord.Interaction):
        perms = getattr(interaction.user, "guild_permissions", None)
        if not (is_owner(interaction.user) or (perms is not None and perms.administrator)):
            return await interaction.response.send_message("Admin only.", ephemeral=True)
        await interaction.response.send_message(render_registry(aspect.registry), ephemeral=True)

    return bot


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    if not settings.DISCORD_BOT_TOKEN:
        raise ConfigurationError("DISCORD_BOT_TOKEN is not set")

    aspect = MonitorAspect(build_counter())
    # host keeps running unmonitored if this fails
    aspect.install(settings.MONITOR_POINTCUT, settings.MONITOR_POINTCUT_EVENT or None)

    bot = create_bot(aspect)
    try:
        bot.run(settings.DISCORD_BOT_TOKEN, log_handler=None)
    finally:
        aspect.uninstall()


if __name__ == "__main__":
    main()
