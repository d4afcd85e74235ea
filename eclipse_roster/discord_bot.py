"""Discord bot entry point for the Eclipse roster."""
from __future__ import annotations

import asyncio
import atexit
import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands
from dotenv import load_dotenv

from .adapters.discord.builders import build_role_change_embed, build_roster_embed
from .adapters.discord.handlers import RosterCommands, is_admin, run_recipe
from .config import RuntimeConfig, Settings, get_settings
from .errors import RosterError
from .health import create_app, serve_health
from .models import RoleRecipe
from .service import RosterService
from .sync import RosterMessageSync
from .telemetry_decorator import track_command

logger = logging.getLogger(__name__)


def _recipe_command(recipe: RoleRecipe) -> app_commands.Command:
    """Slash command applying ``recipe`` to the chosen member."""

    async def recipe_callback(interaction: discord.Interaction, user: discord.Member) -> None:
        if not is_admin(interaction.user):
            await interaction.response.send_message("❌ You need Administrator.", ephemeral=True)
            return
        if interaction.guild is None:
            await interaction.response.send_message("❌ Member not found.", ephemeral=True)
            return
        try:
            outcome = await run_recipe(
                recipe,
                user,
                interaction.guild,
                reason=f"Slash /{recipe.name} by {interaction.user}",
            )
        except RosterError as exc:
            await interaction.response.send_message(f"❌ {exc.user_message}", ephemeral=True)
            return
        if not outcome.changed:
            await interaction.response.send_message(f"⚠️ {recipe.no_change}", ephemeral=True)
            return
        await interaction.response.send_message(f"{recipe.emoji} Done", ephemeral=True)
        if interaction.channel is not None:
            try:
                await interaction.channel.send(
                    embed=build_role_change_embed(recipe, user.mention, outcome.changes)
                )
            except discord.HTTPException:
                logger.exception("Failed to send /%s summary", recipe.name)

    recipe_callback.__name__ = recipe.name
    callback = track_command(app_commands.describe(user="Target member")(recipe_callback))
    return app_commands.Command(
        name=recipe.name,
        description=recipe.description[:100],
        callback=callback,
    )


def build_bot(
    settings: Settings | None = None,
    config: RuntimeConfig | None = None,
    intents: Optional[discord.Intents] = None,
) -> commands.Bot:
    settings = settings or get_settings()
    config = config or RuntimeConfig.from_env()
    if intents is None:
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
    bot = commands.Bot(command_prefix=commands.when_mentioned, intents=intents)

    service = RosterService.from_file(config.state_file, settings)
    setattr(bot, "roster_service", service)
    roster_sync = RosterMessageSync(
        bot,
        lambda: build_roster_embed(service.render()),
        title=settings.roster_title,
        scan_limit=settings.scan_limit,
    )
    roster_commands = RosterCommands(
        service,
        roster_sync,
        settings,
        roster_channel_id=config.roster_channel_id,
    )
    background: set[asyncio.Task] = set()

    async def setup_hook() -> None:
        if config.health_port:
            task = asyncio.create_task(serve_health(create_app(service), config.health_port))
            background.add(task)
            task.add_done_callback(background.discard)
        try:
            if config.guild_id:
                guild = discord.Object(id=config.guild_id)
                bot.tree.copy_global_to(guild=guild)
                synced = await bot.tree.sync(guild=guild)
                logger.info("Synced %d slash commands to guild %s", len(synced), config.guild_id)
            else:
                logger.info("GUILD_ID not set; registering slash commands globally only")
            synced = await bot.tree.sync()
            logger.info("Synced %d global slash commands", len(synced))
        except discord.HTTPException as exc:  # pragma: no cover - logging only
            logger.exception("Failed to sync commands: %s", exc)

    bot.setup_hook = setup_hook

    @bot.event
    async def on_ready() -> None:
        logger.info("Roster bot connected as %s", bot.user)
        await bot.change_presence(activity=discord.Game(name="Gota.io"))

    @bot.event
    async def on_message(message: discord.Message) -> None:
        await roster_commands.handle_message(message)

    @app_commands.command(name="hola", description="Saluda con el bot")
    @track_command
    async def hola(interaction: discord.Interaction) -> None:
        await interaction.response.send_message("¡Hola! 👋", ephemeral=True)

    @app_commands.command(name="roster", description="Create or refresh the roster message")
    @track_command
    async def roster(interaction: discord.Interaction) -> None:
        channel = interaction.channel
        if channel is None:
            await interaction.response.send_message("❌ No channel to post in.", ephemeral=True)
            return
        if config.roster_channel_id is not None and channel.id != config.roster_channel_id:
            await interaction.response.send_message(
                "Roster commands only allowed in the designated channel.", ephemeral=True
            )
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            await roster_sync.sync(channel)
        except RosterError as exc:
            await interaction.followup.send(f"❌ {exc.user_message}", ephemeral=True)
            return
        await interaction.followup.send("✅ Roster refreshed", ephemeral=True)

    bot.tree.add_command(hola)
    bot.tree.add_command(roster)
    for recipe in settings.recipes.values():
        bot.tree.add_command(_recipe_command(recipe))
    return bot


def main() -> None:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s :: %(message)s")
    config = RuntimeConfig.from_env()
    if not config.token:
        raise RuntimeError("DISCORD_TOKEN environment variable must be set")
    logger.info("Token loaded (length %d)", len(config.token))
    bot = build_bot(config=config)
    atexit.register(bot.roster_service.shutdown)
    bot.run(config.token, log_handler=None)


__all__ = ["build_bot", "main"]
