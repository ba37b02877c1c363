import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from cogs.ai_chat import THINKING, AIChatCog
from cogs.dynamic_voice import DynamicVoice, dynamic_channel_name, is_dynamic_channel
from cogs.member_tracker import MemberTracker
from cogs.moderation import Moderation
from cogs.reaction_roles import ReactionRoles, emoji_key, find_reaction_role
from cogs.server_logs import member_update_lines, voice_update_line
from cogs.utilities import HELP_CATEGORIES, Utilities, help_page, pick_random_word
from cogs.welcome import Welcome
from guildconfig import ReactionRole, WelcomeLeave
import main


class FakeMember:
    def __init__(self, name="jane", nick=None, roles=()):
        self.name = name
        self.nick = nick
        self.roles = list(roles)

    def __str__(self):
        return self.name


def make_bot():
    bot = MagicMock()
    bot.guild_config = MagicMock()
    return bot


# ---------- reaction roles ----------
def test_emoji_key_prefers_custom_id():
    assert emoji_key(discord.PartialEmoji(name="👍")) == "👍"
    assert emoji_key(discord.PartialEmoji(name="pepe", id=1234)) == "1234"


def test_find_reaction_role():
    roles = [ReactionRole(10, "👍", 20), ReactionRole(10, "🔥", 21), ReactionRole(11, "👍", 22)]
    assert find_reaction_role(roles, 10, "🔥").role_id == 21
    assert find_reaction_role(roles, 10, "❓") is None
    assert find_reaction_role(roles, 99, "👍") is None


async def test_reaction_add_gives_role():
    bot = make_bot()
    role = SimpleNamespace(name="Gamer")
    member = MagicMock(bot=False)
    member.add_roles = AsyncMock()
    guild = MagicMock(id=1)
    guild.get_role.return_value = role
    bot.get_guild.return_value = guild
    bot.guild_config.reaction_roles = AsyncMock(return_value=[ReactionRole(10, "👍", 20)])

    payload = SimpleNamespace(guild_id=1, member=member, user_id=5, message_id=10,
                              emoji=discord.PartialEmoji(name="👍"))
    await ReactionRoles(bot).on_raw_reaction_add(payload)

    guild.get_role.assert_called_once_with(20)
    member.add_roles.assert_awaited_once()


async def test_reaction_from_bot_is_ignored():
    bot = make_bot()
    member = MagicMock(bot=True)
    member.add_roles = AsyncMock()
    bot.get_guild.return_value = MagicMock(id=1)
    bot.guild_config.reaction_roles = AsyncMock()

    payload = SimpleNamespace(guild_id=1, member=member, user_id=5, message_id=10,
                              emoji=discord.PartialEmoji(name="👍"))
    await ReactionRoles(bot).on_raw_reaction_add(payload)

    bot.guild_config.reaction_roles.assert_not_awaited()
    member.add_roles.assert_not_awaited()


# ---------- dynamic voice ----------
def test_dynamic_channel_name_sanitises():
    assert dynamic_channel_name("  Jane_Doe-99 ") == "Jane_Doe-99's Channel"
    assert dynamic_channel_name("★★★") == "Default Channel's Channel"
    assert is_dynamic_channel(SimpleNamespace(name="Jane's Channel"))
    assert not is_dynamic_channel(SimpleNamespace(name="General"))


async def test_joining_trigger_creates_and_moves():
    bot = make_bot()
    bot.guild_config.base_voice_channel_id = AsyncMock(return_value=100)
    created = SimpleNamespace(id=200)
    member = MagicMock()
    member.name = "jane"
    member.guild.id = 1
    member.guild.create_voice_channel = AsyncMock(return_value=created)
    member.move_to = AsyncMock()

    trigger = SimpleNamespace(id=100, category="cat")
    await DynamicVoice(bot).on_voice_state_update(
        member, SimpleNamespace(channel=None), SimpleNamespace(channel=trigger)
    )

    args, kwargs = member.guild.create_voice_channel.await_args
    assert args[0] == "jane's Channel"
    assert kwargs["category"] == "cat"
    member.move_to.assert_awaited_once_with(created)


async def test_leaving_deletes_empty_dynamic_channel():
    bot = make_bot()
    bot.guild_config.base_voice_channel_id = AsyncMock(return_value=100)
    member = MagicMock()
    member.guild.id = 1
    old = SimpleNamespace(id=300, name="jane's Channel", members=[], delete=AsyncMock())
    keep = SimpleNamespace(id=301, name="General", members=[], delete=AsyncMock())

    cog = DynamicVoice(bot)
    await cog.on_voice_state_update(member, SimpleNamespace(channel=old), SimpleNamespace(channel=None))
    await cog.on_voice_state_update(member, SimpleNamespace(channel=keep), SimpleNamespace(channel=None))

    old.delete.assert_awaited_once()
    keep.delete.assert_not_awaited()


async def test_no_trigger_configured_is_a_noop():
    bot = make_bot()
    bot.guild_config.base_voice_channel_id = AsyncMock(return_value=None)
    member = MagicMock()
    member.guild.id = 1
    old = SimpleNamespace(id=300, name="jane's Channel", members=[], delete=AsyncMock())

    await DynamicVoice(bot).on_voice_state_update(member, SimpleNamespace(channel=old), SimpleNamespace(channel=None))
    old.delete.assert_not_awaited()


# ---------- server logs ----------
def test_member_update_lines():
    admin = SimpleNamespace(id=1, name="Admin")
    dj = SimpleNamespace(id=2, name="DJ")
    before = FakeMember(nick=None, roles=[admin])
    after = FakeMember(nick="Janie", roles=[dj])

    lines = member_update_lines(before, after)
    assert lines == [
        "🔄 **jane** changed their nickname to **Janie**",
        "➕ **jane** was given the role **DJ**",
        "➖ **jane** was removed from the role **Admin**",
    ]


def test_voice_update_line():
    member = FakeMember()
    room = SimpleNamespace(name="Lounge")
    assert voice_update_line(member, SimpleNamespace(channel=None), SimpleNamespace(channel=room)) == \
        "🔊 **jane** joined voice channel **Lounge**"
    assert voice_update_line(member, SimpleNamespace(channel=room), SimpleNamespace(channel=None)) == \
        "🔇 **jane** left voice channel **Lounge**"
    assert voice_update_line(member, SimpleNamespace(channel=room), SimpleNamespace(channel=room)) is None


# ---------- member tracker ----------
def _tracker_bot(channel):
    bot = make_bot()
    guild = MagicMock(id=1, member_count=42)
    guild.me.guild_permissions.manage_channels = True
    guild.get_channel.return_value = channel
    bot.get_guild.return_value = guild
    bot.guild_config.member_count_channel_id = AsyncMock(return_value=77)
    return bot


async def test_tracker_renames_voice_channel():
    channel = MagicMock(spec=discord.VoiceChannel)
    channel.edit = AsyncMock()
    tracker = MemberTracker(_tracker_bot(channel))

    assert await tracker.update_channel_name(1) is True
    channel.edit.assert_awaited_once_with(name="Members: 42")


async def test_tracker_rejects_text_channel():
    channel = MagicMock(spec=discord.TextChannel)
    channel.edit = AsyncMock()
    tracker = MemberTracker(_tracker_bot(channel))

    assert await tracker.update_channel_name(1) is False
    channel.edit.assert_not_awaited()


async def test_tracker_skips_while_update_in_flight():
    gate = asyncio.Event()
    channel = MagicMock(spec=discord.VoiceChannel)

    async def _slow_edit(**kwargs):
        await gate.wait()

    channel.edit = AsyncMock(side_effect=_slow_edit)
    tracker = MemberTracker(_tracker_bot(channel))

    assert tracker.schedule_update(1) is True
    assert tracker.schedule_update(1) is False
    gate.set()
    await asyncio.gather(*tracker._tasks)

    assert 1 not in tracker.in_flight
    assert channel.edit.await_count == 1


# ---------- welcome ----------
async def test_welcome_without_config_does_nothing(tmp_path):
    bot = make_bot()
    bot.guild_config.welcome_leave = AsyncMock(return_value=None)
    member = MagicMock()
    member.guild.id = 1

    await Welcome(bot, banner_path=str(tmp_path / "none.png")).on_member_join(member)
    bot.get_channel.assert_not_called()


async def test_leave_message_is_sent(tmp_path):
    bot = make_bot()
    bot.guild_config.welcome_leave = AsyncMock(return_value=WelcomeLeave(None, 9))
    channel = MagicMock()
    channel.send = AsyncMock()
    bot.get_channel.return_value = channel
    member = FakeMember(name="jane#0001")
    member.guild = SimpleNamespace(id=1)

    await Welcome(bot, banner_path=str(tmp_path / "none.png")).on_member_remove(member)

    bot.get_channel.assert_called_once_with(9)
    channel.send.assert_awaited_once_with("**jane#0001** has left the server.")


# ---------- AI chat ----------
def _dm(content, *, bot_author=False):
    placeholder = MagicMock()
    placeholder.edit = AsyncMock()
    channel = MagicMock(spec=discord.DMChannel)
    channel.send = AsyncMock(return_value=placeholder)
    author = SimpleNamespace(id=7, name="jane", bot=bot_author)
    return SimpleNamespace(author=author, guild=None, channel=channel, content=content), placeholder


async def test_dm_gets_thinking_message_then_answer():
    chat = MagicMock()
    chat.ask = AsyncMock(return_value="💞 Tezcatlipoca: hi")
    message, placeholder = _dm("hello")

    await AIChatCog(make_bot(), chat=chat).on_message(message)

    message.channel.send.assert_awaited_once_with(THINKING)
    chat.ask.assert_awaited_once_with(7, "jane", "hello")
    placeholder.edit.assert_awaited_once_with(content="💞 Tezcatlipoca: hi")


async def test_blank_dm_and_bot_messages_are_ignored():
    chat = MagicMock()
    chat.ask = AsyncMock()
    cog = AIChatCog(make_bot(), chat=chat)

    blank, _ = _dm("   ")
    from_bot, _ = _dm("hello", bot_author=True)
    await cog.on_message(blank)
    await cog.on_message(from_bot)

    chat.ask.assert_not_awaited()


# ---------- moderation / utilities ----------
async def test_delete_rejects_non_positive_count():
    interaction = MagicMock()
    interaction.response.is_done = MagicMock(return_value=False)
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()

    cog = Moderation(make_bot())
    await cog.mod_delete_message.callback(cog, interaction, 0, True)

    interaction.response.defer.assert_not_awaited()
    assert interaction.response.send_message.await_args.kwargs["ephemeral"] is True


def test_pick_random_word():
    assert pick_random_word("   ") is None
    assert pick_random_word("one two three") in {"one", "two", "three"}


@pytest.mark.parametrize("index", range(len(HELP_CATEGORIES)))
def test_help_pages(index):
    embed = help_page(index)
    assert embed.footer.text == f"📖 Page {index + 1} / {len(HELP_CATEGORIES)}"
    assert embed.fields[0].name == "📌 Commands"


def test_utilities_registers_all_commands():
    cog = Utilities(make_bot())
    names = {command.name for command in cog.get_app_commands()}
    assert names == {"bot_test", "bot_anonymousmessage", "randomchar", "help"}


async def test_bot_test_replies():
    cog = Utilities(make_bot())
    interaction = MagicMock()
    interaction.response.send_message = AsyncMock()

    await cog.ping_test.callback(cog, interaction)

    interaction.response.send_message.assert_awaited_once_with("The robot is running")


async def test_anonymous_message_replies_to_given_message():
    cog = Utilities(make_bot())
    interaction = MagicMock()
    interaction.channel_id = 7
    interaction.response.send_message = AsyncMock()
    interaction.channel.send = AsyncMock()

    await cog.anonymous_message.callback(cog, interaction, "hello", "42")

    assert interaction.response.send_message.await_args.kwargs["ephemeral"] is True
    args, kwargs = interaction.channel.send.await_args
    assert args == ("hello",)
    assert kwargs["reference"].message_id == 42


def test_extension_discovery_skips_helpers():
    names = main.extension_names()
    assert "cogs.music" in names
    assert "cogs.moderation" in names
    assert "cogs.utils" not in names
    assert "cogs.__init__" not in names


# ---------- music ----------
def _music_cog(tmp_path, downloader):
    from cogs.music import Music

    bot = make_bot()
    bot.settings = SimpleNamespace(
        download_dir=str(tmp_path / "downloads"),
        stop_clears_playlist=False,
        playlist_path=str(tmp_path / "playlists.json"),
    )
    cog = Music(bot)
    cog.service.downloader = downloader
    return cog


def _interaction(guild_id=1):
    interaction = MagicMock()
    interaction.guild.id = guild_id
    interaction.response.is_done = MagicMock(return_value=True)
    interaction.response.defer = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    return interaction


async def test_music_add_validates_before_queueing(tmp_path, downloader):
    cog = _music_cog(tmp_path, downloader)

    bad = _interaction()
    await cog.music_add.callback(cog, bad, "BAD")
    assert cog.store.get(1) == []
    assert "not a valid YouTube video" in bad.edit_original_response.await_args.kwargs["content"]

    good = _interaction()
    await cog.music_add.callback(cog, good, "A")
    assert cog.store.get(1) == ["A"]
    assert good.edit_original_response.await_args.kwargs["content"] == "✅ Song added to the playlist!"


async def test_music_remove_unknown_url(tmp_path, downloader):
    cog = _music_cog(tmp_path, downloader)
    cog.store.add(1, "A")

    interaction = _interaction()
    await cog.music_remove.callback(cog, interaction, "Z")

    assert cog.store.get(1) == ["A"]
    assert interaction.edit_original_response.await_args.kwargs["content"] == "❌ The song URL (Z) is not in the playlist."


async def test_music_skip_without_next_song(tmp_path, downloader):
    cog = _music_cog(tmp_path, downloader)
    cog.store.add(1, "A")

    interaction = _interaction()
    await cog.skip_for(interaction)

    assert "no more songs" in interaction.edit_original_response.await_args.kwargs["content"]
    assert cog.store.get(1) == ["A"]


@pytest.mark.parametrize("clears", [False, True])
async def test_music_stop_reply_matches_playlist_policy(tmp_path, downloader, clears):
    cog = _music_cog(tmp_path, downloader)
    cog.stop_clears_playlist = clears
    cog.store.add(1, "A")

    interaction = _interaction()
    interaction.guild.voice_client = None
    await cog.stop_for(interaction)

    content = interaction.edit_original_response.await_args.kwargs["content"]
    assert content.startswith("✅ Playback has been stopped")
    assert ("playlist has been cleared" in content) is clears
    assert cog.store.get(1) == ([] if clears else ["A"])


# ---------- configuración ----------
def _config_interaction():
    interaction = MagicMock()
    interaction.guild.id = 1
    interaction.guild.name = "Test"
    interaction.response.is_done = MagicMock(return_value=False)
    interaction.response.send_message = AsyncMock()
    return interaction


async def test_config_set_writes_to_store(tmp_path):
    from cogs.settings import Settings
    from guildconfig import GuildConfigStore

    store = GuildConfigStore(str(tmp_path / "config.db"))
    await store.start()
    bot = make_bot()
    bot.guild_config = store
    cog = Settings(bot)

    interaction = _config_interaction()
    channel = SimpleNamespace(id=555)
    key = discord.app_commands.Choice(name="Log channel", value="log")
    await cog.config_set.callback(cog, interaction, key, channel)

    assert await store.log_channel_id(1) == 555
    assert "<#555>" in interaction.response.send_message.await_args.kwargs["content"]


async def test_config_set_rejects_text_channel_for_voice_keys(tmp_path):
    from cogs.settings import Settings
    from guildconfig import GuildConfigStore

    store = GuildConfigStore(str(tmp_path / "config.db"))
    await store.start()
    bot = make_bot()
    bot.guild_config = store
    cog = Settings(bot)

    interaction = _config_interaction()
    key = discord.app_commands.Choice(name="Dynamic voice trigger", value="dynamic_voice")
    await cog.config_set.callback(cog, interaction, key, SimpleNamespace(id=9))

    assert await store.base_voice_channel_id(1) is None
    assert "must be a voice channel" in interaction.response.send_message.await_args.kwargs["content"]


async def test_config_set_with_api_backend_points_to_dashboard():
    from cogs.settings import Settings
    from guildconfig import GuildConfigAPI

    bot = make_bot()
    bot.guild_config = GuildConfigAPI("")
    cog = Settings(bot)

    interaction = _config_interaction()
    key = discord.app_commands.Choice(name="Log channel", value="log")
    await cog.config_set.callback(cog, interaction, key, SimpleNamespace(id=1))

    assert "web dashboard" in interaction.response.send_message.await_args.kwargs["content"]


# ---------- errores de comandos ----------
def _errored_interaction(handled=False, done=False):
    interaction = MagicMock()
    interaction.extras = {"handled": True} if handled else {}
    interaction.command.qualified_name = "music_play"
    interaction.response.is_done = MagicMock(return_value=done)
    interaction.response.send_message = AsyncMock()
    return interaction


async def test_command_error_gets_generic_reply():
    interaction = _errored_interaction()
    error = discord.app_commands.AppCommandError("boom")

    await main.TezcaBot.on_app_command_error(MagicMock(), interaction, error)

    interaction.response.send_message.assert_awaited_once_with(main.GENERIC_COMMAND_ERROR, ephemeral=True)


@pytest.mark.parametrize("handled,done", [(True, False), (False, True)])
async def test_command_error_reply_is_skipped(handled, done):
    interaction = _errored_interaction(handled=handled, done=done)

    await main.TezcaBot.on_app_command_error(MagicMock(), interaction, discord.app_commands.AppCommandError("x"))

    interaction.response.send_message.assert_not_awaited()
