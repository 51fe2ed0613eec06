"""Mutation handlers for admin commands.

Each handler is a narrow write. Authorization and auditing happen in the
processor, once per command, so handlers do neither.
"""

import logging

from chatwarden.commands.kinds import (
    AnnouncementPayload,
    BackgroundPayload,
    ColorPayload,
    CommandKind,
    DefaultRoomPayload,
    DeleteMessagePayload,
    EmptyPayload,
    NicknamePayload,
    RoomNamePayload,
    RoomPayload,
    SlowmodePayload,
    TargetPayload,
    TitlePayload,
    UrlPayload,
)
from chatwarden.commands.registry import CommandRegistry, HandlerContext
from chatwarden.models import Announcement, ModerationRecord, Nickname, ProfileImage
from chatwarden.rooms import RoomDirectory
from chatwarden.store import paths

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_IMAGE = "default"

registry = CommandRegistry()


def _record(ctx: HandlerContext) -> dict:
    return ModerationRecord(issuer=ctx.actor_id, timestamp=ctx.clock()).to_store()


# User control
@registry.handler(CommandKind.BAN)
async def ban_user(payload: TargetPayload, ctx: HandlerContext) -> None:
    """Ban the target and signal their sessions to end."""
    await ctx.store.set(paths.ban(payload.target), _record(ctx))
    await ctx.store.set(paths.force_logout(payload.target), True)


@registry.handler(CommandKind.UNBAN)
async def unban_user(payload: TargetPayload, ctx: HandlerContext) -> None:
    await ctx.store.remove(paths.ban(payload.target))


@registry.handler(CommandKind.MUTE)
async def mute_user(payload: TargetPayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.mute(payload.target), _record(ctx))


@registry.handler(CommandKind.UNMUTE)
async def unmute_user(payload: TargetPayload, ctx: HandlerContext) -> None:
    await ctx.store.remove(paths.mute(payload.target))


@registry.handler(CommandKind.SHADOWBAN)
async def shadowban_user(payload: TargetPayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.shadowban(payload.target), _record(ctx))


@registry.handler(CommandKind.UNSHADOWBAN)
async def unshadowban_user(payload: TargetPayload, ctx: HandlerContext) -> None:
    await ctx.store.remove(paths.shadowban(payload.target))


@registry.handler(CommandKind.FORCE_LOGOUT)
async def force_logout(payload: TargetPayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.force_logout(payload.target), True)


@registry.handler(CommandKind.CHANGE_NICKNAME)
async def change_nickname(payload: NicknamePayload, ctx: HandlerContext) -> None:
    nickname = Nickname(
        name=payload.new_name, issuer=ctx.actor_id, timestamp=ctx.clock()
    )
    await ctx.store.set(paths.nickname(payload.target), nickname.to_store())


@registry.handler(CommandKind.RESET_PROFILE_IMAGE)
async def reset_profile_image(payload: TargetPayload, ctx: HandlerContext) -> None:
    image = ProfileImage(
        url=DEFAULT_PROFILE_IMAGE, issuer=ctx.actor_id, timestamp=ctx.clock()
    )
    await ctx.store.set(paths.profile_image(payload.target), image.to_store())


# Chat moderation
@registry.handler(CommandKind.CLEAR_CHAT)
async def clear_chat(payload: DefaultRoomPayload, ctx: HandlerContext) -> None:
    await ctx.store.remove(paths.messages(payload.room))


@registry.handler(CommandKind.DELETE_USER_MESSAGES)
async def delete_user_messages(payload: TargetPayload, ctx: HandlerContext) -> None:
    """Remove every public message the target sent, in all rooms."""
    target = paths.path_key(payload.target)
    rooms = list((await ctx.store.get(paths.ROOMS) or {}).keys())
    if paths.DEFAULT_ROOM not in rooms:
        rooms.append(paths.DEFAULT_ROOM)

    deleted = 0
    for room in rooms:
        messages = await ctx.store.get(paths.messages(room)) or {}
        doomed = {
            key: None
            for key, message in messages.items()
            if isinstance(message, dict)
            and paths.path_key(message.get("senderId", "")) == target
        }
        if doomed:
            await ctx.store.update(paths.messages(room), doomed)
            deleted += len(doomed)
    logger.info("Deleted %d messages from %s", deleted, payload.target)


@registry.handler(CommandKind.DELETE_MESSAGE)
async def delete_message(payload: DeleteMessagePayload, ctx: HandlerContext) -> None:
    await ctx.store.remove(paths.message(payload.room, payload.msg_key))


@registry.handler(CommandKind.GLOBAL_ANNOUNCEMENT)
async def global_announcement(
    payload: AnnouncementPayload, ctx: HandlerContext
) -> None:
    announcement = Announcement(
        text=payload.text, issuer=ctx.actor_id, timestamp=ctx.clock()
    )
    await ctx.store.append(paths.ANNOUNCEMENTS, announcement.to_store())


# Room control
@registry.handler(CommandKind.LOCK_ROOM)
async def lock_room(payload: RoomPayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.join(paths.room(payload.room), "locked"), True)


@registry.handler(CommandKind.UNLOCK_ROOM)
async def unlock_room(payload: RoomPayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.join(paths.room(payload.room), "locked"), False)


@registry.handler(CommandKind.SET_SLOWMODE)
async def set_slowmode(payload: SlowmodePayload, ctx: HandlerContext) -> None:
    await ctx.store.set(
        paths.join(paths.room(payload.room), "slowmodeMs"), payload.ms_delay
    )


@registry.handler(CommandKind.CREATE_ROOM)
async def create_room(payload: RoomNamePayload, ctx: HandlerContext) -> None:
    await RoomDirectory(ctx.store, ctx.clock).create_room(
        payload.room_name, ctx.actor_id
    )


@registry.handler(CommandKind.DELETE_ROOM)
async def delete_room(payload: RoomNamePayload, ctx: HandlerContext) -> None:
    await RoomDirectory(ctx.store, ctx.clock).delete_room(payload.room_name)


@registry.handler(CommandKind.FREEZE_SERVER)
async def freeze_server(payload: EmptyPayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.SERVER_FROZEN, True)


@registry.handler(CommandKind.UNFREEZE_SERVER)
async def unfreeze_server(payload: EmptyPayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.SERVER_FROZEN, False)


# Site customization
@registry.handler(CommandKind.SET_ACCENT_COLOR)
async def set_accent_color(payload: ColorPayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.join(paths.SITE_CUSTOM, "accentColor"), payload.color_hex)


@registry.handler(CommandKind.SET_BACKGROUND)
async def set_background(payload: BackgroundPayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.join(paths.SITE_CUSTOM, "bgUrl"), payload.url)


@registry.handler(CommandKind.SET_SERVER_LOGO)
async def set_server_logo(payload: UrlPayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.join(paths.SITE_CUSTOM, "logoUrl"), payload.url)


@registry.handler(CommandKind.SET_SERVER_TITLE)
async def set_server_title(payload: TitlePayload, ctx: HandlerContext) -> None:
    await ctx.store.set(paths.join(paths.SITE_CUSTOM, "siteTitle"), payload.title)
