"""Demo commands served by the ``chatroute`` console script.

Each handler shows one part of the response builder. Registration
order matters: ``/echo`` with an argument is registered before the
bare ``/echo`` fallback.
"""

import random

from .bot import Bot
from .models import ChatAction, Message

HELP_TEXT = (
    "Commands:\n"
    "/start - say hello\n"
    "/help - this message\n"
    "/echo <text> - repeat <text>\n"
    "/hardecho <text> - repeat <text> and ask for a reply\n"
    "/photo <ref> [caption] - send a photo by file_id, URL or path\n"
    "/location <lat> <lon> - send a map location\n"
    "/forwardme - forward your message back to you\n"
    "/sendaction - show a random chat action\n"
    "/keyboard - show a reply keyboard\n"
    "/hidekeyboard - remove it again"
)


async def handle_start(bot: Bot, message: Message, command: str, args) -> None:
    await bot.answer(message).text("Hi! Send /help to see what I can do.").end()


async def handle_help(bot: Bot, message: Message, command: str, args) -> None:
    await bot.answer(message).text(HELP_TEXT).disable_preview().end()


async def handle_echo(bot: Bot, message: Message, command: str, args) -> None:
    await bot.answer(message).text(args[0]).reply_to(message.message_id).end()


async def handle_echo_usage(bot: Bot, message: Message, command: str, args) -> None:
    await bot.answer(message).text("Usage: /echo <text>").end()


async def handle_hard_echo(bot: Bot, message: Message, command: str, args) -> None:
    await bot.answer(message).text(args[0]).force_reply().end()


async def handle_photo(bot: Bot, message: Message, command: str, args) -> None:
    ref, caption = args
    response = bot.answer(message).photo(ref)
    if caption is not None:
        response.caption(caption)
    await response.end()


async def handle_location(bot: Bot, message: Message, command: str, args) -> None:
    latitude, longitude = (float(a) for a in args)
    await bot.answer(message).location(latitude, longitude).end()


async def handle_forward_me(bot: Bot, message: Message, command: str, args) -> None:
    await bot.answer(message).forward(message.chat_id, message.message_id).end()


async def handle_send_action(bot: Bot, message: Message, command: str, args) -> None:
    await bot.answer(message).action(random.choice(list(ChatAction))).end()


async def handle_keyboard(bot: Bot, message: Message, command: str, args) -> None:
    rows = [["/start", "/help"], ["/hidekeyboard"]]
    await bot.answer(message).text("There you go!").keyboard(rows, resize=True).end()


async def handle_hide_keyboard(bot: Bot, message: Message, command: str, args) -> None:
    await bot.answer(message).text("Hidden.").hide_keyboard().end()


def register_demo_commands(bot: Bot) -> Bot:
    """Register the demo command set on bot."""
    return (
        bot.slash_command("start", handle_start)
        .slash_command("help", handle_help)
        .slash_command(r"echo (.+)", handle_echo)
        .slash_command("echo", handle_echo_usage)
        .slash_command(r"hardecho (.+)", handle_hard_echo)
        .slash_command(r"photo (\S+)(?: (.+))?", handle_photo)
        .slash_command(r"location (-?\d+(?:\.\d+)?) (-?\d+(?:\.\d+)?)", handle_location)
        .slash_command("forwardme", handle_forward_me)
        .slash_command("sendaction", handle_send_action)
        .slash_command("keyboard", handle_keyboard)
        .slash_command("hidekeyboard", handle_hide_keyboard)
    )
