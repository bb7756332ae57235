"""Ping command: reports reply latency."""

import time


async def execute(message, args, client):
    start = time.monotonic()
    sent = await message.reply("Pong!")

    latency = int((time.monotonic() - start) * 1000)
    edit = getattr(sent, "edit", None)
    if edit is not None:
        await edit(f"Pong! ({latency}ms)")


command = {
    "name": "ping",
    "description": "Shows the bot's message latency.",
    "execute": execute,
}
