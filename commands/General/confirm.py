"""Confirm command: asks a yes/no question with buttons."""

from switchboard.buttons import ButtonStyle, create_button

BUTTON_PREFIX = "confirm:"


async def execute(message, args, client):
    question = " ".join(args) or "Are you sure?"
    await message.reply({
        "content": question,
        "buttons": [
            create_button(f"{BUTTON_PREFIX}yes", "Yes", ButtonStyle.SUCCESS),
            create_button(f"{BUTTON_PREFIX}no", "No", ButtonStyle.DANGER),
        ],
    })


async def on_button_click(button, client):
    if not str(button.id).startswith(BUTTON_PREFIX):
        return False
    answer = str(button.id)[len(BUTTON_PREFIX):]
    await button.respond(f"You picked: {answer}")
    return True


command = {
    "name": "confirm",
    "description": "Asks a yes/no question with buttons.",
    "usage": "confirm [question]",
    "cooldown": 5,
    "execute": execute,
    "on_button_click": on_button_click,
}
