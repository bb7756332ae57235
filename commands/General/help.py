"""Help command: lists loaded commands grouped by category."""


def _detail(descriptor):
    lines = [
        f"{descriptor.name} - {descriptor.description or 'No description provided'}",
        f"Category: {descriptor.category}",
        f"Usage: {descriptor.usage}",
    ]
    if descriptor.aliases:
        lines.append(f"Aliases: {', '.join(descriptor.aliases)}")
    if descriptor.cooldown_seconds:
        lines.append(f"Cooldown: {descriptor.cooldown_seconds:g}s")
    return "\n".join(lines)


def render_help(registry, name=None):
    """Build the help text for a registry, or for one command in it."""
    if registry is None or len(registry) == 0:
        return "❌ No commands are currently loaded."

    if name:
        descriptor = registry.get(name.lower())
        if descriptor is None:
            return f"❌ Unknown command: {name}"
        # alias entries are copies of the command they were registered with
        return _detail(descriptor)

    sections = []
    for category, names in registry.categories().items():
        lines = [f"**{category}**"]
        for command_name in names:
            descriptor = registry.get(command_name)
            lines.append(f"• {command_name} - {descriptor.description or 'No description provided'}")
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


async def execute(message, args, client):
    registry = getattr(client, "commands", None)
    await message.reply(render_help(registry, args[0] if args else None))


command = {
    "name": "help",
    "description": "Displays all available commands, grouped by category.",
    "usage": "help [command]",
    "aliases": ["h", "commands"],
    "execute": execute,
}
