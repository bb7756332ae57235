"""Local stdin/stdout client for running switchboard without a chat platform.

Each input line becomes a message from a local user. A line of the form
``:click <button-id>`` is delivered as a button click instead. Replies
and activity changes are written to the output stream.
"""

import asyncio
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TextIO

import structlog

logger = structlog.get_logger("switchboard.bot")

CLICK_PREFIX = ":click"


@dataclass
class ConsoleUser:
    id: str
    username: str
    client: Optional["ConsoleClient"] = field(default=None, repr=False)

    def set_activity(self, activity: Dict[str, Any]) -> None:
        if self.client is not None:
            self.client.activity = activity
            self.client.write(f"* status: {activity.get('action', '')} {activity.get('name', '')}".rstrip())


@dataclass
class ConsoleMessage:
    content: str
    user: ConsoleUser
    client: "ConsoleClient" = field(repr=False)

    async def reply(self, payload: Any) -> "ConsoleMessage":
        text = self.client.render(payload)
        self.client.write(text)
        return ConsoleMessage(content=text, user=self.client.user, client=self.client)

    async def edit(self, payload: Any) -> "ConsoleMessage":
        self.content = self.client.render(payload)
        self.client.write(f"(edited) {self.content}")
        return self


@dataclass
class ConsoleButton:
    id: str
    user: ConsoleUser
    client: "ConsoleClient" = field(repr=False)

    async def respond(self, payload: Any) -> None:
        self.client.write(self.client.render(payload))


class ConsoleClient:
    """Minimal client: one bot user, one local user, line-based I/O."""

    def __init__(
        self,
        input_stream: TextIO = sys.stdin,
        output_stream: TextIO = sys.stdout,
        username: str = "local",
    ):
        self._in = input_stream
        self._out = output_stream
        self.user = ConsoleUser(id="bot", username="switchboard", client=self)
        self.local_user = ConsoleUser(id="console", username=username)
        self.activity: Optional[Dict[str, Any]] = None
        self.commands = None

    def write(self, text: str) -> None:
        self._out.write(text + "\n")
        self._out.flush()

    @staticmethod
    def render(payload: Any) -> str:
        """Flatten a reply payload (string or mapping) to display text."""
        if isinstance(payload, str):
            return payload
        if isinstance(payload, dict):
            lines: List[str] = [str(payload.get("content", ""))]
            for button in payload.get("buttons", []) or []:
                lines.append(f"  [{button.get('label')}] (:click {button.get('id')})")
            return "\n".join(line for line in lines if line)
        return str(payload)

    async def run(self, bot) -> None:
        """Start ``bot`` and feed it input lines until EOF."""
        await bot.on_ready()
        try:
            while True:
                line = await asyncio.to_thread(self._in.readline)
                if not line:
                    logger.info("console_eof")
                    break
                line = line.rstrip("\n")
                if line.startswith(CLICK_PREFIX + " "):
                    button_id = line[len(CLICK_PREFIX):].strip()
                    button = ConsoleButton(id=button_id, user=self.local_user, client=self)
                    if not await bot.on_button_click(button):
                        self.write(f"* nobody handled button {button_id!r}")
                    continue
                message = ConsoleMessage(content=line, user=self.local_user, client=self)
                await bot.on_message(message)
        finally:
            await bot.stop()
