"""Helpers for message buttons and modal components.

All builders return plain dicts with string-coerced fields, ready to
be placed in a reply payload.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Union


class ButtonStyle(str, Enum):
    """Standard button styles."""
    PRIMARY = "primary"
    SUCCESS = "success"
    DANGER = "danger"
    SECONDARY = "secondary"


def create_button(
    id: Any, label: Any, style: Union[ButtonStyle, str] = ButtonStyle.PRIMARY
) -> Dict[str, str]:
    """Build a button for a message's action row."""
    return {
        "id": str(id),
        "label": str(label),
        "style": ButtonStyle(style).value,
    }


class _ComponentFactory:
    """Builders for modal components (``button.respond``)."""

    @staticmethod
    def text(content: Any) -> Dict[str, str]:
        """Static text block."""
        return {"type": "text", "content": str(content)}

    @staticmethod
    def input(id: Any, label: Any, placeholder: Any = "") -> Dict[str, str]:
        """Single-line text input."""
        return {
            "id": str(id),
            "type": "input",
            "label": str(label),
            "placeholder": str(placeholder),
        }

    @staticmethod
    def dropdown(
        id: Any, label: Any, items: Iterable[Mapping[str, Any]] = ()
    ) -> Dict[str, Any]:
        """Dropdown selection; each item needs ``id`` and ``label``."""
        options: List[Dict[str, str]] = [
            {"id": str(item["id"]), "label": str(item["label"])} for item in items
        ]
        return {
            "id": str(id),
            "type": "dropdown",
            "label": str(label),
            "items": options,
        }


create_component = _ComponentFactory()
