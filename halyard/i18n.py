"""
Message translation used for framework-generated messages.

A translator maps ``(category, message, params)`` to text. Messages are
looked up in per-category catalogs; a missing entry falls back to the
message itself. ``{placeholder}`` tokens are then substituted literally.
"""

from typing import Dict, Mapping, Optional


def substitute(message: str, params: Optional[Mapping[str, object]] = None) -> str:
    """Replace each ``params`` key occurring in ``message`` with its value."""
    if not params:
        return message
    for key, value in params.items():
        message = message.replace(key, str(value))
    return message


class MessageTranslator:
    """
    Catalog-backed translator.

    Example:
        translator = MessageTranslator({
            "base": {'Your request is invalid.': "Requête invalide."},
        })
        translator.translate("base", "Your request is invalid.")
    """

    def __init__(self, catalogs: Optional[Dict[str, Dict[str, str]]] = None, locale: str = "en"):
        self.catalogs: Dict[str, Dict[str, str]] = {k: dict(v) for k, v in (catalogs or {}).items()}
        self.locale = locale

    def add(self, category: str, messages: Mapping[str, str]) -> None:
        self.catalogs.setdefault(category, {}).update(messages)

    def translate(
        self,
        category: str,
        message: str,
        params: Optional[Mapping[str, object]] = None,
    ) -> str:
        translated = self.catalogs.get(category, {}).get(message, message)
        return substitute(translated, params)

    def __repr__(self) -> str:
        return f"<MessageTranslator locale={self.locale!r} categories={sorted(self.catalogs)}>"
