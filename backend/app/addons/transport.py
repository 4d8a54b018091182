from __future__ import annotations

import logging
from collections import deque
from typing import Any, Deque, Dict, List, Literal, Optional

from .domain.models import OutboundMessage

logger = logging.getLogger("addon_manager.transport")

AddonStore = Literal["remoteAddonStore", "localAddonStore"]


class MessageBus:
    """
    Outbound messages for the UI.

    Messages queue up in order until the UI drains them. The oldest ones are
    dropped once `maxlen` is reached, so an absent UI cannot grow the queue
    without bound.
    """

    def __init__(self, maxlen: int = 1000):
        self._messages: Deque[OutboundMessage] = deque(maxlen=maxlen)

    def send_message(self, command: str, data: Optional[Dict[str, Any]] = None) -> None:
        self._messages.append(OutboundMessage(command=command, data=data or {}))
        logger.debug("Queued message %s", command)

    def set_loading_state(self, store: AddonStore, loading: bool) -> None:
        self.send_message(store, {"prop": "loading", "value": loading})

    def show_message(self, message: str, actions: Optional[List[str]] = None) -> None:
        """Ask the UI to show `message` with optional recovery action buttons."""
        logger.info("Showing message: %s (actions=%s)", message, actions or [])
        self.send_message("showMessage", {"message": message, "actions": list(actions or [])})

    def drain(self) -> List[OutboundMessage]:
        messages = list(self._messages)
        self._messages.clear()
        return messages
