from enum import Enum
from typing import Protocol, Sequence

class PromptAction(str, Enum):
    OK = "ok"
    CANCEL = "cancel"
    DISMISSED = "dismissed"

class ConfirmationPrompt(Protocol):
    """A blocking confirmation with one or two actions, independent of any UI toolkit"""

    async def confirm(self, title: str, message: str, actions: Sequence[PromptAction]) -> PromptAction:
        ...

class AutoConfirmPrompt:
    """Answers every prompt with the first offered action (headless clients, tests)"""

    def __init__(self):
        self.shown = []

    async def confirm(self, title: str, message: str, actions: Sequence[PromptAction]) -> PromptAction:
        self.shown.append((title, message))
        return actions[0] if actions else PromptAction.DISMISSED
