"""In-process clipboard sink."""

from promptier.interfaces.clipboard import BaseClipboard


class InMemoryClipboard(BaseClipboard):
    """Keeps copied text in memory; used headless and in tests.

    Set ``fail`` to simulate an unavailable clipboard.
    """

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.history: list[str] = []

    @property
    def name(self) -> str:
        return "memory clipboard"

    @property
    def text(self) -> str | None:
        return self.history[-1] if self.history else None

    async def write_text(self, text: str) -> bool:
        if self.fail:
            return False
        self.history.append(text)
        return True
