"""System clipboard sink backed by pyperclip."""

import asyncio
import logging

import pyperclip

from promptier.interfaces.clipboard import BaseClipboard

logger = logging.getLogger(__name__)


class SystemClipboard(BaseClipboard):
    """Copies text to the operating system clipboard.

    pyperclip picks the platform mechanism (pbcopy, clip.exe, xclip, xsel,
    wl-copy). Writes run in a worker thread because those tools are
    external processes.
    """

    @property
    def name(self) -> str:
        return "clipboard"

    async def write_text(self, text: str) -> bool:
        try:
            await asyncio.to_thread(pyperclip.copy, text)
        except pyperclip.PyperclipException as e:
            logger.error(f"Error copying to clipboard: {e}")
            return False

        logger.debug(f"Copied {len(text)} characters to the clipboard")
        return True
