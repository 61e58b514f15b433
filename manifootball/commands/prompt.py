"""Interactive yes/no/quit prompts for the market commands."""

import asyncio
from typing import Optional, Union

from rich.console import Console
from rich.prompt import Prompt

YES = "Y"
NO = "N"
QUIT = "Q"


class Prompter:
    """Asks questions on the terminal without blocking the event loop."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    async def _ask(self, question: str) -> str:
        loop = asyncio.get_running_loop()
        answer = await loop.run_in_executor(
            None, lambda: Prompt.ask(question, console=self.console, default="", show_default=False)
        )
        return answer.strip().upper()

    async def answer(self, question: str) -> str:
        loop = asyncio.get_running_loop()
        answer = await loop.run_in_executor(None, lambda: Prompt.ask(question, console=self.console))
        return answer.strip()

    async def confirm(self, question: str) -> str:
        """Returns "Y", "Q" or "N" (anything else)."""
        response = await self._ask(f"{question} [Y/N/Q] (N)")
        return response if response in (YES, QUIT) else NO

    async def select(self, question: str, default: Union[int, str] = NO) -> Union[int, str]:
        """Returns the 1-based choice, "N" or "Q"."""
        response = await self._ask(f"{question} [#/N/Q] ({default})")
        if response.isdigit():
            return int(response)
        if response in (QUIT, NO):
            return response
        return default
