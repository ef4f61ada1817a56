"""
Mock AI Client for Testing
Replays scripted responses without calling the actual API
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class Delayed:
    """Script item: wait `seconds`, then behave like `response`"""
    seconds: float
    response: Any = ""


class ScriptedAIClient:
    """
    AI client that returns scripted responses in order.

    Script items:
    - str / dict: returned as-is
    - Exception instance: raised
    - Delayed: sleeps first, then handled like its response
    """

    def __init__(self, responses: Optional[List[Any]] = None, default: Any = ""):
        self.responses = list(responses or [])
        self.default = default
        self.model = "mock-model"
        self.calls: List[Dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_prompt(self) -> Optional[str]:
        return self.calls[-1]["prompt"] if self.calls else None

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        response_format: str = "text"
    ) -> Any:
        self.calls.append({
            "prompt": prompt,
            "system_instruction": system_instruction,
            "response_format": response_format,
        })

        item = self.responses.pop(0) if self.responses else self.default
        if isinstance(item, Delayed):
            await asyncio.sleep(item.seconds)
            item = item.response
        if isinstance(item, BaseException):
            raise item
        return item
