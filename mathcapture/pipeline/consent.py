"""
Processing consent.

Before any data leaves the machine the pipeline asks a ConsentProvider.
With the privacy prompt disabled, AutoConsent grants every request.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, Union

from config.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class FileInfo:
    """What is about to be sent."""
    name: str
    size: int
    type: str


class ConsentProvider(Protocol):
    async def request_processing_consent(self, info: FileInfo) -> bool:
        ...


class AutoConsent:
    """Grants every request (privacy prompt disabled)."""

    def __init__(self):
        self.files_processed = 0

    async def request_processing_consent(self, info: FileInfo) -> bool:
        self.files_processed += 1
        logger.debug(f"Consent granted automatically for {info.name} ({info.size} bytes)")
        return True


class CallbackConsent:
    """
    Asks a callable, sync or async, e.g. a CLI prompt.

    Usage:
        consent = CallbackConsent(lambda info: input(f"Send {info.name}? [y/N] ") == "y")
    """

    def __init__(self, callback: Callable[[FileInfo], Union[bool, Awaitable[bool]]]):
        self.callback = callback

    async def request_processing_consent(self, info: FileInfo) -> bool:
        answer: Any = self.callback(info)
        if inspect.isawaitable(answer):
            answer = await answer
        granted = bool(answer)
        logger.info(f"Processing consent {'granted' if granted else 'declined'} for {info.name}")
        return granted
