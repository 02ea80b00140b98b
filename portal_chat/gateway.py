from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import MisconfiguredError, ProviderError, RateLimitedError
from .providers import GenerationProvider


logger = logging.getLogger(__name__)


class Source(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class GenerationResult:
    text: str
    source: Source
    model: str


class GenerationGateway:
    """Primary-then-secondary text generation.

    At most one attempt per provider, strictly sequential. A rate-limit signal
    from the primary is propagated as-is and never triggers the fallback; any
    other primary failure (including blank output) falls through to the
    secondary when one is configured.
    """

    def __init__(
        self,
        primary: Optional[GenerationProvider] = None,
        secondary: Optional[GenerationProvider] = None,
    ) -> None:
        self._primary = primary
        self._secondary = secondary

    @property
    def primary(self) -> Optional[GenerationProvider]:
        return self._primary

    @property
    def secondary(self) -> Optional[GenerationProvider]:
        return self._secondary

    @property
    def available(self) -> bool:
        return self._primary is not None or self._secondary is not None

    def ensure_available(self) -> None:
        if not self.available:
            raise MisconfiguredError("Server misconfigured: no generation provider available")

    async def generate(self, prompt: str) -> GenerationResult:
        self.ensure_available()

        if self._primary is not None:
            try:
                text = await self._primary.generate(prompt)
                return GenerationResult(text=text, source=Source.PRIMARY, model=self._primary.model)
            except RateLimitedError:
                raise
            except ProviderError as e:
                if self._secondary is None:
                    raise
                logger.warning(
                    "Primary provider %s failed (%s: %s); falling back to %s",
                    self._primary.name,
                    e.kind.value,
                    e.message,
                    self._secondary.name,
                )

        text = await self._secondary.generate(prompt)
        return GenerationResult(text=text, source=Source.SECONDARY, model=self._secondary.model)
