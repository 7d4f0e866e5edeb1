# services/router.py
"""
Intent resolver: runs the classification tiers in order and stops at the
first one that commits to a command.

    PatternMatcher -> RemoteIntentClassifier -> KeywordFallback -> UNRESOLVED

A failing tier (error, timeout, garbage) is logged and skipped; it never
fails the message.
"""

import asyncio
import logging
from typing import Optional, Sequence

from core.command import Command
from core.errors import ClassificationFailure
from core.intent import ClassificationResult
from services.keyword_fallback import KeywordFallback
from services.pattern_matcher import PatternMatcher
from services.strategy import IntentStrategy

logger = logging.getLogger("intent_router")

DEFAULT_REMOTE_TIMEOUT = 8.0


class IntentResolver:

    def __init__(
        self,
        strategies: Sequence[IntentStrategy],
        remote_timeout: float = DEFAULT_REMOTE_TIMEOUT,
    ):
        self.strategies = list(strategies)
        self.remote_timeout = remote_timeout

    async def resolve_intent(self, text: str) -> Optional[ClassificationResult]:
        """
        First accepted tier result, or None when every tier declined.
        """
        for strategy in self.strategies:
            result = await self._run(strategy, text)
            if result is not None and result.resolved:
                logger.info(
                    f"[CASCADE] tier={strategy.name} command={result.command.value} "
                    f"confidence={result.confidence:.2f}"
                )
                return result
        logger.info(f"[CASCADE] unresolved after {len(self.strategies)} tiers")
        return None

    async def resolve(self, text: str) -> Command:
        result = await self.resolve_intent(text)
        return result.command if result is not None else Command.UNRESOLVED

    async def _run(self, strategy: IntentStrategy, text: str) -> Optional[ClassificationResult]:
        try:
            if strategy.performs_io:
                return await asyncio.wait_for(strategy.classify(text), timeout=self.remote_timeout)
            return await strategy.classify(text)
        except asyncio.TimeoutError:
            logger.warning(f"[CASCADE] tier={strategy.name} timed out after {self.remote_timeout}s")
        except ClassificationFailure as e:
            logger.warning(f"[CASCADE] tier={strategy.name} failed: {e}")
        except Exception:
            logger.exception(f"[CASCADE] tier={strategy.name} raised unexpectedly")
        return None


def build_default_resolver(
    remote: Optional[IntentStrategy] = None,
    remote_timeout: float = DEFAULT_REMOTE_TIMEOUT,
) -> IntentResolver:
    strategies: list[IntentStrategy] = [PatternMatcher()]
    if remote is not None:
        strategies.append(remote)
    strategies.append(KeywordFallback())
    return IntentResolver(strategies, remote_timeout=remote_timeout)
