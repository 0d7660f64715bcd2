"""Resilient narrator wrapper.

Decorates any :class:`~crawl_engine.narrator.base.Narrator` so that every
call finishes within a deadline and always returns a valid value. Calls
run on a small thread pool; a timeout, an exception or an unusable
answer is logged as a warning and replaced with the matching fallback
from :mod:`crawl_engine.narrator.fallback`.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError

from crawl_engine.core.exceptions import NarratorResponseError
from crawl_engine.core.logging import get_logger
from crawl_engine.models.enums import EventType
from crawl_engine.models.records import ItemDraft
from crawl_engine.narrator import fallback
from crawl_engine.narrator.base import BonusStat, Narrator, NarratorContext, StatBoost


logger = get_logger(__name__)

T = TypeVar("T")


class ResilientNarrator:
    """Narrator that never raises and never stalls a turn.

    Args:
        inner: The narrator doing the real work.
        timeout_seconds: Deadline for each call.
        max_workers: Threads available for concurrent narrator calls.

    Example:
        >>> narrator = ResilientNarrator(OpenRouterNarrator(...), timeout_seconds=8)
        >>> narrator.generate_event_type(context)
        <EventType.ITEM_DROP: 'Item_Drop'>
    """

    def __init__(
        self,
        inner: Narrator,
        *,
        timeout_seconds: float = 8.0,
        max_workers: int = 4,
    ) -> None:
        self._inner = inner
        self._timeout = timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="narrator",
        )

    @property
    def inner(self) -> Narrator:
        return self._inner

    def close(self) -> None:
        """Stop the worker pool without waiting for abandoned calls."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> ResilientNarrator:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _resolve(
        self,
        operation: str,
        future: Future[Any],
        validate: Callable[[Any], T],
        default: Callable[[], T],
    ) -> T:
        try:
            return validate(future.result(timeout=self._timeout))
        except FuturesTimeoutError:
            future.cancel()
            logger.warning(
                "Narrator call timed out, using fallback",
                operation=operation,
                timeout_seconds=self._timeout,
            )
        except Exception as exc:
            logger.warning(
                "Narrator call failed, using fallback",
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        return default()

    def _call(
        self,
        operation: str,
        fn: Callable[..., Any],
        validate: Callable[[Any], T],
        default: Callable[[], T],
        *args: Any,
    ) -> T:
        return self._resolve(operation, self._executor.submit(fn, *args), validate, default)

    # -------------------------------------------------------------------------
    # Narrator contract
    # -------------------------------------------------------------------------

    def generate_event_type(self, context: NarratorContext) -> EventType:
        return self._call(
            "generate_event_type",
            self._inner.generate_event_type,
            _validate_event_type,
            fallback.fallback_event_type,
            context,
        )

    def generate_description(
        self,
        event_type: EventType,
        context: NarratorContext,
        loot: ItemDraft | None = None,
    ) -> str:
        return self._call(
            "generate_description",
            self._inner.generate_description,
            _validate_description,
            lambda: fallback.fallback_description(event_type, loot),
            event_type,
            context,
            loot,
        )

    def request_stat_boost(self, context: NarratorContext, event_type: EventType) -> StatBoost:
        return self._call(
            "request_stat_boost",
            self._inner.request_stat_boost,
            StatBoost.model_validate,
            fallback.fallback_stat_boost,
            context,
            event_type,
        )

    def request_item_drop(self, context: NarratorContext) -> ItemDraft:
        return self._call(
            "request_item_drop",
            self._inner.request_item_drop,
            ItemDraft.model_validate,
            fallback.fallback_item_drop,
            context,
        )

    def request_bonus_stat(self, context: NarratorContext) -> BonusStat:
        return self._call(
            "request_bonus_stat",
            self._inner.request_bonus_stat,
            _validate_bonus_stat,
            fallback.fallback_bonus_stat,
            context,
        )

    def request_loot_and_bonus(self, context: NarratorContext) -> tuple[ItemDraft, BonusStat]:
        """Request loot and a bonus stat concurrently.

        Both answers are used only if both arrive in time and are valid;
        otherwise both fall back, so a reward is never half applied.

        Returns:
            The loot item and the bonus stat.
        """
        loot_future = self._executor.submit(self._inner.request_item_drop, context)
        bonus_future = self._executor.submit(self._inner.request_bonus_stat, context)
        done, pending = wait(
            [loot_future, bonus_future],
            timeout=self._timeout,
            return_when=FIRST_EXCEPTION,
        )
        try:
            for future in done:
                error = future.exception()
                if error is not None:
                    raise error
            if pending:
                raise FuturesTimeoutError()
            loot = ItemDraft.model_validate(loot_future.result())
            bonus = _validate_bonus_stat(bonus_future.result())
        except FuturesTimeoutError:
            logger.warning(
                "Narrator reward calls timed out, using fallbacks",
                operation="request_loot_and_bonus",
                timeout_seconds=self._timeout,
            )
        except Exception as exc:
            logger.warning(
                "Narrator reward calls failed, using fallbacks",
                operation="request_loot_and_bonus",
                error=str(exc),
                error_type=type(exc).__name__,
            )
        else:
            return loot, bonus
        for future in pending:
            future.cancel()
        return fallback.fallback_item_drop(), fallback.fallback_bonus_stat()


# =============================================================================
# Answer Validation
# =============================================================================


def _validate_event_type(value: Any) -> EventType:
    try:
        return EventType(value)
    except ValueError as exc:
        raise NarratorResponseError(
            f"Unknown event type {value!r}",
            operation="generate_event_type",
        ) from exc


def _validate_description(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise NarratorResponseError("Empty description", operation="generate_description")
    return value.strip()


def _validate_bonus_stat(value: Any) -> BonusStat:
    try:
        bonus = BonusStat.model_validate(value)
    except PydanticValidationError as exc:
        raise NarratorResponseError(
            "Malformed bonus stat",
            operation="request_bonus_stat",
        ) from exc
    return bonus.model_copy(update={"value": fallback.clamp_bonus_value(bonus.value)})


__all__ = ["ResilientNarrator"]
