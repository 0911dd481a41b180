"""
Timeout and retry wrappers shared by both pipelines.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from car_analysis.core.errors import RunCancelledError, ToolTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_DELAY_SECONDS = 0.3


async def with_timeout(awaitable: Awaitable[T], seconds: float) -> T:
    """
    Race an awaitable against a timeout.

    Raises:
        ToolTimeoutError: the awaitable did not finish in time ("tool-timeout").
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning(f"⏱️ Guarded call exceeded {seconds}s timeout")
        raise ToolTimeoutError()


async def with_retries(
    fn: Callable[[], Awaitable[T]],
    retries: int = 2,
    base_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    give_up_on: Tuple[Type[BaseException], ...] = (RunCancelledError,),
    label: str = "operation",
) -> T:
    """
    Call ``fn`` until it succeeds, retrying up to ``retries`` times.

    The wait before retry ``n`` is ``base_delay * n`` seconds (linear
    backoff). Exceptions listed in ``give_up_on`` are raised immediately.
    The last failure is re-raised once the retries are used up.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except give_up_on:
            raise
        except Exception as e:
            if attempt >= retries:
                logger.error(f"❌ {label} failed after {attempt + 1} attempts: {e}")
                raise
            attempt += 1
            delay = base_delay * attempt
            logger.warning(f"🔄 {label} failed (attempt {attempt}/{retries + 1}), retrying in {delay:.2f}s: {e}")
            await asyncio.sleep(delay)
