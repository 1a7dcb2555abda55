from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

from taskboard.config import SETTINGS
from taskboard.domain.errors import StepFailedError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StepRunner:
    """Runs one named step with a fixed retry budget.

    Only ``TransientStoreError`` is retried. Anything else propagates on the
    first attempt so validation problems and duplicate-key signals reach the
    caller unchanged.
    """

    def __init__(
        self,
        max_attempts: int = SETTINGS.step_max_attempts,
        retry_delay: float = SETTINGS.step_retry_delay_ms / 1000,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._max_attempts = max(int(max_attempts), 1)
        self._retry_delay = max(retry_delay, 0.0)
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def run(self, name: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        for attempt in range(1, self._max_attempts + 1):
            try:
                result = func(*args, **kwargs)
            except TransientStoreError as exc:
                if attempt >= self._max_attempts:
                    logger.error("step %s exhausted %s attempts: %s", name, attempt, exc)
                    raise StepFailedError(name, attempt, exc) from exc
                logger.warning("step %s attempt %s failed, retrying: %s", name, attempt, exc)
                if self._retry_delay:
                    self._sleep(self._retry_delay * 2 ** (attempt - 1))
                continue
            logger.debug("step %s finished on attempt %s", name, attempt)
            return result
        raise StepFailedError(name, self._max_attempts)
