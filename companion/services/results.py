"""
Step results for the conversation pipeline.

Every external call in the pipeline runs through ``run_step`` and comes back
as a ``StepResult``. Whether a failure is survivable is part of the result
(``FailureKind``), not of where a try/except happens to sit.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

from companion.core.exceptions import CompanionException, UpstreamServiceError
from companion.core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class FailureKind(str, Enum):
    RECOVERABLE = "recoverable"  # log and continue with a default
    FATAL = "fatal"              # abort the request


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """
    Outcome of one pipeline step.

    Attributes:
        step: Step name, used in logs
        value: Step output (or the fallback for a recovered failure)
        kind: None on success, otherwise how the failure must be treated
        error: The exception that caused the failure
    """
    step: str
    value: Optional[T] = None
    kind: Optional[FailureKind] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.kind is None

    @property
    def is_fatal(self) -> bool:
        return self.kind is FailureKind.FATAL

    def unwrap(self) -> T:
        """
        Return the value, or raise for a fatal failure.

        Application errors are re-raised as they are; anything else is
        wrapped in ``UpstreamServiceError`` so the API answers with a generic
        500.
        """
        if not self.is_fatal:
            return self.value
        if isinstance(self.error, CompanionException):
            raise self.error
        raise UpstreamServiceError(
            f"Step '{self.step}' failed", details=str(self.error)
        ) from self.error


def run_step(
    step: str,
    fn: Callable[[], T],
    kind: FailureKind,
    fallback: Optional[T] = None,
) -> StepResult[T]:
    """
    Run one pipeline step and capture its outcome.

    Args:
        step: Step name for logging
        fn: Zero-argument callable doing the work
        kind: How a failure of this step is to be treated
        fallback: Value used when a recoverable step fails
    """
    try:
        return StepResult(step=step, value=fn())
    except Exception as e:
        if kind is FailureKind.RECOVERABLE:
            logger.warning(f"Best-effort step '{step}' failed, continuing: {e}")
            return StepResult(step=step, value=fallback, kind=kind, error=e)

        logger.error(f"Step '{step}' failed: {e}")
        return StepResult(step=step, kind=kind, error=e)
