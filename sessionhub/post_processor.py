"""Post-initialization hooks applied to the hub's beans at startup.

The host (see `main`) builds each bean, then hands it to every registered
post-processor in turn; whatever a processor returns replaces the bean.
"""

import logging
from datetime import timedelta
from typing import Any, Iterable, Protocol, runtime_checkable

from .expiration import FixedDurationExpirationSessionRepository
from .repository import SessionRepository

logger = logging.getLogger(__name__)


@runtime_checkable
class BeanPostProcessor(Protocol):
    """Hook into bean initialization.

    - ``before_init``: called before the bean is initialized
    - ``after_init``: called once the bean is ready
    """

    def before_init(self, bean: Any, bean_name: str) -> Any:
        """May return a replacement bean."""
        ...

    def after_init(self, bean: Any, bean_name: str) -> Any:
        """May return a replacement bean."""
        ...


class FixedDurationExpirationSessionRepositoryBeanPostProcessor:
    """Wraps any session repository bean so its sessions expire after a fixed duration.

    Beans that are not session repositories are returned unchanged. Applying
    the processor twice to the same bean wraps it twice; avoiding that is up
    to the caller.
    """

    def __init__(self, expiration_duration: timedelta):
        self._expiration_duration = expiration_duration

    @property
    def expiration_duration(self) -> timedelta:
        return self._expiration_duration

    def process(self, bean: Any, bean_name: str) -> Any:
        if isinstance(bean, SessionRepository):
            logger.info(
                "Applying fixed %s session expiration to bean %r", self._expiration_duration, bean_name
            )
            return FixedDurationExpirationSessionRepository(bean, self._expiration_duration)
        return bean

    def before_init(self, bean: Any, bean_name: str) -> Any:
        return bean

    after_init = process


def apply_post_processors(bean: Any, bean_name: str, post_processors: Iterable[BeanPostProcessor]) -> Any:
    """Run every processor's `before_init`, then every `after_init`, over `bean`.

    Returns the final bean; each hook may replace it.
    """
    post_processors = list(post_processors)
    for processor in post_processors:
        bean = processor.before_init(bean, bean_name)
    for processor in post_processors:
        bean = processor.after_init(bean, bean_name)
    return bean
