"""Dramatiq background tasks package."""

from typing import Any

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import Middleware

from cpq.config import settings
from cpq.logging import bind_log_context, clear_log_context, setup_logging

# Configure logging before anything else
setup_logging()


class LogContextMiddleware(Middleware):
    """Give each processed message its own log context.

    Worker threads are reused across messages; without this, values bound
    while handling one message would leak into the next one's log lines.
    """

    def before_process_message(self, broker: dramatiq.Broker, message: dramatiq.Message) -> None:
        clear_log_context()
        bind_log_context(message_id=message.message_id, actor=message.actor_name)

    def after_process_message(
        self,
        broker: dramatiq.Broker,
        message: dramatiq.Message,
        *,
        result: Any = None,
        exception: BaseException | None = None,
    ) -> None:
        clear_log_context()


# Configure Redis broker
redis_broker = RedisBroker(url=settings.redis_url)  # type: ignore[no-untyped-call]
redis_broker.add_middleware(LogContextMiddleware())
dramatiq.set_broker(redis_broker)

# Import all tasks to register them with Dramatiq (must be after broker setup)
from cpq.tasks.email import send_quote_email  # noqa: E402

__all__ = ["redis_broker", "send_quote_email"]
