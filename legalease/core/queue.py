"""
Queue infrastructure module.

This module provides the Dramatiq broker used by the background jobs:
- RedisBroker in every environment except tests
- StubBroker when APP_ENV=test, so actors can be imported and inspected
  without a running Redis
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.brokers.stub import StubBroker
from dramatiq.middleware import AsyncIO

from legalease.core.config import Settings

settings = Settings()

if settings.APP_ENV == "test":
    dramatiq_broker = StubBroker()
else:
    dramatiq_broker = RedisBroker(url=settings.REDIS_URL)

# Add AsyncIO middleware to support async actors
dramatiq_broker.add_middleware(AsyncIO())

dramatiq.set_broker(dramatiq_broker)
