"""Queue transports carrying transitions and timeout checks to workers."""

from __future__ import annotations

import os
from typing import Optional

from ..config import FieldflowConfig, load_config
from .base import BaseTransport, is_due
from .inmemory import InMemoryTransport


def get_transport(
    backend: Optional[str] = None, config: Optional[FieldflowConfig] = None
) -> BaseTransport:
    """Build the automation queue transport.

    ``backend`` wins over the ``FIELDFLOW_TRANSPORT`` environment variable,
    which wins over ``transport.backend`` in the loaded configuration.
    """
    config = config or load_config()
    backend = (
        backend or os.getenv("FIELDFLOW_TRANSPORT") or config.transport.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryTransport()
    if backend == "redis":
        from .redis import RedisTransport

        redis_conf = config.transport.redis
        return RedisTransport(
            host=redis_conf.host,
            port=redis_conf.port,
            db=redis_conf.db,
            password=redis_conf.password,
            visibility_timeout=redis_conf.visibility_timeout,
        )
    raise ValueError(f"Unsupported transport backend: {backend}")


__all__ = ["BaseTransport", "InMemoryTransport", "get_transport", "is_due"]
