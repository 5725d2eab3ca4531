from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional, Union

from fieldops.core.settings import get_app_settings

# Set by the request middleware and by agent authentication.
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
agent_id_var: ContextVar[Optional[str]] = ContextVar("agent_id", default=None)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | agent=%(agent_id)s | %(message)s"


class RequestContextFilter(logging.Filter):
    """
    Stamp each record with the request correlation id and the calling agent.

    Artifact tasks started with asyncio.create_task copy the request context,
    so a background QR failure logs under the visit that provisioned the lead.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.agent_id = agent_id_var.get() or "-"
        return True


def _resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = get_app_settings().LOG_LEVEL
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        # getLevelName returns "Level X" for unknown names.
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str, None] = None) -> None:
    """
    Install a single stdout handler on the root logger.

    The level defaults to the LOG_LEVEL setting; unknown names fall back to INFO.
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))
