# util/timing.py
import time
from contextlib import contextmanager
from typing import Any, Iterator
import logging


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Any) -> Iterator[dict[str, Any]]:
    """
    Usage:
      with timed(logger, "repair", client=cid) as extra:
          ...
          extra["fixed"] = 3
    Emits one INFO on success: "<name>.done ms=<int> key=val ..."
    or one WARNING when the block raises: "<name>.failed ms=<int> err=<Type> ...".
    Keys added to the yielded dict are appended to the message.
    """
    extra: dict[str, Any] = dict(kv)
    t0 = time.perf_counter()
    try:
        yield extra
    except Exception as e:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        suffix = "".join(f" {k}={v}" for k, v in extra.items())
        logger.warning("%s.failed ms=%d err=%s%s", name, dt_ms, type(e).__name__, suffix)
        raise
    dt_ms = int((time.perf_counter() - t0) * 1000)
    suffix = "".join(f" {k}={v}" for k, v in extra.items())
    logger.info("%s.done ms=%d%s", name, dt_ms, suffix)
