from __future__ import annotations

import logging


class CycleLoggerAdapter(logging.LoggerAdapter):
    """Prefix log lines with their poll-cycle context, e.g. ``[cycle=3 retry=2]``."""

    def process(self, msg, kwargs):
        context = " ".join(f"{k}={v}" for k, v in self.extra.items())
        return f"[{context}] {msg}", kwargs

    def bind(self, **extra) -> CycleLoggerAdapter:
        return CycleLoggerAdapter(self.logger, {**self.extra, **extra})


def cycle_logger(logger: logging.Logger | logging.LoggerAdapter, cycle: int) -> CycleLoggerAdapter:
    if isinstance(logger, CycleLoggerAdapter):
        return logger.bind(cycle=cycle)
    return CycleLoggerAdapter(logger, {"cycle": cycle})
