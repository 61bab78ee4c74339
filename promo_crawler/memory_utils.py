from __future__ import annotations

import os
import psutil


def log_memory(logger, note: str) -> None:
    """
    Log process memory in MiB plus the number of live child processes.

    Every rendering session starts its own browser, so a child count that keeps
    growing between countries means sessions are not being torn down.
    """
    proc = psutil.Process(os.getpid())
    mem = proc.memory_info()
    try:
        children = len(proc.children(recursive=True))
    except psutil.Error:
        children = -1

    logger.info(
        "mem.stats rss_mb=%.1f vms_mb=%.1f children=%d note=%s",
        mem.rss / (1024 * 1024),
        mem.vms / (1024 * 1024),
        children,
        note,
    )
