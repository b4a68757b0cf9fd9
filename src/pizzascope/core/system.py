"""Host CPU and memory gauges, read on demand at export time."""

import logging

import psutil

logger = logging.getLogger(__name__)


def read_system_gauges() -> dict[str, float]:
    """Return current host utilisation keyed by metric name.

    Values that cannot be read are omitted rather than reported as zero.
    """
    gauges: dict[str, float] = {}
    try:
        gauges["cpu_percent"] = float(psutil.cpu_percent(interval=None))
    except (OSError, RuntimeError) as e:
        logger.debug("CPU utilisation unavailable: %s", e)
    try:
        gauges["memory_percent"] = float(psutil.virtual_memory().percent)
    except (OSError, RuntimeError) as e:
        logger.debug("Memory utilisation unavailable: %s", e)
    return gauges
