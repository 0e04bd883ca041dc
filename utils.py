"""
Helpers for the numbers demo: logging and configuration setup, the
monitored number source fed into LazyBag, and JSON array serialization
that drives a bag one element at a time.
"""

import gc
import itertools
import json
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator

import psutil

from lazy import LazyBag

logger = logging.getLogger(__name__)


# ---------- Logging and configuration ----------

def setup_logging(level: str = "INFO") -> logging.Logger:
    """Setup structured logging for the numbers service"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    return logging.getLogger('streamy')


@dataclass
class ServerConfig:
    """Runtime settings, read from STREAMY_* environment variables."""
    default_count: int = 1000
    gc_interval: int = 100_000
    memory_sample_interval: int = 10_000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            default_count=int(os.environ.get("STREAMY_DEFAULT_COUNT", cls.default_count)),
            gc_interval=int(os.environ.get("STREAMY_GC_INTERVAL", cls.gc_interval)),
            memory_sample_interval=int(
                os.environ.get("STREAMY_MEMORY_SAMPLE_INTERVAL", cls.memory_sample_interval)
            ),
            log_level=os.environ.get("STREAMY_LOG_LEVEL", cls.log_level),
        )


# ---------- Memory monitoring ----------

def memory_usage_ratio() -> float:
    """Resident memory of this process as a fraction of total system memory"""
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / psutil.virtual_memory().total


def memory_snapshot() -> Dict[str, Any]:
    memory = psutil.virtual_memory()
    return {
        "process_rss_mb": psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024,
        "system_percent": memory.percent,
        "usage_ratio": memory_usage_ratio(),
    }


# ---------- Number source ----------

def number_source(how_many: int, config: ServerConfig) -> Iterator[int]:
    """
    Lazily produce 0..how_many-1, the way a backing store would stream rows.
    Every ``gc_interval`` numbers a collection is forced and every
    ``memory_sample_interval`` numbers the memory ratio is logged, so a
    demo run shows memory staying flat while the numbers go out.
    """
    produced = 0
    try:
        for n in itertools.islice(itertools.count(), how_many):
            if config.gc_interval and n % config.gc_interval == 0:
                gc.collect()
            if config.memory_sample_interval and n % config.memory_sample_interval == 0:
                logger.debug(f"n={n} memory ratio={memory_usage_ratio():.4f}")
            produced += 1
            yield n
    finally:
        logger.debug(f"Number source released after {produced} of {how_many}")


# ---------- Serialization ----------

def iter_json_array(items: Iterable[Any]) -> Iterator[str]:
    """
    Serialize ``items`` as a JSON array, one element per line, pulling a
    single element at a time. ``iter()`` is called up front so a spent
    LazyBag fails here rather than halfway through a response.
    """
    iterator = iter(items)

    def _chunks() -> Iterator[str]:
        yield "[\n"
        first = True
        for item in iterator:
            if first:
                first = False
                yield json.dumps(item)
            else:
                yield ",\n" + json.dumps(item)
        yield "\n]\n"

    return _chunks()


def bag_summary(bag: LazyBag, requested: int) -> Dict[str, Any]:
    """Accounting view of a bag once a response has been written"""
    return {
        "requested": requested,
        "delivered": len(bag),
        "known_not_empty": bag.known_not_empty,
        "closed": bag.closed,
    }
