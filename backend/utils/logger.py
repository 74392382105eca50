# status: complete

import logging
import os
import re
import threading
import time
from pathlib import Path


class WerkzeugRequestAggregator(logging.Filter):
    """
    Collapses repeated werkzeug request logs into periodic summaries.
    Event polling hits the same endpoint several times per second, so
    individual lines are dropped and counted instead.
    """

    def __init__(self, flush_interval=30):
        super().__init__()
        self.flush_interval = flush_interval
        self.request_counts = {}
        self.last_flush = time.time()
        self.lock = threading.Lock()

    def filter(self, record):
        if record.name != 'werkzeug' or record.levelno != logging.INFO:
            return True

        match = re.match(r'^(\S+)\s+-\s+-\s+\[.+?\]\s+"(\w+)\s+(\S+)\s+HTTP/[\d.]+"\s+(\d+)', record.getMessage())
        if not match:
            return True

        key = match.groups()

        with self.lock:
            now = time.time()
            if now - self.last_flush >= self.flush_interval:
                self._flush_aggregated_logs()
                self.last_flush = now

            entry = self.request_counts.setdefault(key, {'count': 0, 'first_seen': now})
            entry['count'] += 1
            entry['last_seen'] = now
            return False

    def _flush_aggregated_logs(self):
        if not self.request_counts:
            return

        logger = logging.getLogger('agent.requests')
        for (ip, method, path, status), data in self.request_counts.items():
            count = data['count']
            if count == 1:
                logger.info(f"{ip} \"{method} {path}\" {status}")
            else:
                duration = data['last_seen'] - data['first_seen']
                logger.info(f"{ip} \"{method} {path}\" {status} [repeated {count}x over {duration:.1f}s]")

        self.request_counts.clear()


def setup_logger():
    """Setup logging to logs/agent.log and the console"""
    logs_dir = Path(os.getenv("AGENT_LOG_DIR", "logs"))
    logs_dir.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, os.getenv("AGENT_LOG_LEVEL", "DEBUG").upper(), logging.DEBUG)

    file_handler = logging.FileHandler(logs_dir / "agent.log", encoding='utf-8')
    file_handler.setLevel(level)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)

    aggregator = WerkzeugRequestAggregator(flush_interval=30)
    file_handler.addFilter(aggregator)
    stream_handler.addFilter(aggregator)

    logging.basicConfig(
        level=level,
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        handlers=[file_handler, stream_handler]
    )


def get_logger(name):
    """Get logger for a module"""
    return logging.getLogger(name)


setup_logger()
