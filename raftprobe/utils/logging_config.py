import logging
import json
import time
import os
from typing import Optional

from raftprobe.config import HarnessConfig


class ReplicaAwareFormatter(logging.Formatter):
    """Formatter that appends replica, tablet and poll attempt context to records."""

    CONTEXT_FIELDS = ('replica_id', 'tablet_id', 'attempt')

    def format(self, record):
        """
        Format log records with harness context.

        Adds these record attributes when present:
        - replica_id: uuid of the replica being probed or controlled
        - tablet_id: the tablet the operation targets
        - attempt: the polling attempt number
        """
        message = super().format(record)

        context = {
            'timestamp': time.time(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for name in self.CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                context[name] = value

        if getattr(record, 'json_format', False):
            return json.dumps(context)

        context_str = ' '.join(f"{name}={context[name]}" for name in self.CONTEXT_FIELDS if name in context)

        if context_str:
            return f"{message} [{context_str}]"
        return message


class _JsonFilter(logging.Filter):
    def filter(self, record):
        record.json_format = True
        return True


def setup_harness_logging(log_dir: Optional[str] = None,
                          log_level: int = logging.INFO,
                          enable_json: bool = False,
                          config: Optional[HarnessConfig] = None):
    """
    Setup logging for harness runs.

    Args:
        log_dir: Directory to store log files. If None, only console logging is used.
        log_level: Logging level (default: INFO).
        enable_json: Whether to also write JSON formatted logs to log_dir.
        config: If given, its log_level replaces log_level.

    Returns:
        The harness root logger.
    """
    if config is not None:
        log_level = config.log_level_number

    formatter = ReplicaAwareFormatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    handlers = [console_handler]

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(os.path.join(log_dir, "raftprobe.log"))
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

        if enable_json:
            json_handler = logging.FileHandler(os.path.join(log_dir, "raftprobe-json.log"))
            json_handler.setFormatter(ReplicaAwareFormatter('%(message)s'))
            json_handler.setLevel(log_level)
            json_handler.addFilter(_JsonFilter())
            handlers.append(json_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True
    )

    logger = logging.getLogger("raftprobe")
    logger.debug("Harness logging initialized")
    return logger


class ReplicaContextFilter(logging.Filter):
    def __init__(self, replica_id=None, tablet_id=None):
        super().__init__()
        self.replica_id = replica_id
        self.tablet_id = tablet_id

    def filter(self, record):
        if self.replica_id is not None:
            record.replica_id = self.replica_id
        if self.tablet_id is not None:
            record.tablet_id = self.tablet_id
        return True


def add_replica_context(logger, replica_id=None, tablet_id=None):
    """
    Stamp every record of a logger with replica and tablet context.

    Args:
        logger: The logger to add context to.
        replica_id: The replica uuid.
        tablet_id: The tablet id.

    Returns:
        The same logger.
    """
    logger.addFilter(ReplicaContextFilter(replica_id, tablet_id))
    return logger
