"""
Harness configuration.

Configuration comes from keyword arguments, a JSON file, or RAFTPROBE_*
environment variables. Environment variables override file values.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional
import json
import logging
import os


@dataclass(frozen=True)
class HarnessConfig:
    """
    Settings shared by every harness operation.

    Attributes:
        master_url: Base URL of the master's HTTP endpoint.
        rpc_timeout: Default per-RPC timeout in seconds.
        retry_interval: Fixed sleep between polling attempts in seconds.
        max_fanout: Upper bound on concurrent RPCs in one fan-out.
        log_level: Level name applied by setup_harness_logging(config=...).
    """
    master_url: Optional[str] = None
    rpc_timeout: float = 10.0
    retry_interval: float = 0.1
    max_fanout: int = 16
    log_level: str = 'INFO'

    def __post_init__(self):
        if self.rpc_timeout <= 0:
            raise ValueError(f"rpc_timeout must be positive, got {self.rpc_timeout}")
        if self.retry_interval < 0:
            raise ValueError(f"retry_interval must be non-negative, got {self.retry_interval}")
        if self.max_fanout < 1:
            raise ValueError(f"max_fanout must be at least 1, got {self.max_fanout}")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'HarnessConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**_coerce(dict(data)))

    @classmethod
    def from_file(cls, path: str) -> 'HarnessConfig':
        """
        Load configuration from a JSON file, then apply environment overrides.
        """
        with open(path, 'r') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a JSON object")
        return cls.from_dict(data).with_env()

    @classmethod
    def from_env(cls, prefix: str = 'RAFTPROBE_', environ: Optional[Mapping[str, str]] = None) -> 'HarnessConfig':
        return cls().with_env(prefix, environ)

    def with_env(self, prefix: str = 'RAFTPROBE_', environ: Optional[Mapping[str, str]] = None) -> 'HarnessConfig':
        """Return a copy with fields overridden by prefixed environment variables."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(self):
            key = prefix + f.name.upper()
            if key in environ:
                overrides[f.name] = environ[key]
        if not overrides:
            return self
        return replace(self, **_coerce(overrides))

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(str(self.log_level).upper())


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    types = {'rpc_timeout': float, 'retry_interval': float, 'max_fanout': int}
    result = {}
    for name, value in values.items():
        converter = types.get(name)
        if converter is not None:
            try:
                value = converter(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid value for {name}: {value!r}") from e
        result[name] = value
    return result
