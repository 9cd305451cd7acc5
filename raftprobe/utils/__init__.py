"""
Utility modules for raftprobe.
"""

from .rpc_metrics import RpcMetrics
from .logging_config import setup_harness_logging, add_replica_context, ReplicaAwareFormatter

__all__ = [
    'RpcMetrics',
    'setup_harness_logging',
    'add_replica_context',
    'ReplicaAwareFormatter'
]
