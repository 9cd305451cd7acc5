"""
Core types shared by the harness: log positions, consensus snapshots,
registrations, deadlines and the error taxonomy.
"""

from raftprobe.core.consensus_state import ConsensusMember, ConsensusSnapshot
from raftprobe.core.constants import (
    ChangeConfigType,
    LeaderStatus,
    MemberRole,
    MemberType,
    RowOperationType,
)
from raftprobe.core.deadline import Deadline
from raftprobe.core.errors import (
    AlreadyPresent,
    HarnessError,
    IllegalState,
    NotFound,
    NotLeader,
    NotPresent,
    ProtocolError,
    RemoteError,
    TimedOut,
    Unreachable,
)
from raftprobe.core.opid import LogPosition
from raftprobe.core.registration import HostPort, Registration

__all__ = [
    'ConsensusMember',
    'ConsensusSnapshot',
    'ChangeConfigType',
    'LeaderStatus',
    'MemberRole',
    'MemberType',
    'RowOperationType',
    'Deadline',
    'AlreadyPresent',
    'HarnessError',
    'IllegalState',
    'NotFound',
    'NotLeader',
    'NotPresent',
    'ProtocolError',
    'RemoteError',
    'TimedOut',
    'Unreachable',
    'LogPosition',
    'HostPort',
    'Registration',
]
