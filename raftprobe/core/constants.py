"""
Constants and enumerations shared by the harness and the wire protocol.
"""

from enum import Enum


class LeaderStatus(Enum):
    """
    Classification of a single replica with respect to tablet leadership.
    """
    LEADER = "leader"
    NOT_LEADER = "not_leader"
    NOT_FOUND = "not_found"


class MemberRole(Enum):
    """
    Role of a member in a consensus configuration, as seen by one replica.
    """
    LEADER = "LEADER"
    FOLLOWER = "FOLLOWER"
    LEARNER = "LEARNER"
    NON_PARTICIPANT = "NON_PARTICIPANT"


class MemberType(Enum):
    VOTER = "VOTER"
    NON_VOTER = "NON_VOTER"


class ChangeConfigType(Enum):
    ADD_SERVER = "ADD_SERVER"
    REMOVE_SERVER = "REMOVE_SERVER"


class RowOperationType(Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"


# Error codes carried in {"error": {"code": ...}} response bodies.
TABLET_NOT_FOUND = "TABLET_NOT_FOUND"
NOT_THE_LEADER = "NOT_THE_LEADER"
ILLEGAL_STATE = "ILLEGAL_STATE"
ALREADY_PRESENT = "ALREADY_PRESENT"
NOT_PRESENT = "NOT_PRESENT"
NO_SUCH_METHOD = "NO_SUCH_METHOD"
INVALID_REQUEST = "INVALID_REQUEST"
RUNTIME_ERROR = "RUNTIME_ERROR"
