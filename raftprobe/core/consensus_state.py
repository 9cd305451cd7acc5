from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from raftprobe.core.constants import MemberRole, MemberType
from raftprobe.core.errors import ProtocolError


@dataclass(frozen=True)
class ConsensusMember:
    """
    One member of a committed consensus configuration.

    Attributes:
        uuid: The permanent uuid of the member's server.
        role: The member's role as perceived by the reporting replica.
        member_type: Whether the member votes.
    """
    uuid: str
    role: MemberRole
    member_type: MemberType

    @property
    def is_voter(self) -> bool:
        return self.member_type == MemberType.VOTER


@dataclass(frozen=True)
class ConsensusSnapshot:
    """
    The committed membership and leader view reported by one replica at one instant.

    Snapshots from different replicas are not guaranteed to agree with each other.

    Attributes:
        current_term: The reporting replica's current term.
        leader_uuid: The uuid of the leader the replica believes in, if any.
        members: The committed members, in configuration order.
        opid_index: Log index at which the committed configuration was written.
    """
    current_term: int
    leader_uuid: Optional[str]
    members: List[ConsensusMember] = field(default_factory=list)
    opid_index: Optional[int] = None

    @property
    def voter_count(self) -> int:
        return sum(1 for member in self.members if member.is_voter)

    def member(self, uuid: str) -> Optional[ConsensusMember]:
        for candidate in self.members:
            if candidate.uuid == uuid:
                return candidate
        return None

    def has_member(self, uuid: str) -> bool:
        return self.member(uuid) is not None

    @classmethod
    def from_dict(cls, data: Any) -> 'ConsensusSnapshot':
        """
        Decode a GetConsensusState response body.

        Expected shape:
            {"cstate": {"current_term": int, "leader_uuid": str | None,
                        "config": {"opid_index": int | None,
                                   "peers": [{"uuid": str, "role": str,
                                              "member_type": str}, ...]}}}

        Raises:
            ProtocolError: If the response does not have that shape.
        """
        cstate = data.get('cstate') if isinstance(data, dict) else None
        if not isinstance(cstate, dict):
            raise ProtocolError(f"Response has no consensus state: {data!r}")

        config = cstate.get('config')
        if not isinstance(config, dict) or not isinstance(config.get('peers'), list):
            raise ProtocolError(f"Consensus state has no committed config: {cstate!r}")

        current_term = cstate.get('current_term')
        if not isinstance(current_term, int):
            raise ProtocolError(f"Consensus state has no current term: {cstate!r}")

        members = [_member_from_dict(peer) for peer in config['peers']]

        return cls(
            current_term=current_term,
            leader_uuid=cstate.get('leader_uuid') or None,
            members=members,
            opid_index=config.get('opid_index'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cstate': {
                'current_term': self.current_term,
                'leader_uuid': self.leader_uuid,
                'config': {
                    'opid_index': self.opid_index,
                    'peers': [
                        {'uuid': m.uuid, 'role': m.role.value, 'member_type': m.member_type.value}
                        for m in self.members
                    ],
                },
            }
        }


def _member_from_dict(peer: Any) -> ConsensusMember:
    if not isinstance(peer, dict) or not isinstance(peer.get('uuid'), str):
        raise ProtocolError(f"Malformed config peer: {peer!r}")

    try:
        role = MemberRole(peer.get('role', MemberRole.NON_PARTICIPANT.value))
        member_type = MemberType(peer.get('member_type', MemberType.VOTER.value))
    except ValueError as e:
        raise ProtocolError(f"Malformed config peer {peer!r}: {e}") from e

    return ConsensusMember(uuid=peer['uuid'], role=role, member_type=member_type)
