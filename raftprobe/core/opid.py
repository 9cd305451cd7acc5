from dataclasses import dataclass
from typing import Any, ClassVar, Dict

from raftprobe.core.errors import ProtocolError


@dataclass(frozen=True, order=True)
class LogPosition:
    """
    A position in a replica's replicated log.

    Positions are totally ordered by term, then index.

    Attributes:
        term: The term in which the entry at this position was written.
        index: The 1-based log index, or 0 for an empty log.
    """
    term: int
    index: int

    MINIMUM: ClassVar['LogPosition']

    @classmethod
    def from_dict(cls, data: Any) -> 'LogPosition':
        """
        Decode a position from its wire form {"term": int, "index": int}.

        Raises:
            ProtocolError: If the data does not describe a position.
        """
        if not isinstance(data, dict):
            raise ProtocolError(f"Expected an op id mapping, got {data!r}")

        term = data.get('term')
        index = data.get('index')
        if not isinstance(term, int) or not isinstance(index, int) or term < 0 or index < 0:
            raise ProtocolError(f"Invalid op id: {data!r}")

        return cls(term=term, index=index)

    def to_dict(self) -> Dict[str, int]:
        return {'term': self.term, 'index': self.index}

    def __str__(self) -> str:
        return f"{self.term}.{self.index}"


LogPosition.MINIMUM = LogPosition(0, 0)
