"""
Error taxonomy for harness operations.

Every failure is raised as a subclass of HarnessError so that tests can assert
on a precise outcome or propagate it. Application errors reported by a remote
server travel as {"error": {"code": ..., "message": ...}} and are converted
with error_from_response().
"""

from typing import Any, Dict, Optional

from raftprobe.core import constants


class HarnessError(Exception):
    """
    Base class for all errors raised by the harness.

    Attributes:
        code: The remote error code, if the error was reported by a server.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class Unreachable(HarnessError):
    """The target could not be contacted or did not answer within the timeout."""


class NotFound(HarnessError):
    """The queried tablet or member does not exist on the target."""


class IllegalState(HarnessError):
    """The target is not in a state that permits the operation."""


class NotLeader(IllegalState):
    """The operation required the leader role, which the target lacks."""


class AlreadyPresent(HarnessError):
    """A membership change would add a member that is already present."""


class NotPresent(HarnessError):
    """A membership change would remove a member that is not present."""


class ProtocolError(HarnessError):
    """A response was malformed or had an unexpected shape."""


class RemoteError(HarnessError):
    """An application error reported by a server with no more specific mapping."""


class TimedOut(HarnessError):
    """
    A bounded wait exhausted its deadline without its condition becoming true.

    Attributes:
        last_error: The last error observed while polling, if any.
    """

    def __init__(self, message: str, last_error: Optional[HarnessError] = None):
        super().__init__(message)
        self.last_error = last_error


_ERRORS_BY_CODE = {
    constants.TABLET_NOT_FOUND: NotFound,
    constants.NOT_THE_LEADER: NotLeader,
    constants.ILLEGAL_STATE: IllegalState,
    constants.ALREADY_PRESENT: AlreadyPresent,
    constants.NOT_PRESENT: NotPresent,
}


def error_from_response(error: Any) -> HarnessError:
    """
    Build the exception matching an error detail from a response body.

    Args:
        error: The value of the "error" key of a response.

    Returns:
        The HarnessError subclass instance for the error code.
    """
    if not isinstance(error, dict) or not isinstance(error.get('code'), str):
        return ProtocolError(f"Malformed error detail: {error!r}")

    code = error['code']
    message = error.get('message') or code
    error_class = _ERRORS_BY_CODE.get(code, RemoteError)
    return error_class(message, code=code)


def raise_for_error(response: Dict[str, Any]) -> Dict[str, Any]:
    """
    Raise the mapped error if a response carries one, otherwise return it.
    """
    if response.get('error') is not None:
        raise error_from_response(response['error'])
    return response


def code_for_error(error: HarnessError) -> str:
    """
    The wire error code to report for an error raised by a request handler.
    """
    if error.code:
        return error.code
    for code, error_class in _ERRORS_BY_CODE.items():
        if type(error) is error_class:
            return code
    return constants.RUNTIME_ERROR
