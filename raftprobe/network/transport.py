from typing import Dict, Any, Callable, Awaitable, Optional, Tuple
import asyncio
import logging
import time

import msgpack

from raftprobe.core import constants
from raftprobe.core.errors import (
    HarnessError,
    IllegalState,
    ProtocolError,
    Unreachable,
    code_for_error,
    raise_for_error,
)
from raftprobe.utils.rpc_metrics import RpcMetrics


Handler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]

READ_CHUNK_SIZE = 4096


async def _read_message(reader: asyncio.StreamReader) -> Any:
    """
    Read exactly one msgpack object from a stream.

    Raises:
        ProtocolError: If the stream ends before a full object arrives or the
            bytes are not valid msgpack.
    """
    unpacker = msgpack.Unpacker(raw=False)
    while True:
        data = await reader.read(READ_CHUNK_SIZE)
        if not data:
            raise ProtocolError("Connection closed before a complete message was received")
        unpacker.feed(data)
        try:
            for message in unpacker:
                return message
        except (msgpack.exceptions.UnpackException, ValueError) as e:
            raise ProtocolError(f"Invalid msgpack frame: {e}") from e


async def _close_writer(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except (ConnectionError, OSError):
        pass


class RpcProxy:
    """
    Client side of one RPC service on one server endpoint.

    Each call opens its own TCP connection, sends one msgpack request frame
    {"service", "method", "payload"} and reads one response frame
    {"response": {...}}. No connection or per-call state is shared between
    calls, so a proxy may be used by several tasks at once.
    """

    service_name = ""

    def __init__(self, host: str, port: int, service: Optional[str] = None):
        """
        Initialize a new RPC proxy.

        Args:
            host: The server host.
            port: The server RPC port.
            service: The service name. Defaults to the class's service_name.
        """
        self.host = host
        self.port = port
        self.service = service or self.service_name
        self.metrics = RpcMetrics()
        self._closed = False
        self.logger = logging.getLogger(f"raftprobe.rpc.{self.service}")

    @property
    def endpoint(self) -> Tuple[str, int]:
        return self.host, self.port

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def call(self, method: str, payload: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        """
        Send one RPC and wait for its response.

        Args:
            method: The remote method name.
            payload: The request body.
            timeout: Seconds to wait for the whole round trip.

        Returns:
            The response body.

        Raises:
            Unreachable: If the server cannot be contacted in time.
            ProtocolError: If the response is malformed.
            HarnessError: The mapped application error, if the response carries one.
        """
        if self._closed:
            raise IllegalState(f"{self.service} proxy for {self.host}:{self.port} is closed")

        self.logger.debug(f"Sending {method} to {self.host}:{self.port} with timeout {timeout:.2f}s")
        start_time = time.monotonic()
        try:
            message = await asyncio.wait_for(self._round_trip(method, payload), timeout=timeout)
        except asyncio.TimeoutError as e:
            self.metrics.record_failure(method)
            raise Unreachable(
                f"Timed out after {timeout:.2f}s calling {self.service}.{method} on {self.host}:{self.port}"
            ) from e
        except (ConnectionError, OSError) as e:
            self.metrics.record_failure(method)
            raise Unreachable(
                f"Error calling {self.service}.{method} on {self.host}:{self.port}: {e}"
            ) from e
        except ProtocolError:
            self.metrics.record_failure(method)
            raise

        response = message.get('response') if isinstance(message, dict) else None
        if not isinstance(response, dict):
            self.metrics.record_failure(method)
            raise ProtocolError(f"{self.service}.{method} returned an unexpected frame: {message!r}")

        rtt = time.monotonic() - start_time
        self.metrics.record_success(method, rtt)
        self.logger.debug(f"Received {method} response from {self.host}:{self.port} in {rtt:.3f}s: {response}")

        return raise_for_error(response)

    async def _round_trip(self, method: str, payload: Dict[str, Any]) -> Any:
        reader, writer = await asyncio.open_connection(self.host, self.port)
        try:
            request = {
                'service': self.service,
                'method': method,
                'payload': payload
            }
            writer.write(msgpack.packb(request, use_bin_type=True))
            await writer.drain()
            return await _read_message(reader)
        finally:
            await _close_writer(writer)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.host}:{self.port})"


class RpcServer:
    """
    Server side of the msgpack RPC protocol.

    Handlers are registered per (service, method) and receive the request
    payload. A handler that raises HarnessError produces an error response with
    the matching code; any other exception produces RUNTIME_ERROR.
    """

    def __init__(self, host: str = '127.0.0.1', port: int = 0, name: str = 'server'):
        """
        Initialize a new RPC server.

        Args:
            host: The address to bind to.
            port: The port to bind to. 0 picks a free port.
            name: A name used in log messages.
        """
        self.host = host
        self.port = port
        self.name = name
        self.handlers: Dict[Tuple[str, str], Handler] = {}

        self.server = None
        self.logger = logging.getLogger(f"raftprobe.rpc.server.{name}")

    def register(self, service: str, method: str, handler: Handler) -> None:
        self.handlers[(service, method)] = handler

    async def start(self) -> None:
        """
        Start listening. After this returns, port holds the bound port.
        """
        self.server = await asyncio.start_server(
            self._handle_connection,
            self.host,
            self.port
        )
        self.port = self.server.sockets[0].getsockname()[1]

        self.logger.info(f"RPC server {self.name} started on {self.host}:{self.port}")

    async def stop(self) -> None:
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            self.server = None
            self.logger.info(f"RPC server {self.name} stopped")

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer_info = writer.get_extra_info('peername')
        try:
            try:
                request = await _read_message(reader)
            except ProtocolError as e:
                self.logger.warning(f"Invalid request from {peer_info}: {e}")
                response = _error_body(constants.INVALID_REQUEST, str(e))
            else:
                response = await self._dispatch(request, peer_info)

            writer.write(msgpack.packb({'response': response}, use_bin_type=True))
            await writer.drain()
        except (ConnectionError, OSError) as e:
            self.logger.debug(f"Connection with {peer_info} failed: {e}")
        finally:
            await _close_writer(writer)

    async def _dispatch(self, request: Any, peer_info: Any) -> Dict[str, Any]:
        if not isinstance(request, dict):
            return _error_body(constants.INVALID_REQUEST, 'request must be a mapping')

        service = request.get('service')
        method = request.get('method')
        payload = request.get('payload') or {}

        handler = self.handlers.get((service, method))
        if handler is None:
            self.logger.warning(f"Unknown method {service}.{method} from {peer_info}")
            return _error_body(constants.NO_SUCH_METHOD, f"{service}.{method}")

        self.logger.debug(f"Processing {service}.{method} from {peer_info}: {payload}")
        try:
            response = await handler(payload)
        except HarnessError as e:
            return _error_body(code_for_error(e), str(e))
        except Exception as e:
            self.logger.exception(f"Error handling {service}.{method} from {peer_info}")
            return _error_body(constants.RUNTIME_ERROR, str(e))

        return response if response is not None else {}


def _error_body(code: str, message: str) -> Dict[str, Any]:
    return {'error': {'code': code, 'message': message}}
