# A python module for dialing through SOCKS4 and SOCKS4a proxies
# Copyright (C) 2023  acuifex
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

import ipaddress
import logging
import os
import re
import socket
import ssl
import struct
import threading
import time
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Optional, Tuple
from urllib.parse import urlparse
from urllib3.util.ssltransport import SSLTransport

log = logging.getLogger(__name__)

SOCKS_VERSION4 = 0x04
REPLY_SIZE = 8
# 0.0.0.x with x != 0 tells a SOCKS4a server to resolve the trailing hostname
SOCKS4A_SENTINEL_IP = struct.pack("BBBB", 0x00, 0x00, 0x00, 0x01)
NULL = b"\x00"

TARGET_NETWORKS = ("tcp", "tcp4", "tcp6")
PROXY_DEFAULT_PORT = 1080


class Command(IntEnum):
    CONNECT = 0x01  # active-open forward proxy connection
    BIND = 0x02  # passive-open forward proxy connection


class Scheme(Enum):
    SOCKS4 = "socks4"
    SOCKS4A = "socks4a"


class ReplyCode(IntEnum):
    GRANTED = 90
    REJECTED = 91
    IDENTD_UNREACHABLE = 92
    IDENTD_MISMATCH = 93


PROTOCOL_NAMES = {
    'socks4': Scheme.SOCKS4,
    'socks4a': Scheme.SOCKS4A,
}

_socks4errors = (
    "request granted",
    "request rejected or failed",
    "request rejected because SOCKS server cannot connect to identd on the client",
    "request rejected because the client program and identd report different user-ids")


class ProxyError(Exception): pass
class GeneralProxyError(ProxyError): pass
class ConfigurationError(ProxyError): pass
class TargetAddressError(ProxyError): pass
class ResolutionError(ProxyError): pass
class TransportError(ProxyError): pass


class ProtocolRejection(ProxyError):
    """The proxy answered with anything but "request granted"."""

    def __init__(self, code: int):
        self.code = code
        self.reason = reply_reason(code)
        super().__init__(code, self.reason)

    def __str__(self):
        return self.reason


Socks4Error = ProtocolRejection


class CancellationError(ProxyError):
    def __init__(self, *args):
        super().__init__(*(args or ("operation was cancelled",)))


class DeadlineExceeded(CancellationError):
    def __init__(self, *args):
        super().__init__(*(args or ("context deadline exceeded",)))


class SocksOpError(ProxyError):
    """SocksOpError(op, net, source, addr, err)
    Raised by every Dialer entry point. op is the command label,
    source the proxy address and addr the command target address.
    Either address is None when it could not be parsed.
    """

    def __init__(self, op: str, net: str, source, addr, err: Exception):
        self.op = op
        self.net = net
        self.source = source
        self.addr = addr
        self.err = err
        super().__init__(op, net, source, addr, err)

    def __str__(self):
        return "%s %s %s->%s: %s" % (self.op, self.net, self.source, self.addr, self.err)


def command_label(cmd: int) -> str:
    if cmd == Command.CONNECT:
        return "socks connect"
    if cmd == Command.BIND:
        return "socks bind"
    return "socks %d" % cmd


def reply_reason(code: int) -> str:
    if ReplyCode.GRANTED <= code <= ReplyCode.IDENTD_MISMATCH:
        return _socks4errors[code - ReplyCode.GRANTED]
    return "unknown code: %d" % code


# ---------------------------------------------------------------- addresses

def split_host_port(address: str) -> Tuple[str, int]:
    """split_host_port(address) -> (host, port)
    Splits "host:port" or "[v6host]:port". The port must be numeric
    and within 1..65535.
    """
    if not isinstance(address, str):
        raise TargetAddressError("address %r is not a string" % (address,))
    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise TargetAddressError("address %s: missing ']' in address" % address)
        host, rest = address[1:end], address[end + 1:]
        if not rest.startswith(":"):
            raise TargetAddressError("address %s: missing port in address" % address)
        port = rest[1:]
    else:
        host, sep, port = address.rpartition(":")
        if not sep:
            raise TargetAddressError("address %s: missing port in address" % address)
        if ":" in host:
            raise TargetAddressError("address %s: too many colons in address" % address)
    if not (port.isascii() and port.isdigit()):
        raise TargetAddressError("address %s: invalid port %r" % (address, port))
    portnum = int(port)
    if not 1 <= portnum <= 0xffff:
        raise TargetAddressError("port number out of range %s" % port)
    return host, portnum


def join_host_port(host: str, port: int) -> str:
    if ":" in host:
        return "[%s]:%d" % (host, port)
    return "%s:%d" % (host, port)


def resolve_ipv4(host: str) -> bytes:
    """resolve_ipv4(host) -> packed address
    Returns the first IPv4 address the resolver knows for host.
    """
    try:
        return socket.inet_pton(socket.AF_INET, host)
    except (OSError, ValueError):
        pass
    try:
        infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    except (socket.gaierror, UnicodeError, ValueError) as e:
        # idna rejects empty or overlong labels before any lookup
        raise ResolutionError("unable to resolve host: %r" % host) from e
    for family, _, _, _, sockaddr in infos:
        if family == socket.AF_INET:
            return socket.inet_aton(sockaddr[0])
    raise ResolutionError("unable to resolve host: %s" % host)


@dataclass(frozen=True)
class SocksAddress:
    """A SOCKS endpoint. Either name or ip (packed) is set, never both."""
    name: Optional[str] = None
    ip: Optional[bytes] = None
    port: int = 0

    def __post_init__(self):
        if (self.name is None) == (self.ip is None):
            raise TargetAddressError("exactly one of name and ip must be set")
        if self.ip is not None and len(self.ip) not in (4, 16):
            raise TargetAddressError("bad ip length %d" % len(self.ip))
        # bound addresses may legitimately carry port 0
        if not 0 <= self.port <= 0xffff:
            raise TargetAddressError("port number out of range %d" % self.port)

    @classmethod
    def from_host_port(cls, host: str, port: int) -> "SocksAddress":
        try:
            return cls(ip=ipaddress.ip_address(host).packed, port=port)
        except ValueError:
            return cls(name=host, port=port)

    @classmethod
    def parse(cls, address: str) -> "SocksAddress":
        return cls.from_host_port(*split_host_port(address))

    @property
    def network(self) -> str:
        return "socks"

    @property
    def host(self) -> str:
        if self.ip is None:
            return self.name
        return str(ipaddress.ip_address(self.ip))

    def __str__(self):
        return join_host_port(self.host, self.port)


# ---------------------------------------------------------------- wire format

def build_request(command: int, scheme: Scheme, host: str, port: int,
                  ip: Optional[bytes] = None) -> bytes:
    """build_request(command, scheme, host, port[, ip]) -> request
    Builds a SOCKS4 request. Under SOCKS4 the caller supplies the
    already resolved ip; under SOCKS4a the sentinel address is sent
    and the hostname follows the (always empty) user id.
    """
    if scheme == Scheme.SOCKS4A:
        dstip = SOCKS4A_SENTINEL_IP
    elif ip is None or len(ip) != 4:
        raise GeneralProxyError("bad input: socks4 needs a resolved IPv4 address")
    else:
        dstip = ip
    req = struct.pack("!BBH", SOCKS_VERSION4, command, port) + dstip
    # no user id, just its terminator
    req = req + NULL
    if scheme == Scheme.SOCKS4A:
        if NULL.decode() in host:
            raise TargetAddressError("hostname contains NUL byte")
        try:
            req = req + host.encode("utf-8") + NULL
        except UnicodeError as e:
            raise TargetAddressError("hostname %r is not encodable" % host) from e
    return req


def parse_reply(resp: bytes) -> Tuple[ReplyCode, SocksAddress]:
    """parse_reply(resp) -> (code, bound address)
    Raises ProtocolRejection unless the request was granted.
    The version byte is not checked.
    """
    if len(resp) != REPLY_SIZE:
        raise GeneralProxyError("invalid data: reply is %d bytes" % len(resp))
    if resp[1] != ReplyCode.GRANTED:
        raise ProtocolRejection(resp[1])
    boundport = struct.unpack("!H", resp[2:4])[0]
    return ReplyCode.GRANTED, SocksAddress(ip=bytes(resp[4:8]), port=boundport)


# ---------------------------------------------------------------- contexts

class Context:
    """Cancellation scope for dial calls.

    A context is done once cancel() was called on it or an ancestor,
    or once its deadline (a time.monotonic() value) has passed.
    Use it as a context manager to cancel it on exit.
    """

    def __init__(self, parent: Optional["Context"] = None, deadline: Optional[float] = None):
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._err = None
        self._children = []
        self._parent = parent
        if parent is not None:
            inherited = parent.deadline()
            if inherited is not None and (deadline is None or inherited < deadline):
                deadline = inherited
        self._deadline = deadline
        if parent is not None:
            parent._attach(self)

    def deadline(self) -> Optional[float]:
        return self._deadline

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def err(self) -> Optional[CancellationError]:
        """Returns a fresh CancellationError/DeadlineExceeded, or None."""
        if self._err is None and self._deadline is not None and time.monotonic() >= self._deadline:
            self._cancel(DeadlineExceeded)
        err = self._err
        return None if err is None else err()

    def done(self) -> bool:
        return self.err() is not None

    def cancel(self):
        self._cancel(CancellationError)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """wait([timeout]) -> done
        Blocks until the context is done or timeout seconds elapse.
        """
        end = None if timeout is None else time.monotonic() + timeout
        while self.err() is None:
            limit = self._deadline
            if end is not None and (limit is None or end < limit):
                limit = end
            if limit is None:
                self._cancelled.wait()
                continue
            remaining = limit - time.monotonic()
            if remaining <= 0:
                return self.err() is not None
            self._cancelled.wait(remaining)
        return True

    def _cancel(self, err):
        with self._lock:
            if self._err is not None:
                return
            self._err = err
            children, self._children = self._children, []
        self._cancelled.set()
        for child in children:
            child._cancel(err)
        if self._parent is not None:
            self._parent._detach(self)

    def _attach(self, child: "Context"):
        with self._lock:
            err = self._err
            if err is None:
                self._children.append(child)
                return
        child._cancel(err)

    def _detach(self, child: "Context"):
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.cancel()


class _BackgroundContext(Context):
    """Never cancelled, has no deadline."""

    def cancel(self):
        pass

    def _attach(self, child):
        pass

    def __repr__(self):
        return "background()"


_background = _BackgroundContext()


def background() -> Context:
    return _background


def with_cancel(parent: Context) -> Context:
    return Context(parent)


def with_deadline(parent: Context, deadline: float) -> Context:
    """deadline is an absolute time.monotonic() value."""
    return Context(parent, deadline)


def with_timeout(parent: Context, timeout: float) -> Context:
    return Context(parent, time.monotonic() + timeout)


# ---------------------------------------------------------------- transport

ProxyDial = Callable[[Context, str, str], socket.socket]

_NETWORK_FAMILIES = {
    "tcp": socket.AF_UNSPEC,
    "tcp4": socket.AF_INET,
    "tcp6": socket.AF_INET6,
}


def _close(conn):
    try:
        conn.close()
    except OSError:
        pass


def _interrupt(conn):
    # SSLTransport keeps the raw socket in .socket
    sock = getattr(conn, "socket", conn)
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass


def direct_dial(ctx: Context, network: str, address: str) -> socket.socket:
    """direct_dial(ctx, network, address) -> socket
    Plain TCP connect bounded by the context deadline. The returned
    socket is blocking with no timeout.
    """
    host, port = split_host_port(address)
    if network not in _NETWORK_FAMILIES:
        raise ConfigurationError("network not implemented: %s" % network)
    err = ctx.err()
    if err is not None:
        raise err
    try:
        infos = socket.getaddrinfo(host, port, _NETWORK_FAMILIES[network], socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError, ValueError) as e:
        raise TransportError("lookup %r: %s" % (host, e)) from e
    last = None
    for family, socktype, proto, _, sockaddr in infos:
        timeout = ctx.remaining()
        if timeout is not None and timeout <= 0:
            raise ctx.err() or DeadlineExceeded()
        sock = socket.socket(family, socktype, proto)
        watcher = _watch(ctx, sock)
        failure = None
        try:
            sock.settimeout(timeout)
            sock.connect(sockaddr)
            sock.settimeout(None)
        except OSError as e:
            failure = e
        finally:
            cancelled = watcher.finish() if watcher is not None else None
        if cancelled is not None:
            _close(sock)
            raise cancelled from failure
        if failure is not None:
            _close(sock)
            last = failure
            continue
        log.debug("connected to proxy %s", address)
        return sock
    if last is None:
        raise TransportError("dial %s %s: no addresses" % (network, address))
    err = ctx.err()
    if err is not None:
        raise err from last
    raise TransportError("dial %s %s: %s" % (network, address, last)) from last


def tls_proxy_dialer(ssl_context: Optional[ssl.SSLContext] = None,
                     server_hostname: Optional[str] = None) -> ProxyDial:
    """tls_proxy_dialer([ssl_context[, server_hostname]]) -> proxy_dial
    Returns a proxy dial function that reaches the proxy over TLS.
    Thanks urllib3 for SSLTransport, which wraps the socket through a
    memory BIO and leaves the raw socket reachable for interrupts.
    """
    def dial(ctx: Context, network: str, address: str):
        sock = direct_dial(ctx, network, address)
        want_host = server_hostname or split_host_port(address)[0]
        context = ssl_context or ssl.create_default_context()
        timeout = ctx.remaining()
        if timeout is not None and timeout <= 0:
            _close(sock)
            raise ctx.err() or DeadlineExceeded()
        watcher = _watch(ctx, sock)
        failure = None
        try:
            sock.settimeout(timeout)
            conn = SSLTransport(sock, context, server_hostname=want_host)
            conn.settimeout(None)
        except OSError as e:
            failure = e
        finally:
            cancelled = watcher.finish() if watcher is not None else None
        if cancelled is None and failure is not None:
            cancelled = ctx.err()
        if cancelled is not None:
            _close(sock)
            raise cancelled from failure
        if failure is not None:
            _close(sock)
            raise TransportError("tls handshake with %s: %s" % (address, failure)) from failure
        log.debug("wrapped proxy connection %s in TLS", address)
        return conn
    return dial


# ---------------------------------------------------------------- handshake

def _arm(conn, deadline: Optional[float]):
    if deadline is None:
        return
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise socket.timeout("i/o timeout")
    conn.settimeout(remaining)


def _recvall(conn, count: int, deadline: Optional[float]) -> bytes:
    """_recvall(conn, count, deadline) -> data
    Receive EXACTLY the number of bytes requested from the connection.
    """
    data = b""
    while len(data) < count:
        try:
            _arm(conn, deadline)
            d = conn.recv(count - len(data))
        except OSError as e:
            raise TransportError("read from proxy: %s" % (e,)) from e
        if not d:
            raise TransportError("connection closed unexpectedly")
        data = data + d
    return data


class _Watcher(threading.Thread):
    """Interrupts the connection if ctx is done before finish() is called."""

    def __init__(self, ctx: Context, conn):
        super().__init__(name="socks4-handshake-watcher", daemon=True)
        self._ctx = ctx
        self._conn = conn
        self._scope = Context(ctx)
        self._finished = threading.Event()
        self.error = None

    def run(self):
        self._scope.wait()
        if self._finished.is_set():
            return
        self.error = self._ctx.err() or self._scope.err()
        log.debug("proxy connection interrupted: %s", self.error)
        _interrupt(self._conn)

    def finish(self) -> Optional[CancellationError]:
        self._finished.set()
        self._scope.cancel()
        self.join()
        return self.error


def _watch(ctx: Context, conn) -> Optional[_Watcher]:
    if isinstance(ctx, _BackgroundContext):
        return None
    watcher = _Watcher(ctx, conn)
    watcher.start()
    return watcher


def _exchange(conn, command: int, scheme: Scheme, host: str, port: int,
              deadline: Optional[float]) -> SocksAddress:
    ip = None
    if scheme == Scheme.SOCKS4:
        ip = resolve_ipv4(host)
    req = build_request(command, scheme, host, port, ip)
    log.debug("sending %d byte %s request for %s", len(req), scheme.value, join_host_port(host, port))
    try:
        _arm(conn, deadline)
        conn.sendall(req)
    except OSError as e:
        raise TransportError("write to proxy: %s" % (e,)) from e
    resp = _recvall(conn, REPLY_SIZE, deadline)
    code, bound = parse_reply(resp)
    log.debug("proxy reply %s, bound address %s", code.name, bound)
    return bound


def handshake(ctx: Context, conn, command: int, scheme: Scheme, address: str) -> SocksAddress:
    """handshake(ctx, conn, command, scheme, address) -> bound address
    Runs one request/reply exchange over conn, which must already be
    connected to the proxy. If ctx is done before the reply arrives the
    pending I/O is interrupted and the context error is raised instead
    of the I/O error. conn keeps its previous timeout afterwards.
    """
    host, port = split_host_port(address)
    err = ctx.err()
    if err is not None:
        raise err
    deadline = ctx.deadline()
    previous = conn.gettimeout() if deadline is not None else None
    watcher = _watch(ctx, conn)
    failure = None
    bound = None
    try:
        bound = _exchange(conn, command, scheme, host, port, deadline)
    except ProxyError as e:
        failure = e
    finally:
        if deadline is not None:
            try:
                conn.settimeout(previous)
            except OSError:
                pass
        cancelled = watcher.finish() if watcher is not None else None
    # a rejection or resolution failure was not caused by the interrupt
    if failure is not None and not isinstance(failure, TransportError):
        raise failure
    if cancelled is None and failure is not None:
        cancelled = ctx.err()
    if cancelled is not None:
        raise cancelled from failure
    if failure is not None:
        raise failure
    return bound


# ---------------------------------------------------------------- dialer

class SocksConnection:
    """A forward proxy connection: the raw proxy connection plus the
    address the proxy bound for it. Everything else is delegated."""

    def __init__(self, conn, bound_addr: SocksAddress):
        self.conn = conn
        self.bound_addr = bound_addr

    def __getattr__(self, name):
        return getattr(self.conn, name)

    def close(self):
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __repr__(self):
        return "<SocksConnection bound=%s conn=%r>" % (self.bound_addr, self.conn)


@dataclass(frozen=True)
class Proxy:
    scheme: Scheme = Scheme.SOCKS4
    host: str = None
    port: int = PROXY_DEFAULT_PORT

    @property
    def address(self) -> str:
        return join_host_port(self.host, self.port)


def parse_proxy_url(proxy_url: str) -> Proxy:
    # Lets people omit the scheme and the port.
    if re.match(r"\w+://", proxy_url) is None:
        # doesn't start with a protocol. assume socks4
        proxy_url = "socks4://" + proxy_url
    parsed_url = urlparse(proxy_url)
    scheme = PROTOCOL_NAMES.get(parsed_url.scheme.lower())
    if scheme is None:
        raise ConfigurationError("unsupported proxy scheme: %s" % parsed_url.scheme)
    try:
        port = parsed_url.port
    except ValueError as e:
        raise ConfigurationError("bad proxy port in %s" % proxy_url) from e
    if not parsed_url.hostname:
        raise ConfigurationError("missing proxy host in %s" % proxy_url)
    return Proxy(scheme, parsed_url.hostname, PROXY_DEFAULT_PORT if port is None else port)


@dataclass(frozen=True)
class Dialer:
    """Dialer(proxy_address[, scheme[, command[, proxy_network[, proxy_dial]]]])
    SOCKS4/SOCKS4a client dialer.

    proxy_address - "host:port" of the SOCKS server.
    scheme -        Scheme.SOCKS4 resolves target hostnames locally,
                    Scheme.SOCKS4A lets the proxy resolve them.
    command -       Command.CONNECT or Command.BIND.
    proxy_network - network used to reach the proxy.
    proxy_dial -    optional proxy_dial(ctx, network, address) used to
                    reach the proxy instead of a direct TCP connect.

    A Dialer is immutable and may be shared between threads.
    """
    proxy_address: str
    scheme: Scheme = Scheme.SOCKS4
    command: int = Command.CONNECT
    proxy_network: str = "tcp"
    proxy_dial: Optional[ProxyDial] = None

    @classmethod
    def from_url(cls, proxy_url: str, **kwargs) -> "Dialer":
        proxy = parse_proxy_url(proxy_url)
        return cls(proxy.address, scheme=proxy.scheme, **kwargs)

    @classmethod
    def from_environment(cls, **kwargs) -> Optional["Dialer"]:
        """Builds a dialer from ALL_PROXY/HTTPS_PROXY/HTTP_PROXY if one of
        them names a socks4 or socks4a proxy."""
        for var in ('ALL_PROXY', 'HTTPS_PROXY', 'HTTP_PROXY'):
            val = os.environ.get(var.lower(), os.environ.get(var, None))
            if val and urlparse(val).scheme.lower() in PROTOCOL_NAMES:
                return cls.from_url(val, **kwargs)
        return None

    def _validate(self, network: str):
        if network not in TARGET_NETWORKS:
            raise ConfigurationError("network not implemented")
        if self.command not in (Command.CONNECT, Command.BIND):
            raise ConfigurationError("command not implemented")
        if not isinstance(self.scheme, Scheme):
            raise ConfigurationError("scheme not implemented")

    def _path_addrs(self, address: str):
        addrs = []
        for s in (self.proxy_address, address):
            try:
                addrs.append(SocksAddress.parse(s))
            except TargetAddressError:
                addrs.append(None)
        return addrs

    def _op_error(self, network: str, address: str, err: Exception) -> SocksOpError:
        proxy, dst = self._path_addrs(address)
        return SocksOpError(command_label(self.command), network, proxy, dst, err)

    def _check(self, ctx, network: str, address: str):
        try:
            self._validate(network)
            split_host_port(address)
            if ctx is None:
                raise ConfigurationError("nil context")
        except ProxyError as e:
            raise self._op_error(network, address, e) from e

    def _connect_to_proxy(self, ctx: Context):
        log.debug("dialing proxy %s %s", self.proxy_network, self.proxy_address)
        dial = self.proxy_dial or direct_dial
        try:
            return dial(ctx, self.proxy_network, self.proxy_address)
        except ProxyError:
            raise
        except OSError as e:
            raise TransportError("dial %s: %s" % (self.proxy_address, e)) from e

    def dial_context(self, ctx: Context, network: str, address: str) -> SocksConnection:
        """dial_context(ctx, network, address) -> SocksConnection
        Connects to address through the proxy. ctx bounds both reaching
        the proxy and the handshake.
        """
        self._check(ctx, network, address)
        try:
            conn = self._connect_to_proxy(ctx)
        except ProxyError as e:
            raise self._op_error(network, address, e) from e
        try:
            bound = handshake(ctx, conn, self.command, self.scheme, address)
        except ProxyError as e:
            _close(conn)
            raise self._op_error(network, address, e) from e
        except BaseException:
            _close(conn)
            raise
        return SocksConnection(conn, bound)

    def dial_with_conn(self, ctx: Context, conn, network: str, address: str) -> SocksAddress:
        """dial_with_conn(ctx, conn, network, address) -> bound address
        Runs the handshake over conn, already connected to the proxy.
        conn is left open on failure; closing it is up to the caller.
        """
        self._check(ctx, network, address)
        try:
            return handshake(ctx, conn, self.command, self.scheme, address)
        except ProxyError as e:
            raise self._op_error(network, address, e) from e

    def dial(self, network: str, address: str):
        """dial(network, address) -> raw proxy connection
        Like dial_context without a context. Returns the transport
        connection itself instead of a SocksConnection.
        """
        self._check(background(), network, address)
        try:
            conn = self._connect_to_proxy(background())
        except ProxyError as e:
            raise self._op_error(network, address, e) from e
        try:
            self.dial_with_conn(background(), conn, network, address)
        except BaseException:
            _close(conn)
            raise
        return conn


__all__ = [
    'Command',
    'ConfigurationError',
    'CancellationError',
    'Context',
    'DeadlineExceeded',
    'Dialer',
    'GeneralProxyError',
    'ProtocolRejection',
    'Proxy',
    'ProxyError',
    'ReplyCode',
    'ResolutionError',
    'Scheme',
    'Socks4Error',
    'SocksAddress',
    'SocksConnection',
    'SocksOpError',
    'TargetAddressError',
    'TransportError',
    'background',
    'build_request',
    'direct_dial',
    'handshake',
    'join_host_port',
    'parse_proxy_url',
    'parse_reply',
    'resolve_ipv4',
    'split_host_port',
    'tls_proxy_dialer',
    'with_cancel',
    'with_deadline',
    'with_timeout',
]
