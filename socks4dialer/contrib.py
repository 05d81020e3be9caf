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

"""urllib3 pools that open their connections through a socks4dialer.Dialer.

    http = SOCKS4ProxyManager("socks4a://127.0.0.1:1080")
    r = http.request("GET", "http://example.com/")
"""

import logging
import socket

from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool
from urllib3.exceptions import ConnectTimeoutError, NewConnectionError
from urllib3.poolmanager import PoolManager
from urllib3.util.timeout import Timeout

from . import (DeadlineExceeded, Dialer, SocksOpError, background,
               join_host_port, with_timeout)

log = logging.getLogger(__name__)


class SOCKS4Connection(HTTPConnection):
    """An HTTPConnection whose socket comes from Dialer.dial_context."""

    def __init__(self, *args, _socks_options=None, **kwargs):
        self._socks_options = _socks_options
        super().__init__(*args, **kwargs)

    def _new_conn(self):
        dialer = self._socks_options["dialer"]
        timeout = Timeout.resolve_default_timeout(self.timeout)
        ctx = background() if timeout is None else with_timeout(background(), timeout)
        address = join_host_port(self.host, self.port)
        try:
            conn = dialer.dial_context(ctx, "tcp", address).conn
        except SocksOpError as e:
            if isinstance(e.err, DeadlineExceeded):
                raise ConnectTimeoutError(
                    self, "Connection to %s timed out. (connect timeout=%s)" % (self.host, timeout)
                ) from e
            raise NewConnectionError(self, "Failed to establish a new connection: %s" % e) from e
        finally:
            ctx.cancel()
        log.debug("http connection to %s via %s", address, dialer.proxy_address)
        if isinstance(conn, socket.socket):
            for opt in self.socket_options or ():
                conn.setsockopt(*opt)
        conn.settimeout(timeout)
        return conn


class SOCKS4HTTPSConnection(SOCKS4Connection, HTTPSConnection):
    pass


class SOCKS4HTTPConnectionPool(HTTPConnectionPool):
    ConnectionCls = SOCKS4Connection


class SOCKS4HTTPSConnectionPool(HTTPSConnectionPool):
    ConnectionCls = SOCKS4HTTPSConnection


class SOCKS4ProxyManager(PoolManager):
    """SOCKS4ProxyManager(proxy[, num_pools[, headers[, **connection_pool_kw]]])
    A PoolManager that sends every request through a SOCKS4 proxy.

    proxy - a Dialer, or a "socks4://host:port" / "socks4a://host:port" URL.
    """

    pool_classes_by_scheme = {
        "http": SOCKS4HTTPConnectionPool,
        "https": SOCKS4HTTPSConnectionPool,
    }

    def __init__(self, proxy, num_pools=10, headers=None, **connection_pool_kw):
        if isinstance(proxy, Dialer):
            self.dialer = proxy
        else:
            self.dialer = Dialer.from_url(proxy)
        connection_pool_kw["_socks_options"] = {"dialer": self.dialer}
        super().__init__(num_pools, headers, **connection_pool_kw)
        self.pool_classes_by_scheme = SOCKS4ProxyManager.pool_classes_by_scheme
