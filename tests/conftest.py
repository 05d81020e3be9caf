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

import socket
import threading

import pytest

GRANTED_REPLY = bytes.fromhex("00 5A 1F 90 0A 00 00 02")


def _recv_until_null(conn):
    data = b""
    while not data.endswith(b"\x00"):
        d = conn.recv(1)
        if not d:
            raise ConnectionError("client went away")
        data = data + d
    return data


class FakeSocks4Server:
    """Accepts one client, records its SOCKS4 request and answers it.

    reply -   the 8 reply bytes, or None to never answer.
    after -   what to do with the connection after replying:
              "echo" echoes application data back, "http" answers one
              HTTP request.
    """

    def __init__(self, reply=GRANTED_REPLY, after="echo"):
        self.reply = reply
        self.after = after
        self.requests = []
        self.accepted = threading.Event()
        self.release = threading.Event()
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener.bind(("127.0.0.1", 0))
        self.listener.listen(1)
        self.address = "127.0.0.1:%d" % self.listener.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        try:
            conn, _ = self.listener.accept()
        except OSError:
            return
        self.accepted.set()
        with conn:
            try:
                self._handle(conn)
            except OSError:
                pass

    def _handle(self, conn):
        head = b""
        while len(head) < 8:
            d = conn.recv(8 - len(head))
            if not d:
                return
            head = head + d
        req = head + _recv_until_null(conn)
        if head[4:7] == b"\x00\x00\x00" and head[7] != 0:
            req = req + _recv_until_null(conn)
        self.requests.append(req)
        if self.reply is None:
            self.release.wait(10)
            return
        conn.sendall(self.reply)
        if self.after == "echo":
            while True:
                data = conn.recv(4096)
                if not data:
                    return
                conn.sendall(data)
        elif self.after == "http":
            data = b""
            while b"\r\n\r\n" not in data:
                d = conn.recv(4096)
                if not d:
                    return
                data = data + d
            self.requests.append(data)
            conn.sendall(b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n"
                         b"Connection: close\r\n\r\nhello")

    def close(self):
        self.release.set()
        self.listener.close()
        self.thread.join(5)


@pytest.fixture
def socks_server():
    servers = []

    def start(**kwargs):
        server = FakeSocks4Server(**kwargs)
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.close()


@pytest.fixture
def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def watcher_threads():
    def running():
        return [t for t in threading.enumerate() if t.name == "socks4-handshake-watcher"]
    return running


@pytest.fixture
def full_backlog():
    """Address of a listener that never accepts and whose accept queue is
    full, so a further connect stays pending."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(0)
    address = listener.getsockname()
    fillers = []
    for _ in range(16):
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(0.3)
        try:
            sock.connect(address)
        except socket.timeout:
            sock.close()
            break
        fillers.append(sock)
    else:
        listener.close()
        for sock in fillers:
            sock.close()
        pytest.skip("accept queue never filled up")
    yield "%s:%d" % address
    for sock in fillers:
        sock.close()
    listener.close()
