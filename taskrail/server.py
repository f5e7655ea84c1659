from __future__ import annotations

import functools
import logging
import threading
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import quote

logger = logging.getLogger(__name__)


class ServerError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class _QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format: str, *args) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class StaticServer:
    """Static file server on a background thread.

    Shared read-only by every client while it runs. ``stop()`` may be called
    any number of times; only the first call shuts the server down.
    """

    def __init__(self, root: str | Path = ".", host: str = "127.0.0.1", port: int = 8009):
        self.root = Path(root)
        self.host = host
        self._port = port
        self._httpd: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._httpd is not None

    @property
    def port(self) -> int:
        if self._httpd is not None:
            return self._httpd.server_address[1]
        return self._port

    @property
    def url(self) -> str:
        host = "127.0.0.1" if self.host in ("", "0.0.0.0") else self.host
        return f"http://{host}:{self.port}"

    def url_for(self, relpath: str) -> str:
        path = Path(relpath).as_posix().lstrip("/")
        return f"{self.url}/{quote(path)}"

    def start(self) -> StaticServer:
        if self._httpd is not None:
            return self
        if not self.root.is_dir():
            raise ServerError(f"Server root is not a directory: {self.root}")

        handler = functools.partial(_QuietHandler, directory=str(self.root))
        try:
            httpd = ThreadingHTTPServer((self.host, self._port), handler)
        except OSError as exc:
            raise ServerError(
                f"Could not start server on {self.host}:{self._port}: {exc}"
            ) from exc

        httpd.daemon_threads = True
        self._httpd = httpd
        self._thread = threading.Thread(
            target=httpd.serve_forever, name=f"static-server-{self.port}", daemon=True
        )
        self._thread.start()
        logger.info("Serving %s at %s", self.root, self.url)
        return self

    def stop(self) -> None:
        httpd, self._httpd = self._httpd, None
        if httpd is None:
            return
        httpd.shutdown()
        httpd.server_close()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        logger.info("Stopped server on port %s", httpd.server_address[1])

    def __enter__(self) -> StaticServer:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
