import socket
import threading
import time
from contextlib import closing

import pytest
import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response

from piloted.models.schemas import BackendEntry


# --- helpers ---------------------------------------------------------------

def _free_port() -> int:
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class _BgServer:
    """Run a uvicorn server in a background thread; stop with should_exit=True."""
    def __init__(self, app, host: str, port: int):
        self.config = uvicorn.Config(app, host=host, port=port, log_level="error")
        self.server = uvicorn.Server(self.config)
        self.thread = threading.Thread(target=self.server.run, daemon=True)

    def start(self):
        self.thread.start()
        # Wait until port is accepting connections
        deadline = time.time() + 5
        while time.time() < deadline:
            try:
                with socket.create_connection((self.config.host, self.config.port), timeout=0.25):
                    return
            except OSError:
                time.sleep(0.05)
        raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.should_exit = True
        self.thread.join(timeout=3)


def record(address: str, port: str) -> dict:
    """A catalog record the way Consul returns it."""
    return {"ID": "node-id", "Node": "node", "Service": {"ID": address, "Address": address, "Port": port}}


def entry(address: str, port: str) -> BackendEntry:
    return BackendEntry(address=address, port=port)


# --- mock Consul catalog -----------------------------------------------------

class MockCatalog:
    """Serves /v1/catalog/service/{name} from programmable responses.

    Each service has a list of responses; every request consumes the next one
    and the last one repeats. A response is either a JSON payload or an int
    status code.
    """

    def __init__(self):
        self.responses: dict[str, list] = {}
        self.hits: dict[str, int] = {}
        self.lock = threading.Lock()
        self.app = self._make_app()
        self.endpoint = ""

    def set(self, name: str, *responses) -> None:
        with self.lock:
            self.responses[name] = list(responses)

    def reset(self) -> None:
        with self.lock:
            self.responses.clear()
            self.hits.clear()

    def _next(self, name: str):
        with self.lock:
            n = self.hits.get(name, 0)
            self.hits[name] = n + 1
            queue = self.responses.get(name)
            if not queue:
                return 404
            return queue[min(n, len(queue) - 1)]

    def _make_app(self) -> FastAPI:
        app = FastAPI()

        @app.get("/v1/catalog/service/{name}")
        async def catalog_service(name: str):
            result = self._next(name)
            if isinstance(result, int):
                return Response(status_code=result)
            return JSONResponse(result)

        return app


@pytest.fixture(scope="session")
def _catalog_server():
    catalog = MockCatalog()
    port = _free_port()
    server = _BgServer(catalog.app, "127.0.0.1", port)
    server.start()
    catalog.endpoint = f"127.0.0.1:{port}"
    try:
        yield catalog
    finally:
        server.stop()


@pytest.fixture
def catalog(_catalog_server):
    _catalog_server.reset()
    yield _catalog_server
    _catalog_server.reset()


@pytest.fixture
def anyio_backend():
    return "asyncio"
