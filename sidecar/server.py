import os
import socket

import uvicorn

HOST_ALL_INTERFACES = os.getenv("HOST_ALL_INTERFACES", "").lower() == "true"


def find_free_port() -> int:
    port = os.getenv("PORT", "")
    if port:
        return int(port)
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def start_server(app, port: int):
    host = "0.0.0.0" if HOST_ALL_INTERFACES else "127.0.0.1"
    print(f"PORT:{port}", flush=True)
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="warning",
    )
