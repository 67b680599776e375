from dataclasses import dataclass, field


@dataclass
class ClientConfig:
    """
    Static configuration for an XmlRpcClient.
    """
    host: str
    """
    Hostname or IP address of the XML-RPC server.
    """

    port: int
    """
    TCP port of the XML-RPC server.
    """

    path: str = "/"
    """
    Request target of the POST, e.g. "/RPC2".
    """

    encoding: str = "utf-8"
    """
    Text encoding declared in outgoing calls and used for the body.
    """

    headers: dict[str, str] = field(default_factory=dict)
    """
    Extra headers sent with every request.
    """

    cookies: bool = False
    """
    Keep cookies set by the server and send them back on later calls.
    """

    timeout: float = 30.0
    """
    Maximum time (in seconds) allowed for one complete call.
    """


@dataclass
class ServerConfig:
    """
    Static configuration for an XmlRpcServer: networking, resource limits
    and graceful shutdown behavior.
    """
    host: str
    """
    IP address or hostname on which the server listens.
    """

    port: int
    """
    TCP port to bind. If set to 0, the OS selects an available port.
    """

    path: str | None = None
    """
    Only accept calls posted to this path. None accepts any path.
    """

    backlog: int = 128
    """
    Maximum number of pending TCP connections waiting for accept().
    """

    max_header_size: int = 64 * 1024  # 64KB
    """
    Maximum size of the request line and of each header line.
    """

    max_body_size: int = 4 * 1024 * 1024  # 4MB
    """
    Maximum size of a request body. Larger requests get a 413 answer.
    """

    timeout_graceful_shutdown: float = 5.0
    """
    Maximum time (in seconds) allowed for graceful shutdown:
    - active connections must close
    - in-flight calls registered in ServerState.tasks must complete
    After this timeout, remaining tasks are cancelled.
    """
