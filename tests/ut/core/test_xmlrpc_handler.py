import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from xmlwire.core.models.config import ServerConfig
from xmlwire.core.models.errors import FaultResponse
from xmlwire.core.models.state import ServerState
from xmlwire.core.routing.router import APPLICATION_ERROR, MethodRouter
from xmlwire.core.transport.handler import PARSE_ERROR, XmlRpcHandler


@pytest.fixture
def server_state():
    return ServerState()


@pytest.fixture
def config():
    return ServerConfig(host="127.0.0.1", port=0, path="/RPC2", max_body_size=8 * 1024)


@pytest.fixture
def release():
    return asyncio.Event()


@pytest.fixture
def router(release):
    router = MethodRouter()

    @router.method("sum")
    def add(a, b):
        return a + b

    @router.method("fail")
    def fail():
        raise FaultResponse(4, "Too many params")

    @router.method("boom")
    def boom():
        raise RuntimeError("kaboom")

    @router.method("ctrl")
    def ctrl():
        return "a\x01b"

    @router.method("slow")
    async def slow():
        await release.wait()
        return "done"

    return router


def app_for(handler: XmlRpcHandler) -> web.Application:
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", handler.handle)
    return app


@pytest_asyncio.fixture
async def client(config, server_state, router, serializer, deserializer_factory):
    handler = XmlRpcHandler(config, server_state, router, serializer, deserializer_factory)
    async with TestClient(TestServer(app_for(handler))) as client:
        yield client


async def call(client, serializer, method, params=(), path="/RPC2"):
    return await client.post(path, data=serializer.encode_call(method, params).encode("utf-8"))


async def fault_of(response, deserializer_factory) -> FaultResponse:
    body = await response.read()
    with pytest.raises(FaultResponse) as exc_info:
        deserializer_factory().decode_response([body])
    return exc_info.value


@pytest.mark.ut
@pytest.mark.asyncio
async def test_call_is_dispatched_and_answered(client, serializer, deserializer_factory):
    response = await call(client, serializer, "sum", [2, 3])

    assert response.status == 200
    assert response.content_type == "text/xml"
    assert response.headers["Connection"] == "close"
    assert deserializer_factory().decode_response([await response.read()]) == 5


@pytest.mark.ut
@pytest.mark.asyncio
async def test_fault_from_handler(client, serializer, deserializer_factory):
    response = await call(client, serializer, "fail")

    assert response.status == 200
    fault = await fault_of(response, deserializer_factory)
    assert fault.fault_code == 4
    assert fault.fault_string == "Too many params"


@pytest.mark.ut
@pytest.mark.asyncio
async def test_handler_error_becomes_fault(client, serializer, deserializer_factory):
    fault = await fault_of(await call(client, serializer, "boom"), deserializer_factory)

    assert fault.fault_code == APPLICATION_ERROR
    assert fault.fault_string == "kaboom"


@pytest.mark.ut
@pytest.mark.asyncio
async def test_unencodable_result_becomes_fault(client, serializer, deserializer_factory):
    response = await call(client, serializer, "ctrl")

    assert response.status == 200
    assert response.headers["Connection"] == "close"
    fault = await fault_of(response, deserializer_factory)
    assert fault.fault_code == APPLICATION_ERROR
    assert fault.fault_string.startswith("Unable to encode the response")


@pytest.mark.ut
@pytest.mark.asyncio
async def test_unknown_method_is_404(client, serializer):
    response = await call(client, serializer, "missing")

    assert response.status == 404
    assert await response.read() == b""


@pytest.mark.ut
@pytest.mark.asyncio
async def test_invalid_body_is_parse_error_fault(client, deserializer_factory):
    response = await client.post("/RPC2", data=b"<methodCall><params></methodCall>")

    assert response.status == 200
    fault = await fault_of(response, deserializer_factory)
    assert fault.fault_code == PARSE_ERROR


@pytest.mark.ut
@pytest.mark.asyncio
async def test_overlong_integer_is_parse_error_fault(client, deserializer_factory):
    body = (
        b"<methodCall><methodName>sum</methodName><params><param><value><int>"
        + b"9" * 5000
        + b"</int></value></param></params></methodCall>"
    )
    fault = await fault_of(await client.post("/RPC2", data=body), deserializer_factory)

    assert fault.fault_code == PARSE_ERROR
    assert "too long" in fault.fault_string


@pytest.mark.ut
@pytest.mark.asyncio
async def test_response_is_not_a_call(client, serializer, deserializer_factory):
    body = serializer.encode_response(1).encode("utf-8")
    fault = await fault_of(await client.post("/RPC2", data=body), deserializer_factory)

    assert fault.fault_code == PARSE_ERROR
    assert "Not a method call" in fault.fault_string


@pytest.mark.ut
@pytest.mark.asyncio
async def test_only_post_is_allowed(client):
    response = await client.get("/RPC2")

    assert response.status == 405
    assert response.headers["Allow"] == "POST"
    assert response.headers["Connection"] == "close"


@pytest.mark.ut
@pytest.mark.asyncio
async def test_wrong_path_is_404(client, serializer):
    response = await call(client, serializer, "sum", [1, 2], path="/other")
    assert response.status == 404


@pytest.mark.ut
@pytest.mark.asyncio
async def test_missing_content_length_is_411(client):
    async def chunks():
        yield b"<methodCall/>"

    response = await client.post("/RPC2", data=chunks())
    assert response.status == 411


@pytest.mark.ut
@pytest.mark.asyncio
async def test_body_too_large_is_413(client):
    response = await client.post("/RPC2", data=b"x" * 16 * 1024)
    assert response.status == 413


@pytest.mark.ut
@pytest.mark.asyncio
async def test_any_path_accepted_without_configured_path(
    server_state, router, serializer, deserializer_factory
):
    handler = XmlRpcHandler(
        ServerConfig(host="127.0.0.1", port=0), server_state, router, serializer, deserializer_factory
    )

    async with TestClient(TestServer(app_for(handler))) as client:
        response = await call(client, serializer, "sum", [1, 1], path="/anything")
        assert deserializer_factory().decode_response([await response.read()]) == 2


@pytest.mark.ut
@pytest.mark.asyncio
async def test_running_call_is_tracked(client, serializer, server_state, release):
    pending = asyncio.create_task(call(client, serializer, "slow"))

    while not server_state.tasks:
        await asyncio.sleep(0.01)
    assert len(server_state.tasks) == 1

    release.set()
    response = await pending

    assert response.status == 200
    assert not server_state.tasks
