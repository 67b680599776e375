import functools
import json
from functools import lru_cache

from pydantic import ValidationError

from xmlwire.bootstrap.config.settings import XmlWireConfig
from xmlwire.core.codec.dates import DateTimeCodec
from xmlwire.core.codec.deserializer import Deserializer, DeserializerFactory
from xmlwire.core.codec.serializer import Serializer
from xmlwire.core.routing.router import MethodRouter
from xmlwire.core.transport.client import XmlRpcClient
from xmlwire.core.transport.server import XmlRpcServer
from xmlwire.infra.lxml_tokenizer import LxmlTokenizer
from xmlwire.infra.lxml_writer import LxmlWriter
from xmlwire.infra.yaml_renderer import YamlRenderer


@lru_cache
def get_config() -> XmlWireConfig:
    try:
        return XmlWireConfig()
    except FileNotFoundError as ex:
        raise SystemExit(f"Provide a correct configuration file path: {ex}")
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}")
        raise SystemExit("\n".join(msg))


@lru_cache
def get_dates() -> DateTimeCodec:
    return DateTimeCodec(get_config().dates.to_options())


@lru_cache
def get_serializer() -> Serializer:
    return Serializer(writer_factory=LxmlWriter.create, dates=get_dates())


@lru_cache
def get_deserializer_factory() -> DeserializerFactory:
    return functools.partial(Deserializer, LxmlTokenizer, get_dates())


@lru_cache
def get_router() -> MethodRouter:
    return MethodRouter()


@lru_cache
def get_server() -> XmlRpcServer:
    return XmlRpcServer(
        config=get_config().server.to_config(),
        router=get_router(),
        serializer=get_serializer(),
        deserializer_factory=get_deserializer_factory(),
    )


@lru_cache
def get_client() -> XmlRpcClient:
    return XmlRpcClient(
        config=get_config().client.to_config(),
        serializer=get_serializer(),
        deserializer_factory=get_deserializer_factory(),
    )


@lru_cache
def get_renderer() -> YamlRenderer:
    return YamlRenderer()
