from typing import Annotated
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from xmlwire.bootstrap.config.loader import get_configfile
from xmlwire.core.codec.dates import DateFormatOptions
from xmlwire.core.models.config import ClientConfig, ServerConfig


class ClientSettings(BaseModel):
    url: Annotated[
        str,
        Field(
            description=(
                "Endpoint of the remote XML-RPC server, e.g. 'http://host:8080/RPC2'.\n"
                "Only plain HTTP is supported."
            ),
            default="http://127.0.0.1:9090/RPC2"
        )
    ]

    encoding: Annotated[
        str,
        Field(
            description="Text encoding declared in outgoing calls.",
            default="utf-8"
        )
    ]

    headers: Annotated[
        dict[str, str],
        Field(
            description="Extra HTTP headers sent with every call.",
            default_factory=dict
        )
    ]

    cookies: Annotated[
        bool,
        Field(
            description="Keep cookies set by the server and send them back.",
            default=False
        )
    ]

    timeout: Annotated[
        float,
        Field(
            description="Maximum time (in seconds) allowed for one call.",
            default=30.0,
            gt=0
        )
    ]

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        parts = urlsplit(v)
        if parts.scheme != "http" or not parts.hostname:
            raise ValueError(f"Expected an http:// URL with a host, got '{v}'")
        return v

    def to_config(self) -> ClientConfig:
        parts = urlsplit(self.url)
        path = parts.path or "/"
        if parts.query:
            path = f"{path}?{parts.query}"

        return ClientConfig(
            host=parts.hostname,
            port=parts.port or 80,
            path=path,
            encoding=self.encoding,
            headers=dict(self.headers),
            cookies=self.cookies,
            timeout=self.timeout,
        )


class ServerSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description="Bind address of the XML-RPC server.",
            default="127.0.0.1"
        )
    ]

    port: Annotated[
        int,
        Field(
            description="TCP port of the XML-RPC server.",
            default=9090
        )
    ]

    path: Annotated[
        str | None,
        Field(
            description="Only accept calls posted to this path (any path when unset).",
            default=None
        )
    ]

    backlog: Annotated[
        int,
        Field(
            description="Maximum number of pending TCP connections.",
            default=128
        )
    ]

    max_header_size: Annotated[
        int,
        Field(
            description="Maximum size of the request line and of each header line.",
            default=64 * 1024
        )
    ]

    max_body_size: Annotated[
        int,
        Field(
            description="Maximum allowed size of a request body.",
            default=4 * 1024 * 1024
        )
    ]

    timeout_graceful_shutdown: Annotated[
        float,
        Field(
            description="Maximum time allowed for graceful shutdown.",
            default=5.0
        )
    ]

    def to_config(self) -> ServerConfig:
        return ServerConfig(
            host=self.host,
            port=self.port,
            path=self.path,
            backlog=self.backlog,
            max_header_size=self.max_header_size,
            max_body_size=self.max_body_size,
            timeout_graceful_shutdown=self.timeout_graceful_shutdown,
        )


class DateSettings(BaseModel):
    colons: Annotated[
        bool,
        Field(description="Separate time fields with ':'.", default=True)
    ]

    hyphens: Annotated[
        bool,
        Field(description="Separate date fields with '-'.", default=False)
    ]

    local: Annotated[
        bool,
        Field(
            description=(
                "Write dateTime.iso8601 values in local time.\n"
                "When disabled, values are written in UTC with a 'Z' suffix."
            ),
            default=True
        )
    ]

    include_milliseconds: Annotated[
        bool,
        Field(description="Append '.mmm' to the seconds.", default=False)
    ]

    include_offset: Annotated[
        bool,
        Field(description="Append the local '±HH:MM' offset.", default=False)
    ]

    def to_options(self) -> DateFormatOptions:
        return DateFormatOptions(
            colons=self.colons,
            hyphens=self.hyphens,
            local=self.local,
            include_milliseconds=self.include_milliseconds,
            include_offset=self.include_offset,
        )


class XmlWireConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="XMLWIRE_",
        env_nested_delimiter="__",
        extra="allow"
    )

    client: Annotated[
        ClientSettings,
        Field(
            description="Settings of the `call` command and of XmlRpcClient.",
            default_factory=ClientSettings
        )
    ]

    server: Annotated[
        ServerSettings,
        Field(
            description=(
                "Local server configuration.\n"
                "Controls where the server listens, the limits applied to\n"
                "incoming requests and graceful shutdown behavior."
            ),
            default_factory=ServerSettings
        )
    ]

    dates: Annotated[
        DateSettings,
        Field(
            description="How dateTime.iso8601 values are written.",
            default_factory=DateSettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=get_configfile()),
        )
