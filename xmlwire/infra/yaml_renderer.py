import base64
from collections.abc import Mapping
from typing import Any

import yaml

from xmlwire.core.models.value import BigInteger


class YamlRenderer:
    """Renders decoded XML-RPC values as YAML for the command line."""

    def render(self, value: Any) -> str:
        return yaml.safe_dump(self._normalize(value), sort_keys=False, allow_unicode=True)

    def _normalize(self, obj: Any) -> Any:
        if isinstance(obj, BigInteger):
            return int(obj)

        if isinstance(obj, (bytes, bytearray)):
            return base64.b64encode(obj).decode("ascii")

        if isinstance(obj, Mapping):
            return {str(k): self._normalize(v) for k, v in obj.items()}

        if isinstance(obj, (list, tuple)):
            return [self._normalize(x) for x in obj]

        return obj
