from typing import Any


class XmlRpcError(Exception):
    """Base class for every error raised by the codec and the transport."""


class MalformedValue(XmlRpcError):
    """
    Raised when the text of a typed element fails validation
    (boolean, int, i8, double or dateTime.iso8601).
    """


class StructuralError(XmlRpcError):
    """
    Raised when the document cannot be an XML-RPC message: an array or
    struct was never closed, no envelope was recognized by the end of the
    stream, or the markup itself is not well formed.
    """


class ProtocolTypeError(XmlRpcError):
    """
    Raised when a well-formed message is not the one that was asked for:
    a call where a response was expected, a missing method name, or more
    than one top-level response value.
    """


class FaultResponse(XmlRpcError):
    """
    Application-level fault returned by the remote side.

    Handlers may also raise it to send a fault with a chosen code.
    """

    def __init__(
        self,
        fault_code: Any = None,
        fault_string: str | None = None,
        fault: Any = None,
    ) -> None:
        message = "XML-RPC fault"
        if fault_string:
            message = f"{message}: {fault_string}"
        super().__init__(message)

        self.fault_code = fault_code
        self.fault_string = fault_string
        self.fault = fault if fault is not None else self.to_dict()

    @classmethod
    def from_value(cls, fault: Any) -> "FaultResponse":
        """Build the error from whatever value the fault element carried."""
        if isinstance(fault, dict):
            return cls(
                fault_code=fault.get("faultCode"),
                fault_string=fault.get("faultString"),
                fault=fault,
            )
        return cls(fault=fault)

    def to_dict(self) -> dict[str, Any]:
        return {
            "faultCode": self.fault_code,
            "faultString": self.fault_string or "",
        }


class TransportError(XmlRpcError):
    """
    Raised by the HTTP layer (connection failure, timeout, non-2xx status).

    The raw request, response head and body are kept for diagnostics.
    """

    def __init__(
        self,
        message: str,
        request: Any = None,
        response: Any = None,
        body: bytes | None = None,
    ) -> None:
        super().__init__(message)
        self.request = request
        self.response = response
        self.body = body


class NotFound(TransportError):
    """The server answered 404: the requested method or path is unknown."""
