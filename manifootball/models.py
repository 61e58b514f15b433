"""Data models for the live event feed."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class OpCode(str, Enum):
    """Push channel operation code (the `op` field of every frame)."""

    BEGIN = "B"
    CONNECT = "C"
    HEARTBEAT = "H"
    INFO = "I"
    PING = "P"
    RESULT = "R"
    SESSION = "S"


class PatchOp(str, Enum):
    """Structural operation carried inside a result frame."""

    ADD = "add"
    REPLACE = "replace"
    REMOVE = "remove"


@dataclass
class WebSocketHost:
    """Connection coordinates returned by the discovery endpoint."""

    ip: str
    port: int
    secure_port: int
    token: str

    @classmethod
    def from_dict(cls, data: dict) -> "WebSocketHost":
        """Create from the discovery response."""
        return cls(
            ip=data["ip"],
            port=int(data.get("port", 0)),
            secure_port=int(data["securePort"]),
            token=data["token"],
        )


@dataclass
class Frame:
    """One message on the push channel."""

    op: str
    raw: dict = field(default_factory=dict, repr=False)


@dataclass
class ConnectFrame(Frame):
    """Connection accepted; carries the session id."""

    sid: Optional[str] = None
    rc: Optional[int] = None
    hbi: Optional[int] = None


@dataclass
class HeartbeatFrame(Frame):
    """A fresh base document is available at `url`."""

    url: str = ""
    topic: str = ""
    mid: int = 0
    use_cdn: bool = False


@dataclass
class ResultFrame(Frame):
    """Incremental patch batch; `payload` is the raw JSON string."""

    payload: Any = None
    topic: str = ""
    mid: int = 0


def parse_frame(data: dict) -> Frame:
    """Classify a decoded wire message by its operation code."""
    op = data.get("op", "")

    if op == OpCode.CONNECT:
        return ConnectFrame(
            op=op,
            raw=data,
            sid=data.get("sid"),
            rc=data.get("rc"),
            hbi=data.get("hbi"),
        )

    if op == OpCode.HEARTBEAT:
        return HeartbeatFrame(
            op=op,
            raw=data,
            url=data.get("pl", ""),
            topic=data.get("tc", ""),
            mid=data.get("mid", 0),
            use_cdn=bool(data.get("useCDN", False)),
        )

    if op == OpCode.RESULT:
        return ResultFrame(
            op=op,
            raw=data,
            payload=data.get("pl"),
            topic=data.get("tc", ""),
            mid=data.get("mid", 0),
        )

    return Frame(op=op, raw=data)


@dataclass
class Snapshot:
    """Fully patched view of one live event at a point in time."""

    sid: str
    mid: int
    document: Any
