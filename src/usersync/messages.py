"""Response messages with stable codes, optionally scoped to a request field."""

from dataclasses import asdict, dataclass, field
from enum import Enum


class MsgType(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


# Stable codes; callers match on these, never on the text.
MSG_DELETED = "i0003"
MSG_STALE_OR_MISSING = "e0002"

MESSAGE_TEXTS = {
    MSG_DELETED: "User {0} has been deleted.",
    MSG_STALE_OR_MISSING: "User {0} was changed or removed by another process.",
}


@dataclass(frozen=True)
class Message:
    type: MsgType
    code: str
    params: tuple[str, ...] = ()
    field: str | None = None

    @property
    def text(self) -> str:
        return MESSAGE_TEXTS.get(self.code, self.code).format(*self.params)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["type"] = self.type.value
        d["params"] = list(self.params)
        d["text"] = self.text
        return d


@dataclass
class Response:
    messages: list[Message] = field(default_factory=list)

    def put(self, type: MsgType, code: str, params=(), field: str | None = None) -> None:
        self.messages.append(Message(type, code, tuple(params), field))

    @property
    def has_error(self) -> bool:
        return any(m.type is MsgType.ERROR for m in self.messages)

    def errors_for(self, field: str) -> list[Message]:
        return [m for m in self.messages if m.type is MsgType.ERROR and m.field == field]

    def to_dict(self) -> dict:
        return {"ok": not self.has_error, "messages": [m.to_dict() for m in self.messages]}
