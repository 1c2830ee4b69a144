import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


DEFAULT_NAMES = {Role.USER: "You", Role.ASSISTANT: "Bot", Role.SYSTEM: "System"}


def clock_stamp() -> str:
    return time.strftime("%I:%M:%S %p")


@dataclass
class MessageRecord:
    role: Role
    name: str
    text: str = ""
    created_at: float = 0.0
    last_updated_at: float = 0.0
    stamp: str = field(default_factory=clock_stamp)
    label_color: Optional[str] = None
    text_color: Optional[str] = None
    lines: List[str] = field(default_factory=list)

    def __post_init__(self):
        self._set_text(self.text)

    def _set_text(self, text: str):
        # text and lines are only ever written together
        self.text = text
        self.lines = text.split('\n')


class MessageLog:
    '''
    Append-only chat history.

    Earlier records never change once something newer of the same role has
    been appended; the only in-place mutation is extending the open
    assistant record while a reply streams in (see `append_or_extend`).
    '''

    def __init__(self, theme=None, clock=time.monotonic):
        self._records: List[MessageRecord] = []
        self._lock = threading.Lock()
        self._clock = clock
        self.theme = theme
        self.version = 0

    def __len__(self):
        with self._lock:
            return len(self._records)

    def records(self) -> List[MessageRecord]:
        with self._lock:
            return list(self._records)

    def last(self, role: Optional[Role] = None) -> Optional[MessageRecord]:
        with self._lock:
            return self._last(role)

    def _last(self, role):
        for rec in reversed(self._records):
            if role is None or rec.role == role:
                return rec
        return None

    def _colors(self, role: Role):
        t = self.theme
        if t is None: return None, None
        if role == Role.USER: return t.user, t.user_text
        if role == Role.ASSISTANT: return t.bot, t.bot_text
        return t.system, t.system_text

    def _new(self, role, text, name, label_color, now):
        label, body = self._colors(role)
        rec = MessageRecord(
            role=role,
            name=name or DEFAULT_NAMES[role],
            text=text,
            created_at=now,
            last_updated_at=now,
            label_color=label_color or label,
            text_color=body,
        )
        self._records.append(rec)
        self.version += 1
        return rec

    def append(self, role: Role, text: str, *, name: Optional[str] = None, label_color: Optional[str] = None, now: Optional[float] = None) -> MessageRecord:
        role = Role(role)
        with self._lock:
            return self._new(role, text, name, label_color, self._clock() if now is None else now)

    def append_or_extend(self, fragment: str, *, now: float, stale_after: float) -> MessageRecord:
        '''
        Streams `fragment` into the most recent assistant record, or opens a
        new one when there is none or it has not been touched for longer
        than `stale_after` seconds.
        '''
        with self._lock:
            rec = self._last(Role.ASSISTANT)
            if rec is None or now - rec.last_updated_at > stale_after:
                return self._new(Role.ASSISTANT, fragment, None, None, now)
            rec._set_text(rec.text + fragment)
            rec.last_updated_at = now
            self.version += 1
            return rec
