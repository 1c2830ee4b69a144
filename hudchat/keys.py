import codecs
import logging
from dataclasses import dataclass
from typing import List, Literal, Union

import readchar


logger = logging.getLogger(__name__)


KeyKind = Literal["char", "paste", "backspace", "enter", "left", "right", "interrupt"]

ENTER_KEYS = {readchar.key.ENTER, '\r', '\n'}
BACKSPACE_KEYS = {readchar.key.BACKSPACE, '\b'}
SEQUENCES = {
    readchar.key.LEFT: "left", '\x1bOD': "left",
    readchar.key.RIGHT: "right", '\x1bOC': "right",
}
MAX_SEQUENCE = 16


@dataclass(frozen=True)
class KeyEvent:
    kind: KeyKind
    text: str = ""


def _printable(c: str) -> bool:
    return c.isprintable() and c != '\x7f'


def _clean_paste(chunk: str) -> str:
    out = []
    for c in chunk:
        if c in '\r\n\t': out.append(' ')
        elif _printable(c): out.append(c)
    return "".join(out)


class InputDecoder:
    '''
    Turns raw terminal input into KeyEvents.

    Escape sequences may be split across reads, so an open sequence is kept
    between calls to `feed` until its final byte (A-Z or ~) arrives.
    Unknown sequences and stray control bytes are dropped.
    '''

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder('utf-8')(errors='replace')
        self._seq = ""

    @property
    def in_sequence(self) -> bool:
        return bool(self._seq)

    def feed(self, chunk: Union[bytes, str]) -> List[KeyEvent]:
        text = self._utf8.decode(chunk) if isinstance(chunk, bytes) else chunk
        if not text:
            return []

        if not self._seq and len(text) > 1 and readchar.key.ESC not in text and readchar.key.CTRL_C not in text:
            pasted = _clean_paste(text)
            return [KeyEvent("paste", pasted)] if pasted else []

        events = []
        for c in text:
            ev = self._feed_char(c)
            if ev: events.append(ev)
        return events

    def _feed_char(self, c: str):
        if self._seq:
            return self._continue_sequence(c)

        if c == readchar.key.ESC:
            self._seq = c
            return None
        if c == readchar.key.CTRL_C: return KeyEvent("interrupt")
        if c in ENTER_KEYS: return KeyEvent("enter")
        if c in BACKSPACE_KEYS: return KeyEvent("backspace")
        if _printable(c): return KeyEvent("char", c)
        return None

    def _continue_sequence(self, c: str):
        seq = self._seq + c
        if len(seq) == 2:
            if c in '[O':
                self._seq = seq
                return None
            logger.debug("dropping escape prefix %r", seq)
            self._seq = ""
            return None

        # SS3 sequences are always three characters long
        if seq[1] == 'O' or 'A' <= c <= 'Z' or c == '~':
            self._seq = ""
            kind = SEQUENCES.get(seq)
            if kind is None:
                logger.debug("dropping escape sequence %r", seq)
                return None
            return KeyEvent(kind)

        if len(seq) >= MAX_SEQUENCE:
            logger.debug("dropping unterminated escape sequence %r", seq)
            self._seq = ""
            return None
        self._seq = seq
        return None
