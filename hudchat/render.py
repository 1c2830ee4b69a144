import time
from typing import List, NamedTuple, Optional, Tuple

from hudchat.config import ChatConfig
from hudchat.editor import LineEditor
from hudchat.messages import MessageLog, MessageRecord
from hudchat.screen import Region, ScreenBuffer


ELLIPSIS = '…'
PROMPT = ' ➤ '
BUSY = '[bot]'

Segment = Tuple[str, Optional[str]]  # (text, style)


def wrap_text(text: str, width: int) -> List[str]:
    '''
    Word wraps one line of text. Words longer than `width` are split into
    `width-1` characters plus a hyphen. No returned line is longer than `width`.
    '''
    if width < 1: return []
    if len(text) <= width: return [text]

    step = width - 1 if width > 1 else 1
    hyphen = '-' if width > 1 else ''
    lines, line = [], ""
    for word in text.split(' '):
        candidate = f"{line} {word}" if line else word
        if len(candidate) <= width:
            line = candidate
            continue
        if line: lines.append(line)
        while len(word) > width:
            lines.append(word[:step] + hyphen)
            word = word[step:]
        line = word
    if line: lines.append(line)
    return lines


def visible_input(buffer: str, cursor: int, width: int) -> Tuple[str, int]:
    '''
    The slice of the input buffer that fits in `width` columns, with an
    ellipsis marking each cut side, and the cursor's column within it.
    The cursor needs a cell of its own when it sits at the end of the buffer.
    '''
    if width <= 0: return "", 0
    if len(buffer) < width: return buffer, cursor
    if cursor <= width - 2:
        return buffer[:width - 1] + ELLIPSIS, cursor
    start = cursor - (width - 2)
    if width < 3 or start + width - 1 >= len(buffer):
        return ELLIPSIS + buffer[start:start + width - 1], cursor - start + 1
    # cut on both sides: the cursor sits on the last cell before the right marker
    start += 1
    return ELLIPSIS + buffer[start:start + width - 2] + ELLIPSIS, cursor - start + 1


class Layout(NamedTuple):
    top: int
    title: int
    sep: int
    messages: Region
    sep2: int
    input: int
    bottom: int


def layout(width: int, height: int) -> Layout:
    # the last terminal row stays empty so drawing the bottom border never scrolls
    rows = max(0, height - 7)
    return Layout(0, 1, 2, Region(1, 3, width - 2, rows), 3 + rows, 4 + rows, 5 + rows)


class RenderEngine:
    '''
    Draws the chat frame into a ScreenBuffer and flushes only the rows that
    changed since the previous flush. A full paint rebuilds every row; an
    input paint (cursor blink, typing) touches the input row only.
    '''

    def __init__(self, log: MessageLog, editor: LineEditor, config: ChatConfig):
        self.log = log
        self.editor = editor
        self.config = config
        self.buf: Optional[ScreenBuffer] = None
        self._flushed: Optional[ScreenBuffer] = None

    @property
    def theme(self):
        return self.config.theme

    def _blink_on(self, now: float) -> bool:
        return int(now / self.config.blink_interval) % 2 == 0

    def display_lines(self, records: List[MessageRecord], width: int) -> List[List[Segment]]:
        t = self.theme
        rows = []
        for rec in records:
            head, label = f"[{rec.stamp}] ", f"{rec.name}:"
            prefix_len = len(head) + len(label) + 1
            indent = ' ' * (prefix_len - 1)
            first_w = max(1, width - prefix_len - 4)
            cont_w = max(1, width - len(indent) - 4)
            for j, line in enumerate(rec.lines):
                wrapped = wrap_text(line, first_w if j == 0 else cont_w) or [""]
                for k, part in enumerate(wrapped):
                    if j == 0 and k == 0:
                        rows.append([(head, t.timestamp), (label, rec.label_color), (" ", None), (part, rec.text_color)])
                    else:
                        rows.append([(indent, None), (part, rec.text_color)])
        return rows

    def compose(self, width: int, height: int, *, generating: bool = False, now: Optional[float] = None) -> ScreenBuffer:
        buf = ScreenBuffer(width, height)
        lay = layout(width, height)
        t = self.theme

        # messages first; the frame is drawn over anything that overflows
        x, y, w, h = lay.messages
        if h > 0:
            lines = self.display_lines(self.log.records(), width)
            for i, segments in enumerate(lines[-h:]):
                col = x
                for text, style in segments:
                    col = buf.puts(col, y + i, text[:max(0, x + w - col)], style)

        buf.hline((0, lay.top, width, 1), t.border, '┌', '─', '┐')
        buf.hline((0, lay.sep, width, 1), t.border, '├', '─', '┤')
        buf.hline((0, lay.sep2, width, 1), t.border, '├', '─', '┤')
        buf.hline((0, lay.bottom, width, 1), t.border, '└', '─', '┘')
        for row in [lay.title, lay.input] + list(range(y, y + h)):
            buf.put(0, row, '│', t.border)
            buf.put(width - 1, row, '│', t.border)

        title = f" {self.config.title} "[:max(0, width - 2)]
        buf.puts(1 + (width - 2 - len(title)) // 2, lay.title, title, t.title)

        self.compose_input(buf, generating=generating, now=now)
        return buf

    def compose_input(self, buf: ScreenBuffer, *, generating: bool = False, now: Optional[float] = None):
        now = time.monotonic() if now is None else now
        t = self.theme
        width, row = buf.w, layout(buf.w, buf.h).input

        buf.clear_row(row)
        buf.put(0, row, '│', t.border)
        buf.put(width - 1, row, '│', t.border)
        x = buf.puts(1, row, PROMPT, t.prompt)

        avail = width - 5
        busy = generating and avail >= 12
        if busy:
            avail -= len(BUSY) + 1
            buf.puts(width - 1 - len(BUSY), row, BUSY, t.bot_indicator)

        text, col = visible_input(self.editor.buffer, self.editor.cursor, avail)
        buf.puts(x, row, text, None)
        if avail > 0:
            glyph = text[col] if col < len(text) else ' '
            buf.put(x + col, row, glyph, t.cursor if self._blink_on(now) else None)

    def invalidate(self):
        self.buf = None

    def paint(self, term, *, full: bool = True, generating: bool = False, now: Optional[float] = None) -> int:
        width, height = term.width, term.height
        if width <= 0 or height <= 0:
            return 0
        resized = self.buf is None or (self.buf.w, self.buf.h) != (width, height)
        if full or resized:
            self.buf = self.compose(width, height, generating=generating, now=now)
        else:
            self.compose_input(self.buf, generating=generating, now=now)
        if resized:
            print(term.home + term.clear, end='', file=term.stream, flush=True)
            self._flushed = None
        written = self.buf.flush(term, since=self._flushed)
        self._flushed = self.buf.copy()
        return written
