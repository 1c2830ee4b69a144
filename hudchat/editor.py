from hudchat.keys import KeyEvent


class LineEditor:
    '''
    Single line input buffer with a cursor offset.
    The cursor always stays within [0, len(buffer)].
    '''

    def __init__(self, text: str = ""):
        self.buffer = ""
        self.cursor = 0
        if text: self.insert(text)

    def insert(self, text: str):
        text = "".join(c for c in text if c.isprintable())
        if not text: return
        self.buffer = self.buffer[:self.cursor] + text + self.buffer[self.cursor:]
        self.cursor += len(text)

    def backspace(self):
        if self.cursor == 0: return
        self.buffer = self.buffer[:self.cursor-1] + self.buffer[self.cursor:]
        self.cursor -= 1

    def move_left(self):
        if self.cursor > 0: self.cursor -= 1

    def move_right(self):
        if self.cursor < len(self.buffer): self.cursor += 1

    def take_and_clear(self) -> str:
        """Returns the trimmed buffer and empties it. Blank input is left alone and yields ''."""
        text = self.buffer.strip()
        if not text:
            return ""
        self.buffer, self.cursor = "", 0
        return text

    def apply(self, ev: KeyEvent) -> bool:
        """Applies an editing event; returns False for events the editor does not handle."""
        if ev.kind in ("char", "paste"): self.insert(ev.text)
        elif ev.kind == "backspace": self.backspace()
        elif ev.kind == "left": self.move_left()
        elif ev.kind == "right": self.move_right()
        else: return False
        return True
