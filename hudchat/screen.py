from typing import List, Optional, Tuple


Rect = Tuple[int, int, int, int]  # (x, y, w, h)


class Region(tuple):
    """
    A (x,y,w,h) area on the screen. Width and height never go negative,
    so layouts on tiny terminals shrink to nothing instead of breaking.
    """
    def __new__(cls, x: int = 0, y: int = 0, w: int = 0, h: int = 0):
        return super().__new__(cls, (int(x), int(y), max(0, int(w)), max(0, int(h))))

    def __repr__(self):
        return f"Region{super().__repr__()}"


class ScreenBuffer:
    def __init__(self, w, h):
        self.w, self.h = max(0, w), max(0, h)
        self.chars = [[' '] * self.w for _ in range(self.h)]
        self.styles: List[List[Optional[str]]] = [[None] * self.w for _ in range(self.h)]

    def put(self, x, y, char, style=None):
        if 0 <= x < self.w and 0 <= y < self.h:
            self.chars[y][x] = char
            self.styles[y][x] = style

    def puts(self, x, y, text, style=None) -> int:
        for i, c in enumerate(text):
            self.put(x + i, y, c, style)
        return x + len(text)

    def clear_row(self, y):
        if 0 <= y < self.h:
            self.chars[y][:] = [' '] * self.w
            self.styles[y][:] = [None] * self.w

    def hline(self, r: Rect, style=None, left='─', mid='─', right='─'):
        x, y, w, _ = r
        for i in range(w):
            c = left if i == 0 else right if i == w - 1 else mid
            self.put(x + i, y, c, style)

    def row_text(self, y) -> str:
        return "".join(self.chars[y])

    def row(self, y):
        return list(zip(self.chars[y], self.styles[y]))

    def _render_row(self, term, y) -> str:
        out, run, run_style = "", "", None
        for c, s in self.row(y) + [("", object())]:
            if s == run_style:
                run += c
                continue
            if run:
                styled = getattr(term, run_style, None) if run_style else None
                out += styled(run) if styled else run
            run, run_style = c, s
        return out

    def flush(self, term, since: Optional['ScreenBuffer'] = None) -> int:
        '''
        Writes rows to the terminal with absolute positioning. Rows equal to
        the same row in `since` are skipped. Returns the number of rows written.
        '''
        same_size = since is not None and (since.w, since.h) == (self.w, self.h)
        out, written = "", 0
        for y in range(self.h):
            if same_size and since.row(y) == self.row(y): continue
            out += term.move_yx(y, 0) + self._render_row(term, y)
            written += 1
        if out:
            print(out, end='', file=term.stream, flush=True)
        return written

    def copy(self) -> 'ScreenBuffer':
        cpy = ScreenBuffer(self.w, self.h)
        cpy.chars = [row[:] for row in self.chars]
        cpy.styles = [row[:] for row in self.styles]
        return cpy
