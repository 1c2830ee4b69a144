from __future__ import annotations

import random
import string

import pytest

from hudchat.config import ChatConfig
from hudchat.editor import LineEditor
from hudchat.messages import MessageLog, Role
from hudchat.render import BUSY, ELLIPSIS, RenderEngine, layout, visible_input, wrap_text
from hudchat.screen import Region, ScreenBuffer


def make_engine(**config):
    cfg = ChatConfig(**config)
    log = MessageLog(theme=cfg.theme)
    return RenderEngine(log, LineEditor(), cfg)


# --- wrap_text ---

def test_short_text_is_returned_as_is() -> None:
    assert wrap_text("hello", 10) == ["hello"]
    assert wrap_text("", 10) == [""]


def test_words_wrap_at_spaces() -> None:
    assert wrap_text("the quick brown fox", 10) == ["the quick", "brown fox"]


def test_long_word_is_hyphenated() -> None:
    assert wrap_text("supercalifragilisticexpialidocious", 10) == [
        "supercali-", "fragilist-", "icexpiali-", "docious",
    ]


def test_width_one_splits_without_hyphens() -> None:
    assert wrap_text("abc", 1) == ["a", "b", "c"]


@pytest.mark.parametrize("width", [0, -3])
def test_non_positive_width_gives_no_lines(width: int) -> None:
    assert wrap_text("anything", width) == []


def test_wrapped_lines_fit_and_keep_every_character() -> None:
    rng = random.Random(7)
    for _ in range(300):
        words = ["".join(rng.choices(string.ascii_letters, k=rng.randint(1, 25))) for _ in range(rng.randint(1, 8))]
        text = " ".join(words)
        width = rng.randint(1, 30)

        lines = wrap_text(text, width)

        assert all(len(line) <= width for line in lines)
        rebuilt = "".join(line[:-1] if line.endswith("-") else line for line in lines)
        assert rebuilt.replace(" ", "") == text.replace(" ", "")


# --- visible_input ---

def test_input_that_fits_is_untouched() -> None:
    assert visible_input("abc", 3, 10) == ("abc", 3)
    assert visible_input("abcd", 4, 5) == ("abcd", 4)


def test_input_cut_on_the_right_when_cursor_is_near_the_start() -> None:
    assert visible_input("abcdefghij", 0, 5) == ("abcd" + ELLIPSIS, 0)


def test_input_cut_on_the_left_when_cursor_is_at_the_end() -> None:
    text, col = visible_input("abcdefghij", 10, 5)

    assert text == ELLIPSIS + "hij"
    assert col == len(text)


def test_cursor_stays_on_the_same_character_when_scrolled() -> None:
    buffer = "abcdefghij"
    text, col = visible_input(buffer, 5, 5)

    assert text == ELLIPSIS + "def" + ELLIPSIS
    assert text[col] == buffer[5]


def test_input_cut_on_both_sides_marks_both_sides() -> None:
    buffer = string.ascii_letters[:30]
    for width in range(3, 12):
        for cursor in range(len(buffer) + 1):
            text, col = visible_input(buffer, cursor, width)

            shown = text.strip(ELLIPSIS)
            first = buffer.index(shown)
            assert text.startswith(ELLIPSIS) == (first > 0)
            assert text.endswith(ELLIPSIS) == (first + len(shown) < len(buffer))
            if cursor < len(buffer):
                assert text[col] == buffer[cursor]


def test_visible_input_never_exceeds_width() -> None:
    buffer = "0123456789" * 3
    for width in range(1, 12):
        for cursor in range(len(buffer) + 1):
            text, col = visible_input(buffer, cursor, width)
            assert len(text) <= width
            assert 0 <= col < width


# --- layout and compose ---

def test_layout_rows() -> None:
    lay = layout(30, 12)

    assert (lay.top, lay.title, lay.sep) == (0, 1, 2)
    assert lay.messages == Region(1, 3, 28, 5)
    assert (lay.sep2, lay.input, lay.bottom) == (8, 9, 10)


def test_compose_draws_frame_and_centered_title() -> None:
    eng = make_engine(title="Chat")
    buf = eng.compose(30, 12, now=0.0)

    assert buf.row_text(0) == "┌" + "─" * 28 + "┐"
    assert buf.row_text(1) == "│" + " " * 11 + " Chat " + " " * 11 + "│"
    assert buf.row_text(2) == "├" + "─" * 28 + "┤"
    assert buf.row_text(8) == "├" + "─" * 28 + "┤"
    assert buf.row_text(10) == "└" + "─" * 28 + "┘"
    assert buf.row_text(11) == " " * 30
    assert buf.styles[1][13] == eng.theme.title


def test_long_title_is_clipped_inside_the_frame() -> None:
    buf = make_engine(title="x" * 50).compose(20, 10, now=0.0)

    assert buf.row_text(1)[0] == buf.row_text(1)[-1] == "│"


def test_message_rows_show_stamp_name_and_text() -> None:
    eng = make_engine()
    rec = eng.log.append(Role.USER, "hi there")
    buf = eng.compose(40, 12, now=0.0)

    assert buf.row_text(3).startswith(f"│[{rec.stamp}] You: hi there")
    assert buf.styles[3][1] == eng.theme.timestamp


def test_long_word_wraps_with_hyphens_at_width_40() -> None:
    word = "supercalifragilisticexpialidocious"
    eng = make_engine()
    rec = eng.log.append(Role.USER, word)
    buf = eng.compose(40, 14, now=0.0)

    prefix = f"[{rec.stamp}] You: "
    parts = wrap_text(word, 40 - len(prefix) - 4)
    assert len(parts) > 1
    assert all(p.endswith("-") and len(p) <= 39 for p in parts[:-1])
    assert not parts[-1].endswith("-")

    assert buf.row_text(3)[1:].startswith(prefix + parts[0])
    for i, part in enumerate(parts[1:], start=4):
        assert buf.row_text(i)[1:].startswith(" " * (len(prefix) - 1) + part)


def test_multi_line_message_indents_continuation_lines() -> None:
    eng = make_engine()
    rec = eng.log.append(Role.ASSISTANT, "one\ntwo")
    rows = eng.display_lines(eng.log.records(), 60)

    assert len(rows) == 2
    indent = len(f"[{rec.stamp}] Bot: ") - 1
    assert rows[1] == [(" " * indent, None), ("two", eng.theme.bot_text)]


def test_only_the_newest_lines_are_shown() -> None:
    eng = make_engine()
    for i in range(10):
        eng.log.append(Role.USER, f"m{i}")
    buf = eng.compose(40, 12, now=0.0)

    shown = [buf.row_text(y) for y in range(3, 8)]
    assert [row.split("You: ")[1].split()[0] for row in shown] == ["m5", "m6", "m7", "m8", "m9"]


@pytest.mark.parametrize("size", [(0, 0), (1, 1), (3, 2), (10, 5), (5, 30)])
def test_tiny_terminals_do_not_crash(size) -> None:
    eng = make_engine()
    eng.log.append(Role.USER, "some text that will not fit")
    eng.editor.insert("typed")

    buf = eng.compose(*size, generating=True, now=0.0)

    assert (buf.w, buf.h) == size


# --- input row ---

def test_input_row_shows_prompt_and_text() -> None:
    eng = make_engine()
    eng.editor.insert("hello")
    buf = eng.compose(30, 12, now=0.0)

    assert buf.row_text(9).startswith("│ ➤ hello")
    assert buf.row_text(9).endswith("│")


def test_cursor_cell_blinks() -> None:
    eng = make_engine()
    eng.editor.insert("ab")

    on = eng.compose(30, 12, now=0.0)
    off = eng.compose(30, 12, now=0.7)

    assert on.styles[9][6] == eng.theme.cursor
    assert off.styles[9][6] is None


def test_busy_indicator_only_while_generating() -> None:
    eng = make_engine()

    assert eng.compose(30, 12, generating=True, now=0.0).row_text(9).endswith(BUSY + "│")
    assert not eng.compose(30, 12, generating=False, now=0.0).row_text(9).endswith(BUSY + "│")


def test_busy_indicator_dropped_on_narrow_terminals() -> None:
    assert BUSY not in make_engine().compose(15, 12, generating=True, now=0.0).row_text(9)


def test_long_input_keeps_cursor_visible() -> None:
    eng = make_engine()
    eng.editor.insert("x" * 100)
    row = eng.compose(30, 12, now=0.0).row_text(9)

    assert row.startswith("│ ➤ " + ELLIPSIS)
    assert len(row) == 30


# --- painting ---

def test_first_paint_clears_and_writes_every_row(make_term) -> None:
    term = make_term(30, 12)
    eng = make_engine()

    assert eng.paint(term, now=0.0) == 12
    assert term.output().startswith("<home><clear>")
    assert "<0,0>" in term.output()


def test_unchanged_frame_writes_nothing(make_term) -> None:
    term = make_term(30, 12)
    eng = make_engine()
    eng.paint(term, now=0.0)
    before = term.output()

    assert eng.paint(term, now=0.0) == 0
    assert term.output() == before


def test_typing_rewrites_only_the_input_row(make_term) -> None:
    term = make_term(30, 12)
    eng = make_engine()
    eng.paint(term, now=0.0)
    before = len(term.output())

    eng.editor.insert("x")
    assert eng.paint(term, full=False, now=0.0) == 1
    assert term.output()[before:].startswith("<9,0>")


def test_new_message_rewrites_message_rows_only(make_term) -> None:
    term = make_term(30, 12)
    eng = make_engine()
    eng.paint(term, now=0.0)

    eng.log.append(Role.USER, "hi")
    assert eng.paint(term, now=0.0) == 1


def test_resize_repaints_everything(make_term) -> None:
    term = make_term(30, 12)
    eng = make_engine()
    eng.paint(term, now=0.0)

    term.width, term.height = 40, 14
    assert eng.paint(term, full=False, now=0.0) == 14
    assert term.output().count("<home><clear>") == 2


def test_styles_are_applied_through_terminal_formatters(make_term) -> None:
    term = make_term(30, 12)
    eng = make_engine(title="Chat")
    eng.paint(term, now=0.0)

    assert "<bold_gold> Chat </>" in term.output()
    assert "<deepskyblue>┌" in term.output()


@pytest.mark.parametrize("size", [(0, 12), (30, 0)])
def test_paint_is_a_noop_without_a_screen(make_term, size) -> None:
    term = make_term(*size)

    assert make_engine().paint(term, now=0.0) == 0
    assert term.output() == ""


def test_screen_buffer_ignores_writes_outside_its_area() -> None:
    buf = ScreenBuffer(3, 2)
    buf.put(5, 0, "x")
    buf.put(0, -1, "x")
    assert buf.puts(1, 1, "abcdef") == 7

    assert [buf.row_text(0), buf.row_text(1)] == ["   ", " ab"]
