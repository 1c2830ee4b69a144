import logging
import os
import signal
import sys
import threading
import time
from collections import defaultdict
from contextlib import ExitStack
from typing import Optional

from blessed import Terminal

from hudchat.config import ChatConfig
from hudchat.dispatch import DispatchQueue, ResponseGenerator, streamed
from hudchat.editor import LineEditor
from hudchat.keys import InputDecoder
from hudchat.messages import MessageLog, MessageRecord, Role
from hudchat.plugins import generate_response
from hudchat.render import RenderEngine
from hudchat.sink import StreamingSink


logger = logging.getLogger(__name__)


EVENTS = ("started", "user_message", "response_started", "response_completed", "response_failed", "exit")


def resolve_sender(sender):
    if isinstance(sender, Role):
        return sender, None
    low = str(sender).strip().lower()
    if low in ("user", "you"): return Role.USER, "You"
    if low in ("assistant", "bot"): return Role.ASSISTANT, "Bot"
    return Role.SYSTEM, str(sender)


def _tty_fd(stream) -> Optional[int]:
    # no fd means no keyboard: the loop still repaints and streams replies
    try:
        return stream.fileno() if stream is not None and stream.isatty() else None
    except (AttributeError, ValueError, OSError):
        return None


class ChatSession:
    '''
    Full screen chat: owns the terminal, feeds keystrokes to the line
    editor, hands submitted text to the dispatch queue and repaints.

    The main thread owns every terminal write. Generation runs on the
    queue's worker thread and only touches the message log; the main loop
    notices the log's version change and repaints.

    Host events (register with `@session.on("name")`):
      started, user_message(text), response_started(batch),
      response_completed(text), response_failed(exc, batch), exit
    The response_* events fire on the generation thread.
    '''

    def __init__(self, generator: Optional[ResponseGenerator] = None, config: Optional[ChatConfig] = None, *, term=None):
        self.config = config or ChatConfig()
        self.term = term if term is not None else Terminal()
        self.log = MessageLog(theme=self.config.theme)
        self.editor = LineEditor()
        self.decoder = InputDecoder()
        self.sink = StreamingSink(self.log, stale_after=self.config.stale_after)
        self.queue = DispatchQueue(
            self.log, self.sink, generator or streamed(generate_response),
            on_submitted=lambda text: self.emit("user_message", text),
            on_started=lambda batch: self.emit("response_started", batch),
            on_completed=lambda text: self.emit("response_completed", text),
            on_error=self._generation_failed,
        )
        self.renderer = RenderEngine(self.log, self.editor, self.config)

        self._listeners = defaultdict(list)
        self._stack: Optional[ExitStack] = None
        self._prev_handlers = {}
        self._input_fd: Optional[int] = None
        self._cleanup_lock = threading.Lock()
        self._started = False
        self._running = False
        self._closed = False
        self._interrupted = False
        self._failure: Optional[BaseException] = None

        self._resized = False
        self._full = True
        self._input_dirty = False
        self._painted_version = -1
        self._painted_generating = False
        self._next_blink = 0.0

    @property
    def closed(self) -> bool:
        return self._closed

    # --- host events ---

    def on(self, event: str, fn=None):
        if event not in EVENTS:
            raise ValueError(f"unknown event '{event}'")
        def register(fn):
            self._listeners[event].append(fn)
            return fn
        return register(fn) if fn else register

    def emit(self, event: str, *args):
        for fn in list(self._listeners[event]):
            fn(*args)

    def _generation_failed(self, exc: Exception, batch):
        if self._listeners["response_failed"]:
            self.emit("response_failed", exc, batch)
            return
        # nobody to report to: stop the session and re-raise from run()
        self._failure = exc
        self.interrupt()

    # --- lifecycle ---

    def start(self):
        if self._started:
            raise RuntimeError("session already started")
        self._started = True
        term = self.term
        self._stack = ExitStack()
        self._stack.enter_context(term.raw())
        self._stack.enter_context(term.hidden_cursor())
        self._stack.enter_context(term.fullscreen())
        self._input_fd = _tty_fd(sys.stdin)
        self._install_signals()

        if self.config.welcome:
            self.log.append(Role.SYSTEM, self.config.welcome)
        self.paint(full=True)
        logger.info("session started (%dx%d)", term.width, term.height)
        if self.config.on_init: self.config.on_init(self)
        self.emit("started")

    def run(self):
        '''
        Starts the session and blocks until it is closed by Ctrl-C, SIGINT,
        `cleanup()`, or a generator failure nobody listens for (re-raised here).
        '''
        self.start()
        self._running = True
        try:
            while not (self._closed or self._interrupted):
                chunk = self._read(self.config.poll_interval)
                if chunk: self.feed(chunk)
                if not self._interrupted: self.tick()
        finally:
            self._running = False
            self.cleanup()
        if self._failure is not None:
            raise self._failure

    def interrupt(self):
        self._interrupted = True
        if not self._running:
            self.cleanup()

    def cleanup(self) -> bool:
        '''
        Restores the terminal and runs the exit hook. Safe to call from any
        path any number of times; only the first call does anything.
        '''
        with self._cleanup_lock:
            if self._closed:
                return False
            self._closed = True
        try:
            if self._stack is not None:
                self._stack.close()
                self._reset_attributes()
        finally:
            self._restore_signals()
            logger.info("session closed")
            if self.config.on_exit: self.config.on_exit(self)
            self.emit("exit")
        return True

    def _reset_attributes(self):
        try:
            print(self.term.normal, end='', file=self.term.stream, flush=True)
        except OSError:
            # output device is gone; the error that broke it propagates from run()
            logger.exception("could not reset terminal attributes")

    def _install_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("not on the main thread; leaving signal handlers alone")
            return
        self._prev_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, self._on_sigint)
        if hasattr(signal, "SIGWINCH"):
            self._prev_handlers[signal.SIGWINCH] = signal.signal(signal.SIGWINCH, self._on_sigwinch)

    def _restore_signals(self):
        if threading.current_thread() is not threading.main_thread():
            return
        for signum, handler in self._prev_handlers.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._prev_handlers.clear()

    def _on_sigint(self, signum, frame):
        self.interrupt()

    def _on_sigwinch(self, signum, frame):
        self._resized = True

    # --- input ---

    def _read(self, timeout: float) -> bytes:
        if self._input_fd is None or not self.term.kbhit(timeout=timeout):
            if self._input_fd is None: time.sleep(timeout)
            return b""
        data = os.read(self._input_fd, 4096)
        if not data:
            raise EOFError("terminal input closed")
        return data

    def feed(self, chunk):
        for ev in self.decoder.feed(chunk):
            if ev.kind == "interrupt":
                self.interrupt()
                return
            if ev.kind == "enter":
                text = self.editor.take_and_clear()
                if text: self.submit(text)
            else:
                self.editor.apply(ev)
            self._input_dirty = True

    def submit(self, text: str) -> bool:
        return self.queue.submit(text)

    # --- public surface ---

    def send_message(self, sender, text: str, color_hint: Optional[str] = None) -> MessageRecord:
        role, name = resolve_sender(sender)
        return self.log.append(role, text, name=name, label_color=color_hint)

    def set_title(self, text: str):
        self.config.title = text
        self._full = True

    # --- painting ---

    def paint(self, full: bool = True, now: Optional[float] = None) -> int:
        generating = self.queue.is_generating
        version = self.log.version
        written = self.renderer.paint(self.term, full=full, generating=generating, now=now)
        if full:
            self._painted_version = version
        self._painted_generating = generating
        return written

    def tick(self, now: Optional[float] = None) -> int:
        '''
        One pass of the redraw policy: a full repaint when the log, title or
        size changed (this also pushes back the next blink), otherwise an
        input row repaint when the input changed or the blink period elapsed.
        '''
        now = time.monotonic() if now is None else now
        if self._resized or self._full or self.log.version != self._painted_version:
            self._resized = self._full = self._input_dirty = False
            self._next_blink = now + self.config.blink_interval
            return self.paint(full=True, now=now)
        if self._input_dirty or now >= self._next_blink or self.queue.is_generating != self._painted_generating:
            self._input_dirty = False
            self._next_blink = now + self.config.blink_interval
            return self.paint(full=False, now=now)
        return 0
