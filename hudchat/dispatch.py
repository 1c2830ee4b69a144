import functools
import logging
import threading
from collections import deque
from typing import Callable, Iterator, List, Optional

from hudchat.messages import MessageLog, Role
from hudchat.sink import StreamingSink


logger = logging.getLogger(__name__)


Emit = Callable[[str], None]
# generator(trigger, emit, batch) -> final text or None
ResponseGenerator = Callable[[str, Emit, List[str]], Optional[str]]


def streamed(fn: Callable[[str, List[str]], Iterator[str]]) -> ResponseGenerator:
    '''
    Wraps a generator function that yields text chunks, e.g.

    @streamed
    def echo(trigger, batch):
        for word in trigger.split():
            yield word + " "
    '''
    @functools.wraps(fn)
    def generate(trigger, emit, batch):
        for chunk in fn(trigger, batch):
            if isinstance(chunk, str): emit(chunk)
        return None
    return generate


class DispatchQueue:
    '''
    Serializes calls into the response generator.

    Idle + submit -> a worker thread starts generating for that message.
    Generating + submit -> the message waits in `pending_while_busy`.
    Generation done -> everything that waited is handed to the generator as
    one batch, or the queue goes back to idle.

    Only one worker thread exists at a time, so at most one generation is
    ever in flight. User records are appended to the log at submit time
    whatever the state, and `on_submitted` hears about them before any
    generation they trigger starts. `is_draining` is true while a batch that
    waited in `pending_while_busy` is being generated.
    '''

    def __init__(self, log: MessageLog, sink: StreamingSink, generator: ResponseGenerator, *,
                 on_submitted=None, on_started=None, on_completed=None, on_error=None):
        self.log = log
        self.sink = sink
        self.generator = generator
        self.on_submitted = on_submitted
        self.on_started = on_started
        self.on_completed = on_completed
        self.on_error = on_error

        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._submitted: deque = deque()
        self._busy: List[str] = []
        self._generating = False
        self._draining = False

    @property
    def is_generating(self) -> bool:
        return self._generating

    @property
    def is_draining(self) -> bool:
        return self._draining

    @property
    def pending_while_busy(self) -> List[str]:
        with self._lock:
            return list(self._busy)

    @property
    def pending_submitted(self) -> List[str]:
        with self._lock:
            return list(self._submitted)

    def submit(self, text: str) -> bool:
        """Returns True when this submission started a new generation."""
        self.log.append(Role.USER, text)
        if self.on_submitted: self.on_submitted(text)
        with self._lock:
            if self._generating:
                self._busy.append(text)
                return False
            # leftovers from a generation that raised without an error handler go first
            self._submitted.extend(self._busy + [text])
            self._busy = []
            self._generating, self._draining = True, False
            self._idle.clear()
        threading.Thread(target=self._drain, name="hudchat-generate", daemon=True).start()
        return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        return self._idle.wait(timeout)

    def _first_batch(self) -> List[str]:
        with self._lock:
            batch = list(self._submitted)
            self._submitted.clear()
            return batch

    def _next_batch(self) -> List[str]:
        with self._lock:
            if self._busy:
                batch, self._busy = self._busy, []
                self._draining = True
                return batch
            self._generating = self._draining = False
            self._idle.set()
            return []

    def _drain(self):
        batch = self._first_batch()
        try:
            while batch:
                self._generate(batch)
                batch = self._next_batch()
        finally:
            if batch:
                with self._lock:
                    self._generating = self._draining = False
                    self._idle.set()

    def _generate(self, batch: List[str]):
        emitted = []
        is_open = True

        def emit(fragment: str):
            if not is_open:
                logger.warning("dropping fragment emitted after the generator returned: %r", fragment)
                return
            if fragment: emitted.append(fragment)
            self.sink.emit(fragment)

        if self.on_started: self.on_started(list(batch))
        try:
            final = self.generator(batch[-1], emit, list(batch))
        except Exception as exc:
            logger.exception("response generator failed on a batch of %d message(s)", len(batch))
            if self.on_error is None:
                raise
            self.on_error(exc, list(batch))
            return
        finally:
            is_open = False

        text = "".join(emitted)
        if isinstance(final, str) and final.strip():
            if not emitted: self.sink.finish(final)
            text = final
        if self.on_completed: self.on_completed(text)
