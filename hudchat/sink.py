import time

from hudchat.messages import MessageLog, MessageRecord


# Seconds of silence after which the next fragment starts a new reply.
# Two independent replies streamed closer together than this merge into one
# record: the generator never says where a turn ends, so age is all we have.
STALE_AFTER = 2.0


class StreamingSink:
    def __init__(self, log: MessageLog, *, stale_after: float = STALE_AFTER, clock=time.monotonic):
        self.log = log
        self.stale_after = stale_after
        self._clock = clock

    def emit(self, fragment: str):
        if not fragment:
            return None
        return self.log.append_or_extend(fragment, now=self._clock(), stale_after=self.stale_after)

    __call__ = emit

    def finish(self, text: str) -> MessageRecord:
        """Records a non-streamed reply as its own assistant message."""
        return self.log.append("assistant", text, now=self._clock())
