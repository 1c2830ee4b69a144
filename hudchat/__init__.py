'''
Full screen terminal chat with streamed replies.

    import hudchat

    @hudchat.streamed
    def echo(trigger, batch):
        yield f"you said: {' / '.join(batch)}"

    hudchat.ChatSession(echo).run()
'''

from hudchat.config import ChatConfig, Theme, configure_logging
from hudchat.dispatch import DispatchQueue, ResponseGenerator, streamed
from hudchat.editor import LineEditor
from hudchat.keys import InputDecoder, KeyEvent
from hudchat.messages import MessageLog, MessageRecord, Role
from hudchat.plugins import generate_response, load_plugins, overridable, override
from hudchat.render import RenderEngine, visible_input, wrap_text
from hudchat.screen import Region, ScreenBuffer
from hudchat.session import ChatSession
from hudchat.sink import STALE_AFTER, StreamingSink

__version__ = "0.1.0"

__all__ = [
    "ChatConfig", "Theme", "configure_logging",
    "DispatchQueue", "ResponseGenerator", "streamed",
    "LineEditor", "InputDecoder", "KeyEvent",
    "MessageLog", "MessageRecord", "Role",
    "generate_response", "load_plugins", "overridable", "override",
    "RenderEngine", "visible_input", "wrap_text",
    "Region", "ScreenBuffer",
    "ChatSession",
    "STALE_AFTER", "StreamingSink",
]
