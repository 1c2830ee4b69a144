import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

from hudchat.sink import STALE_AFTER


BLINK_INTERVAL = 0.6  # seconds; cursor blink and busy-indicator refresh
POLL_INTERVAL = 0.011  # seconds to wait for a key before checking for redraws


@dataclass
class Theme:
    '''
    blessed formatter names, e.g. 'bold_gold' or 'black_on_gold'.
    X11 names fall back to the nearest 256/16 color on terminals
    without true color.
    '''
    border: str = 'deepskyblue'
    title: str = 'bold_gold'
    user: str = 'green'
    user_text: str = 'white'
    bot: str = 'cyan'
    bot_text: str = 'magenta'
    system: str = 'yellow'
    system_text: str = 'white'
    timestamp: str = 'bright_black'
    prompt: str = 'gold'
    cursor: str = 'black_on_gold'
    bot_indicator: str = 'italic_bright_black'


@dataclass
class ChatConfig:
    title: str = "Terminal Chat"
    theme: Theme = field(default_factory=Theme)
    stale_after: float = STALE_AFTER
    blink_interval: float = BLINK_INTERVAL
    poll_interval: float = POLL_INTERVAL
    welcome: Optional[str] = None
    on_init: Optional[Callable] = None
    on_exit: Optional[Callable] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ, **overrides) -> "ChatConfig":
        cfg = cls(**overrides)
        if environ.get("HUDCHAT_TITLE"):
            cfg.title = environ["HUDCHAT_TITLE"]
        if environ.get("HUDCHAT_WELCOME"):
            cfg.welcome = environ["HUDCHAT_WELCOME"]
        ms = _millis(environ, "HUDCHAT_STALE_MS")
        if ms is not None: cfg.stale_after = ms / 1000
        ms = _millis(environ, "HUDCHAT_BLINK_MS")
        if ms is not None: cfg.blink_interval = ms / 1000
        return cfg


def _millis(environ: Mapping[str, str], name: str) -> Optional[int]:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be a whole number of milliseconds, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def configure_logging(path: Optional[str] = None, level: str = "INFO") -> logging.Logger:
    '''
    The chat owns the whole screen, so log records go to a file or nowhere.
    '''
    logger = logging.getLogger("hudchat")
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    path = path or os.environ.get("HUDCHAT_LOG")
    if path:
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    else:
        handler = logging.NullHandler()
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger
