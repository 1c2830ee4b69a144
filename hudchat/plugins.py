import glob
import logging
import os
import random
import time
from typing import Iterator, List


logger = logging.getLogger(__name__)


OVERRIDES = {}
_OVERRIDDEN = set()


def overridable(fn):
    OVERRIDES[fn.__name__] = fn
    def wrap_fn(*a, **ka):
        return OVERRIDES[fn.__name__](*a, **ka)
    wrap_fn.__name__ = fn.__name__
    wrap_fn.__doc__ = fn.__doc__
    return wrap_fn


def override(fn):
    '''
    used like:

    @hudchat.override
    def generate_response(trigger, batch):
        yield "..."
    '''
    name = fn.__name__
    if name not in OVERRIDES:
        raise RuntimeError(f"'{name}' not overridable")
    if name in _OVERRIDDEN:
        raise RuntimeError(f"'{name}' already overridden")
    _OVERRIDDEN.add(name)
    OVERRIDES[name] = fn
    return fn


CANNED = {
    "greeting": ['Hello!', 'Hi there!', 'Hey!', 'Greetings!'],
    "question": ['Interesting question...', 'Let me think...', 'Good question!'],
    "bye": ['Goodbye!', 'See you later!', 'Take care!'],
    "default": ['Nice!', 'Cool!', 'Awesome!', 'Got it!', 'Interesting!'],
}


def canned_reply(text: str) -> str:
    low = text.lower()
    if 'hello' in low or 'hi' in low: kind = "greeting"
    elif '?' in low: kind = "question"
    elif 'bye' in low: kind = "bye"
    else: kind = "default"
    return random.choice(CANNED[kind])


@overridable
def generate_response(trigger: str, batch: List[str]) -> Iterator[str]:
    """Override this to stream replies from a real model."""
    for c in canned_reply(" ".join(batch)):
        time.sleep(0.04 + random.random() * 0.04)
        yield c


def load_plugins(plugin_dir: str = "_hudchat") -> List[str]:
    '''
    Runs every `*.py` file in `plugin_dir` whose name does not start with `_`.
    Plugins `import hudchat` and use `@hudchat.override`.
    '''
    if not os.path.isdir(plugin_dir):
        return []
    loaded = []
    for path in sorted(glob.glob(os.path.join(plugin_dir, "*.py"))):
        filename = os.path.basename(path)
        if filename.startswith("_"):
            continue
        logger.info("loading plugin %s", path)
        with open(path, "r", encoding="utf-8") as f:
            exec(compile(f.read(), path, "exec"), {"__name__": "__plugin__", "__file__": path})
        loaded.append(path)
    return loaded
