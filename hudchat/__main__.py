import argparse
import sys

from hudchat.config import ChatConfig, configure_logging
from hudchat.plugins import load_plugins
from hudchat.session import ChatSession


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="hudchat", description="Full screen terminal chat.")
    parser.add_argument("--title", help="title shown at the top of the screen")
    parser.add_argument("--plugin-dir", default="_hudchat", help="directory of plugin files (default: _hudchat)")
    parser.add_argument("--log-file", help="write logs here (default: $HUDCHAT_LOG, else no logging)")
    args = parser.parse_args(argv)

    configure_logging(args.log_file)
    try:
        config = ChatConfig.from_env()
    except ValueError as e:
        parser.error(str(e))
    if args.title:
        config.title = args.title

    load_plugins(args.plugin_dir)
    ChatSession(config=config).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
