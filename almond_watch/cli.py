from __future__ import annotations

import asyncio
import sys
from typing import Optional

from .config import build_settings, load_config_file, parse_args
from .constants import EXIT_INTERRUPTED
from .runner import run


def main(argv: Optional[list[str]] = None) -> None:
    try:
        args = parse_args(argv)
        settings = build_settings(args, load_config_file(args.config))
        exit_code = asyncio.run(run(settings))
    except KeyboardInterrupt:
        print("almond-watch: interrupted", file=sys.stderr)
        exit_code = EXIT_INTERRUPTED
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
