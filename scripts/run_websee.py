#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[websee] cdp={os.environ.get('WEBSEE_CDP_HOST', '127.0.0.1')}:{os.environ.get('WEBSEE_CDP_PORT', '9222')} | "
    f"allowlist={os.environ.get('WEBSEE_ALLOW_HOSTS', '*')}",
    file=sys.stderr,
)

from mcp_servers.websee.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
