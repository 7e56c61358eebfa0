#!/usr/bin/env python3
import os
import sys

sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from wcm.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
