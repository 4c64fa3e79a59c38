"""Allow ``python -m prbridge``."""

import sys

from prbridge.main import main

sys.exit(main())
