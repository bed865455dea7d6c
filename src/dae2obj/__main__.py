"""Allow ``python -m dae2obj``."""

import sys

from .main import main

sys.exit(main())
