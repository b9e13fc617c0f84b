"""Run the normalizer with ``python -m ankinorm``."""

import sys

from ankinorm.cli import main

sys.exit(main())
