"""Allow running the harness with `python -m h2harness`."""

import sys

from h2harness.cli import main

sys.exit(main())
