"""Allow ``python -m hoststream``."""

from hoststream.cli import main

raise SystemExit(main())
