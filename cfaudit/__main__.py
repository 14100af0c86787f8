"""Allow ``python -m cfaudit``."""

from __future__ import annotations

from cfaudit.runtime import main

raise SystemExit(main())
