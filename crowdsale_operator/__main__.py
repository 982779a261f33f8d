from __future__ import annotations

from .executor import main

raise SystemExit(main())
