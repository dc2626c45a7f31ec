"""Allow ``python -m src.timetable_optimiser``."""

from .cli import main

raise SystemExit(main())
