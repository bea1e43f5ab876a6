#!/usr/bin/env python3
"""Run the catalog pipeline from a source checkout without installing."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from bannerscraper.pipelines.sections.run_all import main  # noqa: E402

if __name__ == "__main__":
    main()
