"""Allow ``python -m osm_landmass``."""

import sys

from osm_landmass.cli import main

sys.exit(main())
