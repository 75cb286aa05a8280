import sys

from driver_ranking.cli import main

sys.exit(main())
