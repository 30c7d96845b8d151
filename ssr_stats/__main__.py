import sys

from ssr_stats.main import main

sys.exit(main())
