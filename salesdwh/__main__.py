import sys

from salesdwh.cli import main

sys.exit(main())
