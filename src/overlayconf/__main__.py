import sys

from overlayconf.cli import main

sys.exit(main())
