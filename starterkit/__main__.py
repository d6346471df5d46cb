import sys

from starterkit.cli import main

sys.exit(main())
