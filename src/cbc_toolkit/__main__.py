import sys

from cbc_toolkit.cli import main

sys.exit(main())
