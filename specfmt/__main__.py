import sys

from specfmt.cli.main import main

sys.exit(main())
