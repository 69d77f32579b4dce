import sys

from webgate.cli.main import main

sys.exit(main())
