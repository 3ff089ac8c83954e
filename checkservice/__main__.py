import sys

from checkservice.cli import main

sys.exit(main())
