import sys

from trendseer.cli import main


sys.exit(main())
