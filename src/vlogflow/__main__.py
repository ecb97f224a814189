import sys

from vlogflow.cli import main

sys.exit(main())
