import sys

from calldata_interpreter.cli import main

sys.exit(main())
