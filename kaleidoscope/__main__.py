import sys

from kaleidoscope.main import main


sys.exit(main())
