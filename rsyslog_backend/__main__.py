import sys

from rsyslog_backend.cli import main

sys.exit(main())
