import sys

from repo_insights.cli import main

sys.exit(main())
