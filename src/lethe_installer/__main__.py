"""
Package entry point for python -m execution.

USAGE:
    python -m lethe_installer status      # Print runtime status
    python -m lethe_installer install ... # Run the install pipeline
    python -m lethe_installer start       # Load and kickstart the agent
"""

import sys

from lethe_installer.cli import main

if __name__ == "__main__":
    sys.exit(main())
