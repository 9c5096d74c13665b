"""Allow running campusreg as ``python -m campusreg``."""

from campusreg.cli import main

main()
