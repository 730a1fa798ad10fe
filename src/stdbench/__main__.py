"""Allow ``python -m stdbench``."""

from stdbench.cli import main

main()
