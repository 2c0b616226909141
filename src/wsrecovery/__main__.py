"""Allow ``python -m wsrecovery``."""

from wsrecovery.server import main

main()
