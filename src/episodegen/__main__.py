"""Point d'entrée : python -m episodegen."""

import sys

from episodegen.app.cli import main

sys.exit(main())
