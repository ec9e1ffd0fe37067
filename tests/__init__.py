"""ptc_dashboard tests.

Puts the repository root on ``sys.path`` so shared helpers import as
``tests.<module>`` whichever directory pytest starts from.
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
	sys.path.insert(0, str(ROOT))
