from __future__ import annotations

import os
import tempfile
from pathlib import Path

# Must happen before nexmo_sms.db is imported: the engine is created at import time
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite:///{Path(tempfile.mkdtemp(prefix='nexmo_sms_')) / 'test.db'}",
)
