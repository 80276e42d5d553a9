from datetime import datetime, timezone

import pytest


@pytest.fixture()
def now() -> datetime:
    """
    a fixed Wednesday afternoon so window boundaries are predictable.
    """
    return datetime(2025, 3, 12, 15, 0, tzinfo=timezone.utc)
