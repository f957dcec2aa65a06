from __future__ import annotations

from typing import Any, Callable, Optional
from unittest.mock import Mock

import pytest
import requests


@pytest.fixture
def make_response() -> Callable[..., Mock]:
    """Factory for fake ``requests.Response`` objects."""

    def _make(status_code: int = 200, payload: Optional[Any] = None) -> Mock:
        res = Mock(spec=requests.Response)
        res.status_code = status_code
        res.json.return_value = payload if payload is not None else {}
        if status_code >= 400:
            res.raise_for_status.side_effect = requests.HTTPError(
                f"{status_code} error", response=res
            )
        return res

    return _make
