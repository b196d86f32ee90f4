import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


@pytest.fixture
def anyio_backend() -> str:
    """Limit AnyIO backend to asyncio."""
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_http_client():
    """Drop any shared client a test installed so tests stay independent."""
    from tapspeak.services.tts import TTSProvider

    TTSProvider._http_client = None
    yield
    TTSProvider._http_client = None
