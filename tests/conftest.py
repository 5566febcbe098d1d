import sys
import os
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure the project root is in sys.path so `from upload_ai.main import create_app`
# works without installing the package
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from upload_ai.config import Settings  # noqa: E402
from upload_ai.main import create_app  # noqa: E402
from upload_ai.openai_service import TranscriptionService  # noqa: E402
from upload_ai.store import RecordStore  # noqa: E402


class FakeCompletionService:
    """Records completion requests and replays canned text chunks."""

    def __init__(self, chunks=("Hello", ", ", "world")) -> None:
        self.chunks = list(chunks)
        self.calls = []

    async def start_completion(self, content: str, temperature: float):
        self.calls.append((content, temperature))

        async def relay():
            for chunk in self.chunks:
                yield chunk

        return relay()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        cors_origin="http://localhost:5173",
        database_path=str(tmp_path / "test.db"),
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def store(settings):
    record_store = RecordStore(settings.database_path)
    yield record_store
    record_store.close()


@pytest.fixture
def transcription_service():
    service = MagicMock(spec=TranscriptionService)
    service.transcribe = AsyncMock(return_value="hello world")
    return service


@pytest.fixture
def completion_service():
    return FakeCompletionService()


@pytest.fixture
def app(settings, store, transcription_service, completion_service):
    return create_app(
        settings=settings,
        store=store,
        transcription_service=transcription_service,
        completion_service=completion_service,
    )
