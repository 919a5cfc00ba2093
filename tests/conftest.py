import time
from typing import Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from datastore.results_table import ResultsTable
from services.interpreter import RecordInterpreter
from services.processor import ProcessorService
from storage.uploads import UploadBucket


@pytest.fixture
def processors(monkeypatch) -> Iterator[Dict[int, ProcessorService]]:
    processors: Dict[int, ProcessorService] = {}

    def build_test_processor(workers: int | None = None) -> ProcessorService:
        worker_count = workers or 1
        processor = processors.get(worker_count)
        if processor is None:
            processor = ProcessorService(
                bucket=UploadBucket(name="test"),
                table=ResultsTable(name="test"),
                interpreter=RecordInterpreter(),
                workers=worker_count,
                chunk_rows=1,
            )
            processors[worker_count] = processor
        return processor

    def cache_clear() -> None:
        while processors:
            _, processor = processors.popitem()
            processor.shutdown()

    build_test_processor.cache_clear = cache_clear  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_processor", build_test_processor)
    monkeypatch.setattr("app.api.build_default_processor", build_test_processor)
    monkeypatch.setattr("app.web.build_default_processor", build_test_processor)
    monkeypatch.setattr("services.processor.build_default_processor", build_test_processor)

    yield processors

    cache_clear()


@pytest.fixture
def api_client(processors) -> Iterator[TestClient]:
    app = create_app()
    with TestClient(app) as client:
        yield client


@pytest.fixture
def wait_for_completion(api_client: TestClient):
    def wait(file_id: str, timeout: float = 5.0) -> dict:
        deadline = time.monotonic() + timeout
        last_payload: dict | None = None
        while time.monotonic() < deadline:
            response = api_client.get(f"/files/{file_id}")
            assert response.status_code == 200
            last_payload = response.json()
            if last_payload["status"] not in {"uploaded", "processing"}:
                return last_payload
            time.sleep(0.05)
        pytest.fail(f"Processing for file {file_id} did not complete: {last_payload}")

    return wait
