import logging
from unittest.mock import AsyncMock

import pytest

from services.ingestion import ingest_runner
from shared.logging.logging_setup import ColorLogger


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    # the runner would otherwise configure the root logging tree and files under ROOT_DIR
    monkeypatch.setattr(ingest_runner, "setup_logging", lambda: ColorLogger(logging.getLogger("persona_bots.tests")))


@pytest.fixture
def fake_clients(monkeypatch, fake_embed, fake_index):
    clients = {"embed": fake_embed, "index": fake_index}

    class FakeClientManager:
        def __init__(self, helper_config, client_type):
            self.client_type = client_type

        def get_client(self):
            return clients[self.client_type]

    monkeypatch.setattr(ingest_runner, "ClientManager", FakeClientManager)
    return clients


@pytest.fixture
def document(tmp_path) -> str:
    path = tmp_path / "notes.md"
    path.write_text("The lighthouse keeper logs the weather every morning.", encoding="utf-8")
    return str(path)


async def test_missing_configuration_exits_with_2(document):
    assert await ingest_runner.main([document, "b1"]) == 2


async def test_successful_ingestion_exits_with_0(fake_clients, fake_embed, fake_index, document):
    assert await ingest_runner.main([document, "b1"]) == 0

    assert [entry.metadata.source for entry in fake_index.for_bot("b1")] == [document]
    assert fake_index.prepared
    assert fake_embed.closed and fake_index.closed


async def test_failed_upsert_exits_with_1(fake_clients, fake_index, document):
    fake_index.fail_upsert = True

    assert await ingest_runner.main([document, "b1"]) == 1
    assert fake_index.closed


async def test_missing_document_exits_with_1(fake_clients, fake_index, tmp_path):
    assert await ingest_runner.main([str(tmp_path / "absent.pdf"), "b1"]) == 1
    assert fake_index.upserts == 0


async def test_boot_failure_exits_with_1_and_closes_clients(monkeypatch, fake_clients, fake_embed, fake_index, document):
    monkeypatch.setattr(fake_index, "boot", AsyncMock(side_effect=RuntimeError("connection refused")))

    assert await ingest_runner.main([document, "b1"]) == 1
    assert not fake_index.prepared
    assert fake_embed.closed and fake_index.closed
