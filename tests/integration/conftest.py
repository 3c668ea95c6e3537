from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from messaging_service.app import create_app
from tests.conftest import FakeDatabase, FakeUoW, FakeUserStatus


@pytest.fixture
def banned() -> FakeUserStatus:
    return FakeUserStatus()


@pytest.fixture
def client(db: FakeDatabase, banned: FakeUserStatus) -> Iterator[TestClient]:
    app = create_app(uow_factory=lambda: FakeUoW(db), user_status=banned)
    with TestClient(app) as c:
        yield c
