import pytest
from fastapi.testclient import TestClient
from ptc_dashboard.webapp.main import create_app
from tests.conftest import ADMIN_EMAIL


class _FakeFetcher:
	def __init__(self):
		self.text = "Item,Email\n"
		self.error = None

	def fetch_csv(self):
		if self.error is not None:
			raise self.error
		return self.text


@pytest.fixture
def fetcher():
	return _FakeFetcher()


@pytest.fixture
def app(db_path, fetcher):
	return create_app(db_path=db_path, admin_email=ADMIN_EMAIL, fetcher=fetcher, session_secret="test-secret")


@pytest.fixture
def client(app):
	return TestClient(app)


@pytest.fixture
def admin_client(client):
	r = client.post("/api/login", json={"email": ADMIN_EMAIL})
	assert r.status_code == 200
	return client


@pytest.fixture
def readonly_client(client):
	r = client.post("/api/login", json={"email": "parent@example.com"})
	assert r.status_code == 200
	return client
