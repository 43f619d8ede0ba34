from datetime import datetime, timezone

import httpx
import pytest
import pytest_asyncio
from google.api_core.exceptions import NotFound
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.deps import get_cohere_provider
from app.main import create_app
from app.providers.cohere import CohereProvider
from app.providers.gcs import GcsStorageProvider

COHERE_OK = {
    "id": "gen-1",
    "generations": [{"id": "g-1", "text": "Once upon a time, a robot learned to paint."}],
    "meta": {"billed_units": {"input_tokens": 7, "output_tokens": 11}},
}


class CohereStub:
    """httpx MockTransport handler standing in for the Cohere API."""

    def __init__(self) -> None:
        self.requests = []
        self.status_code = 200
        self.body = COHERE_OK
        self.error = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.body)


class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name
        self.metadata = None
        self.size = None
        self.content_type = None
        self.time_created = None
        self.updated = None
        self.data = b""

    def _missing(self):
        return NotFound(f"No such object: {self.bucket.name}/{self.name}")

    def exists(self):
        self.bucket.client.calls.append(("exists", self.name))
        return self.name in self.bucket.objects

    def upload_from_string(self, data, content_type=None):
        self.bucket.client.calls.append(("upload", self.name))
        now = datetime.now(timezone.utc)
        self.data = data
        self.size = len(data)
        self.content_type = content_type
        self.time_created = now
        self.updated = now
        self.bucket.objects[self.name] = self

    def generate_signed_url(self, version, expiration, method):
        self.bucket.client.calls.append(("sign", self.name))
        self.bucket.client.signed.append({"name": self.name, "version": version, "expiration": expiration, "method": method})
        return f"https://storage.googleapis.com/{self.bucket.name}/{self.name}?X-Goog-Signature=fake"

    def delete(self):
        self.bucket.client.calls.append(("delete", self.name))
        if self.name not in self.bucket.objects:
            raise self._missing()
        del self.bucket.objects[self.name]

    def reload(self):
        self.bucket.client.calls.append(("reload", self.name))
        stored = self.bucket.objects.get(self.name)
        if stored is None:
            raise self._missing()
        self.__dict__.update({k: v for k, v in stored.__dict__.items() if k != "bucket"})


class FakeBucket:
    def __init__(self, client, name):
        self.client = client
        self.name = name
        self.objects = {}

    def blob(self, name):
        return self.objects.get(name) or FakeBlob(self, name)


class FakeStorageClient:
    """In-memory stand-in for google.cloud.storage.Client."""

    def __init__(self) -> None:
        self.buckets = {}
        self.calls = []
        self.signed = []
        self.list_error = None

    def bucket(self, name):
        if name not in self.buckets:
            self.buckets[name] = FakeBucket(self, name)
        return self.buckets[name]

    def list_blobs(self, bucket_name):
        self.calls.append(("list", bucket_name))
        if self.list_error is not None:
            raise self.list_error
        return iter(list(self.bucket(bucket_name).objects.values()))


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        cohere_api_key="test-cohere-key",
        gcs_bucket_name="test-bucket",
        gcs_project_id="test-project",
    )


@pytest.fixture
def unconfigured_settings():
    return Settings(_env_file=None, cohere_api_key="", gcs_bucket_name="")


@pytest.fixture
def cohere_stub():
    return CohereStub()


@pytest.fixture
def storage_client():
    return FakeStorageClient()


@pytest.fixture
def build_app(cohere_stub, storage_client):
    def _build(app_settings):
        app = create_app(app_settings)
        app.dependency_overrides[get_cohere_provider] = lambda: CohereProvider(
            api_key=app_settings.cohere_api_key or "",
            base_url=app_settings.cohere_base_url,
            transport=httpx.MockTransport(cohere_stub),
        )
        app.state.storage_provider = GcsStorageProvider(app_settings, client=storage_client)
        return app

    return _build


@pytest_asyncio.fixture
async def client(build_app, settings):
    transport = ASGITransport(app=build_app(settings))
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def unconfigured_client(build_app, unconfigured_settings):
    transport = ASGITransport(app=build_app(unconfigured_settings))
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
