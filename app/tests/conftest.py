"""
Pytest configuration and fixtures for testing
"""

import asyncio
import fnmatch
import os
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

import numpy as np
import pytest
from PIL import Image
from fastapi.testclient import TestClient

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "testing"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["GEOCODING_ENABLED"] = "false"
os.environ.pop("REDIS_URL", None)
os.environ.pop("REDIS_HOST", None)
os.environ.pop("CLOUDINARY_CLOUD_NAME", None)

from app.main import app
from app.core.exceptions import StoreRejectionException, TransportException
from app.models.upload_models import RawImage, UploadSnapshot
from app.models.user_models import AppUser, UserRole
from app.services.blob_store import BlobStore
from app.services.redis_service import RedisCollection
from app.services.report_store import ReportStore, check_required_fields


class FakeRedis:
    """In-memory stand-in for the handful of redis commands the app uses"""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.sorted_sets: Dict[str, Dict[str, tuple]] = {}
        self._sequence = 0

    def ping(self):
        return True

    def info(self):
        return {"redis_version": "7.2.0", "used_memory_human": "1M", "connected_clients": 1}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = value
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
        return removed

    def keys(self, pattern="*"):
        return [k for k in self.values if fnmatch.fnmatch(k, pattern)]

    def zadd(self, key, mapping):
        members = self.sorted_sets.setdefault(key, {})
        for member, score in mapping.items():
            # Insertion order breaks ties between identical timestamps
            self._sequence += 1
            members[member] = (score, self._sequence)
        return len(mapping)

    def zrem(self, key, *members):
        removed = 0
        for member in members:
            if self.sorted_sets.get(key, {}).pop(member, None) is not None:
                removed += 1
        return removed

    def zrevrange(self, key, start, end):
        members = sorted(self.sorted_sets.get(key, {}).items(), key=lambda item: item[1], reverse=True)
        ids = [member for member, _ in members]
        return ids[start:] if end == -1 else ids[start:end + 1]


class FakeBlobStore(BlobStore):
    """
    Blob store that records every call

    delays: filename -> seconds to wait before the final snapshot
    fail_on: filenames whose upload raises after the first snapshot
    """

    def __init__(self, delays: Optional[Dict[str, float]] = None, fail_on: Optional[set] = None):
        self.delays = delays or {}
        self.fail_on = fail_on or set()
        self.events: List[tuple] = []
        self.uploaded: List[str] = []
        self.deleted: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def upload(self, path: str, data: bytes, content_type: str):
        filename = path.rsplit("/", 1)[-1].split("_", 1)[-1]
        total = len(data)
        self.events.append(("start", filename))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            yield UploadSnapshot(bytes_transferred=0, total_bytes=total)
            await asyncio.sleep(self.delays.get(filename, 0))
            if filename in self.fail_on:
                self.events.append(("fail", filename))
                raise TransportException(f"Simulated network error for {filename}")
            yield UploadSnapshot(bytes_transferred=total // 2, total_bytes=total)
            url = f"https://blobs.test/{path}"
            self.uploaded.append(url)
            self.events.append(("done", filename))
            yield UploadSnapshot(bytes_transferred=total, total_bytes=total, url=url)
        finally:
            self.in_flight -= 1

    async def delete(self, url: str) -> bool:
        self.deleted.append(url)
        return True


class InMemoryReportStore(ReportStore):
    """Report store kept in a dict; counts create calls"""

    def __init__(self, reject: bool = False):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.create_calls = 0
        self.reject = reject
        self._next_id = 0

    async def create(self, record: Dict[str, Any]) -> str:
        self.create_calls += 1
        if self.reject:
            raise StoreRejectionException("Permission denied by document store")
        check_required_fields(record)
        self._next_id += 1
        report_id = f"r{self._next_id}"
        self.records[report_id] = {**record, "id": report_id}
        return report_id

    async def update(self, report_id: str, changes: Dict[str, Any]) -> None:
        self.records[report_id].update(changes)

    async def get(self, report_id: str) -> Optional[Dict[str, Any]]:
        record = self.records.get(report_id)
        return dict(record) if record else None

    async def list_all(self) -> List[Dict[str, Any]]:
        return [dict(r) for r in reversed(list(self.records.values()))]

    async def delete(self, report_id: str) -> bool:
        return self.records.pop(report_id, None) is not None


def make_image_bytes(width: int, height: int, fmt: str = "JPEG", noise: bool = True) -> bytes:
    """Gradient image, optionally with noise so JPEG sizes grow with quality"""
    x = np.linspace(0, 255, width, dtype=np.float32)
    y = np.linspace(0, 255, height, dtype=np.float32)
    gradient = (x[None, :] + y[:, None]) / 2
    img_array = np.stack([gradient, 255 - gradient, gradient / 2], axis=-1)
    if noise:
        rng = np.random.default_rng(42)
        img_array = img_array + rng.normal(0, 20, img_array.shape)
    img = Image.fromarray(np.clip(img_array, 0, 255).astype(np.uint8), 'RGB')

    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def make_raw_image(width: int = 64, height: int = 48, filename: str = "photo.jpg",
                   fmt: str = "JPEG", content_type: str = "image/jpeg") -> RawImage:
    return RawImage(data=make_image_bytes(width, height, fmt), content_type=content_type, filename=filename)


@pytest.fixture
def client():
    """Test client for FastAPI app"""
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def collection_factory(fake_redis):
    """Build RedisCollections backed by the shared FakeRedis"""
    def factory(name: str) -> RedisCollection:
        return RedisCollection(name, lambda: fake_redis)
    return factory


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def report_store():
    return InMemoryReportStore()


@pytest.fixture
def citizen():
    return AppUser(uid="user-1", email="citizen@example.com", barangay="b1")


@pytest.fixture
def other_citizen():
    return AppUser(uid="user-2", email="neighbor@example.com", barangay="b1")


@pytest.fixture
def main_admin():
    return AppUser(uid="admin-main", email="main@example.com", role=UserRole.ADMIN)


@pytest.fixture
def district_admin():
    return AppUser(uid="admin-b1", email="b1@example.com", role=UserRole.ADMIN, barangay="b1")


@pytest.fixture
def foreign_admin():
    return AppUser(uid="admin-b2", email="b2@example.com", role=UserRole.ADMIN, barangay="b2")


@pytest.fixture
def small_image():
    return make_raw_image(64, 48, filename="small.jpg")


@pytest.fixture
def large_images():
    """Two 1500px-wide photos"""
    return [
        make_raw_image(1500, 1000, filename="first.jpg"),
        make_raw_image(1500, 1125, filename="second.png", fmt="PNG", content_type="image/png"),
    ]


def make_record(report_id="r1", reporter_id="user-1", barangay_id="b1", approved=False,
                status="Pending", upvoted_by=None, created_at=None, report_type="Air"):
    created_at = created_at or datetime(2024, 5, 17, 9, 30)
    return {
        "id": report_id,
        "reporter_id": reporter_id,
        "reporter_name": "citizen@example.com",
        "type": report_type,
        "location": "Rizal Street",
        "description": "Smoke",
        "lat": 14.6,
        "lng": 121.0,
        "date": "2024-05-17",
        "time": "09:30:00",
        "images": [f"https://blobs.test/reports/{reporter_id}/1_a.jpg"],
        "barangay_id": barangay_id,
        "approved": approved,
        "status": status,
        "upvoted_by": upvoted_by or [],
        "admin_response": None,
        "comments": [],
        "created_at": created_at.isoformat(),
        "updated_at": created_at.isoformat(),
    }
