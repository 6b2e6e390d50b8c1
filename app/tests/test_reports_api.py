"""
Tests for the report API endpoints
"""

import pytest
from fastapi.testclient import TestClient

from app.api import dependencies
from app.main import app
from app.models.user_models import AppUser, UserRole
from app.services.analytics_service import AnalyticsService
from app.services.barangay_service import BarangayService
from app.services.event_service import EventService
from app.services.image_normalizer import ImageNormalizer
from app.services.notification_service import NotificationService
from app.services.preview_service import PreviewService
from app.services.report_service import ReportService
from app.services.submission_service import ReportSubmissionOrchestrator
from app.services.upload_coordinator import PARALLEL, UploadCoordinator
from app.services.user_service import UserService
from app.tests.conftest import make_image_bytes


class Wiring:
    """Services wired to in-memory collaborators"""

    def __init__(self, blob_store, report_store, collection_factory, tmp_path):
        self.blob_store = blob_store
        self.report_store = report_store
        self.users = UserService(collection_factory("user"))
        self.barangays = BarangayService(self.users, collection_factory("barangay"))
        self.notifications = NotificationService(collection_factory("notification"))
        self.events = EventService()
        self.previews = PreviewService(str(tmp_path))
        self.reports = ReportService(report_store, blob_store, self.notifications, self.events)
        self.submissions = ReportSubmissionOrchestrator(
            normalizer=ImageNormalizer(max_width=1280, min_bytes=1024, max_bytes=400 * 1024),
            coordinator=UploadCoordinator(blob_store, mode=PARALLEL, max_files=3),
            store=report_store,
            max_files=3,
        )

    def seed_user(self, uid, role=UserRole.USER, barangay="b1"):
        user = AppUser(uid=uid, email=f"{uid}@example.com", role=role, barangay=barangay)
        self.users.collection.add(user.model_dump(mode="json"), doc_id=uid)
        return user


@pytest.fixture
def wiring(blob_store, report_store, collection_factory, tmp_path):
    wired = Wiring(blob_store, report_store, collection_factory, tmp_path)
    app.dependency_overrides.update({
        dependencies.get_user_service: lambda: wired.users,
        dependencies.get_barangay_service: lambda: wired.barangays,
        dependencies.get_notification_service: lambda: wired.notifications,
        dependencies.get_event_service: lambda: wired.events,
        dependencies.get_preview_service: lambda: wired.previews,
        dependencies.get_report_service: lambda: wired.reports,
        dependencies.get_submission_service: lambda: wired.submissions,
    })
    yield wired
    app.dependency_overrides.clear()


@pytest.fixture
def api(wiring):
    return TestClient(app)


def photo(name="photo.jpg", width=80, height=60):
    return ("files", (name, make_image_bytes(width, height), "image/jpeg"))


def form_data(**overrides):
    data = {
        "type": "Air",
        "description": "Black smoke from a factory chimney",
        "location": "Rizal Street",
        "lat": "14.5995",
        "lng": "120.9842",
    }
    data.update(overrides)
    return {k: v for k, v in data.items() if v is not None}


class TestSubmitEndpoint:

    def test_submit_creates_pending_report(self, api, wiring):
        wiring.seed_user("user-1")

        response = api.post(
            "/reports",
            data=form_data(),
            files=[photo("a.jpg"), photo("b.jpg")],
            headers={"X-User-Id": "user-1"},
        )

        assert response.status_code == 201
        body = response.json()
        report = body["report"]
        assert report["status"] == "Pending"
        assert report["approved"] is False
        assert report["reporter_id"] == "user-1"
        assert report["barangay_id"] == "b1"
        assert len(report["images"]) == 2
        assert report["images"][0].endswith("_a.jpg")
        assert wiring.report_store.create_calls == 1
        assert body["id"] in wiring.report_store.records

    def test_missing_description_is_unprocessable(self, api, wiring):
        wiring.seed_user("user-1")

        response = api.post(
            "/reports",
            data=form_data(description=""),
            files=[photo()],
            headers={"X-User-Id": "user-1"},
        )

        assert response.status_code == 422
        assert response.json()["error"] == "ReportValidationException"
        assert wiring.report_store.create_calls == 0
        assert wiring.blob_store.events == []

    def test_anonymous_submission_rejected(self, api, wiring):
        response = api.post("/reports", data=form_data(), files=[photo()])

        assert response.status_code == 422
        assert response.json()["additional_info"]["field"] == "user"

    def test_too_many_files_rejected(self, api, wiring):
        wiring.seed_user("user-1")

        response = api.post(
            "/reports",
            data=form_data(),
            files=[photo(f"{i}.jpg") for i in range(4)],
            headers={"X-User-Id": "user-1"},
        )

        assert response.status_code == 422
        assert wiring.blob_store.events == []

    def test_upload_failure_is_bad_gateway(self, api, wiring):
        wiring.seed_user("user-1")
        wiring.blob_store.fail_on.add("b.jpg")

        response = api.post(
            "/reports",
            data=form_data(),
            files=[photo("a.jpg"), photo("b.jpg"), photo("c.jpg")],
            headers={"X-User-Id": "user-1"},
        )

        assert response.status_code == 502
        assert response.json()["error"] == "TransportException"
        assert wiring.report_store.records == {}
        assert wiring.blob_store.deleted == []

    def test_street_resolves_location_and_coordinates(self, api, wiring):
        barangay_id = wiring.barangays.collection.add({
            "name": "San Roque",
            "streets": [{"kind": "located", "name": "Mabini", "lat": 14.61, "lng": 121.01}],
        })
        wiring.seed_user("user-1", barangay=barangay_id)

        response = api.post(
            "/reports",
            data=form_data(location="", lat=None, lng=None, street="Mabini"),
            files=[photo()],
            headers={"X-User-Id": "user-1"},
        )

        assert response.status_code == 201
        report = response.json()["report"]
        assert report["location"] == "Mabini, San Roque"
        assert (report["lat"], report["lng"]) == (14.61, 121.01)

    def test_upload_progress_published(self, api, wiring):
        submitter = wiring.seed_user("user-1")
        client_id = wiring.events.connect(submitter)
        queue = wiring.events.clients[client_id].queue

        response = api.post(
            "/reports",
            data=form_data(submission_id="sub-1"),
            files=[photo("a.jpg")],
            headers={"X-User-Id": "user-1"},
        )
        assert response.status_code == 201

        events = []
        while not queue.empty():
            events.append(queue.get_nowait())
        progress = [e for e in events if e["type"] == "upload_progress"]
        assert progress
        assert all(e["data"]["submissionId"] == "sub-1" for e in progress)
        assert progress[-1]["data"]["overallPercent"] == 100
        assert any(e["type"] == "report_created" for e in events)

    def test_anonymous_stream_does_not_receive_unapproved_report(self, api, wiring):
        wiring.seed_user("user-1")
        client_id = wiring.events.connect(None)
        queue = wiring.events.clients[client_id].queue
        queue.get_nowait()

        response = api.post(
            "/reports", data=form_data(), files=[photo()], headers={"X-User-Id": "user-1"}
        )
        assert response.status_code == 201
        assert api.get(f"/reports/{response.json()['id']}").status_code == 404

        assert queue.empty()


class TestAdminEndpoints:

    def _submit(self, api, wiring):
        wiring.seed_user("user-1")
        response = api.post(
            "/reports", data=form_data(), files=[photo()], headers={"X-User-Id": "user-1"}
        )
        return response.json()["id"]

    def test_public_list_hides_unapproved_until_approved(self, api, wiring):
        report_id = self._submit(api, wiring)
        wiring.seed_user("admin-main", role=UserRole.ADMIN, barangay=None)

        assert api.get("/reports").json()["total_count"] == 0
        assert api.get("/reports", headers={"X-User-Id": "user-1"}).json()["total_count"] == 1

        response = api.post(f"/reports/{report_id}/approve", headers={"X-User-Id": "admin-main"})
        assert response.status_code == 200
        assert response.json()["status"] == "In Progress"

        public = api.get("/reports").json()
        assert [r["id"] for r in public["reports"]] == [report_id]

    def test_regular_user_cannot_approve(self, api, wiring):
        report_id = self._submit(api, wiring)
        response = api.post(f"/reports/{report_id}/approve", headers={"X-User-Id": "user-1"})
        assert response.status_code == 403

    def test_status_cannot_go_back(self, api, wiring):
        report_id = self._submit(api, wiring)
        wiring.seed_user("admin-b1", role=UserRole.ADMIN, barangay="b1")
        headers = {"X-User-Id": "admin-b1"}

        assert api.patch(f"/reports/{report_id}/status", json={"status": "Done"}, headers=headers).status_code == 200
        response = api.patch(f"/reports/{report_id}/status", json={"status": "In Progress"}, headers=headers)
        assert response.status_code == 409

    def test_comment_and_notification(self, api, wiring):
        report_id = self._submit(api, wiring)
        wiring.seed_user("admin-b1", role=UserRole.ADMIN, barangay="b1")

        response = api.post(
            f"/reports/{report_id}/comments", json={"text": "Crew dispatched"}, headers={"X-User-Id": "admin-b1"}
        )
        assert response.status_code == 200
        assert response.json()["comments"][0]["text"] == "Crew dispatched"

        notes = api.get("/notifications", headers={"X-User-Id": "user-1"}).json()
        assert [n["kind"] for n in notes] == ["admin_comment"]
        count = api.get("/notifications/unread-count", headers={"X-User-Id": "user-1"}).json()
        assert count == {"unread": 1}

    def test_upvote_once(self, api, wiring):
        report_id = self._submit(api, wiring)
        wiring.seed_user("admin-main", role=UserRole.ADMIN, barangay=None)
        api.post(f"/reports/{report_id}/approve", headers={"X-User-Id": "admin-main"})
        wiring.seed_user("user-2")
        headers = {"X-User-Id": "user-2"}

        assert api.post(f"/reports/{report_id}/upvote", headers=headers).status_code == 200
        assert api.post(f"/reports/{report_id}/upvote", headers=headers).status_code == 409

    def test_delete_removes_images(self, api, wiring):
        report_id = self._submit(api, wiring)
        wiring.seed_user("admin-main", role=UserRole.ADMIN, barangay=None)

        response = api.delete(f"/reports/{report_id}", headers={"X-User-Id": "admin-main"})

        assert response.status_code == 200
        assert len(wiring.blob_store.deleted) == 1
        assert api.get(f"/reports/{report_id}", headers={"X-User-Id": "admin-main"}).status_code == 404

    def test_reject_keeps_images(self, api, wiring):
        report_id = self._submit(api, wiring)
        wiring.seed_user("admin-main", role=UserRole.ADMIN, barangay=None)

        response = api.post(
            f"/reports/{report_id}/reject", json={"reason": "Duplicate"}, headers={"X-User-Id": "admin-main"}
        )

        assert response.status_code == 200
        assert wiring.blob_store.deleted == []
        assert wiring.report_store.records == {}

    def test_invalid_status_filter(self, api, wiring):
        assert api.get("/reports?status=Archived").status_code == 400

    def test_analytics_endpoint(self, api, wiring):
        report_id = self._submit(api, wiring)
        wiring.seed_user("admin-main", role=UserRole.ADMIN, barangay=None)
        api.post(f"/reports/{report_id}/approve", headers={"X-User-Id": "admin-main"})

        app.dependency_overrides[dependencies.get_analytics_service] = lambda: AnalyticsService(wiring.report_store)

        data = api.get("/analytics").json()
        assert data["total_reports"] == 1
        assert data["in_progress_count"] == 1
        assert data["counts_by_type"] == {"air": 1}
