"""
Tests for per-user notifications
"""

import pytest

from app.core.exceptions import AuthenticationRequiredException, NotificationNotFoundException
from app.models.notification_models import NotificationKind
from app.models.report_models import Report
from app.services.notification_service import NotificationService
from app.services.redis_service import RedisCollection
from app.tests.conftest import make_record


@pytest.fixture
def notifications(collection_factory):
    return NotificationService(collection_factory("notification"))


class TestNotifications:

    @pytest.mark.asyncio
    async def test_notify_reporter_and_list(self, notifications, citizen, other_citizen):
        report = Report(**make_record())
        await notifications.notify_reporter(report, NotificationKind.REPORT_APPROVED, "Report approved", "Approved")

        mine = await notifications.list_notifications(citizen)
        assert len(mine) == 1
        assert mine[0].report_id == "r1"
        assert mine[0].kind == NotificationKind.REPORT_APPROVED
        assert await notifications.list_notifications(other_citizen) == []

    @pytest.mark.asyncio
    async def test_unread_count_and_mark_read(self, notifications, citizen):
        first = await notifications.notify(citizen.uid, NotificationKind.ADMIN_COMMENT, "Comment", "One")
        await notifications.notify(citizen.uid, NotificationKind.ADMIN_RESPONSE, "Response", "Two")

        assert await notifications.unread_count(citizen) == 2
        await notifications.mark_read(citizen, first.id)
        assert await notifications.unread_count(citizen) == 1
        unread = await notifications.list_notifications(citizen, unread_only=True)
        assert [n.message for n in unread] == ["Two"]

        assert await notifications.mark_all_read(citizen) == 1
        assert await notifications.unread_count(citizen) == 0

    @pytest.mark.asyncio
    async def test_cannot_touch_other_users_notifications(self, notifications, citizen, other_citizen):
        note = await notifications.notify(citizen.uid, NotificationKind.STATUS_CHANGED, "Status", "Done")
        with pytest.raises(NotificationNotFoundException):
            await notifications.mark_read(other_citizen, note.id)
        with pytest.raises(NotificationNotFoundException):
            await notifications.delete(other_citizen, note.id)

    @pytest.mark.asyncio
    async def test_delete_and_delete_all(self, notifications, citizen, other_citizen):
        note = await notifications.notify(citizen.uid, NotificationKind.REPORT_UPVOTED, "Upvote", "1")
        await notifications.notify(citizen.uid, NotificationKind.REPORT_UPVOTED, "Upvote", "2")
        await notifications.notify(other_citizen.uid, NotificationKind.REPORT_UPVOTED, "Upvote", "3")

        await notifications.delete(citizen, note.id)
        assert len(await notifications.list_notifications(citizen)) == 1

        assert await notifications.delete_all(citizen) == 1
        assert await notifications.list_notifications(citizen) == []
        assert len(await notifications.list_notifications(other_citizen)) == 1

    @pytest.mark.asyncio
    async def test_login_required(self, notifications):
        with pytest.raises(AuthenticationRequiredException):
            await notifications.unread_count(None)

    @pytest.mark.asyncio
    async def test_store_failure_does_not_propagate_from_notify_reporter(self):
        service = NotificationService(RedisCollection("notification", lambda: None))
        await service.notify_reporter(Report(**make_record()), NotificationKind.REPORT_REJECTED, "Rejected", "No")
