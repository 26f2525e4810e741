import pytest

from src.aakb_workforce.aakb_workforce.core.enums import NotificationType, Role
from src.aakb_workforce.aakb_workforce.core.exceptions import NotFoundError, ValidationError
from src.aakb_workforce.aakb_workforce.notifications.model import NotificationPreference
from src.aakb_workforce.aakb_workforce.notifications.push import InvalidPushToken, PushDeliveryError
from src.aakb_workforce.aakb_workforce.notifications.service import NotificationService


class FakePushGateway:
    def __init__(self):
        self.sent = []
        self.rejected = set()
        self.flaky = set()

    def send(self, *, token, title, body, data=None):
        if token in self.rejected:
            raise InvalidPushToken("unregistered")
        if token in self.flaky:
            raise PushDeliveryError("timeout")
        self.sent.append((token, title, body, data))
        return f"msg-{len(self.sent)}"


@pytest.fixture
def gateway():
    return FakePushGateway()


@pytest.fixture
def service(notification_repo, push_tokens, users, gateway):
    return NotificationService(notification_repo, push_tokens, users, push=gateway)


def test_inbox_only_without_gateway(notification_repo, push_tokens, users):
    service = NotificationService(notification_repo, push_tokens, users)
    push_tokens.create(user_id=4, token="t1", platform="android", device_name=None, now=None)

    report = service.notify_user(4, "Hello", "World")

    assert (report.stored, report.sent, report.failed) == (True, 0, 0)
    assert service.unread_count(4) == 1


def test_push_sent_to_every_active_token(service, gateway):
    service.register_token(4, "t1", "android")
    service.register_token(4, "t2", "ios", device_name="iPad")

    report = service.notify_user(4, "Task", "Do it", type=NotificationType.TASK, data={"task_id": 9})

    assert report.sent == 2
    assert {t for t, *_ in gateway.sent} == {"t1", "t2"}
    assert gateway.sent[0][3] == {"task_id": "9", "type": "task"}


def test_rejected_token_is_deactivated(service, gateway, push_tokens):
    service.register_token(4, "stale", "android")
    service.register_token(4, "good", "android")
    gateway.rejected.add("stale")

    report = service.notify_user(4, "Hi", "There")

    assert (report.sent, report.failed) == (1, 1)
    assert [t.token for t in push_tokens.list_active_for_user(4)] == ["good"]


def test_transient_failure_keeps_token(service, gateway, push_tokens):
    service.register_token(4, "t1", "android")
    gateway.flaky.add("t1")

    report = service.notify_user(4, "Hi", "There")

    assert report.failed == 1
    assert len(push_tokens.list_active_for_user(4)) == 1


def test_preferences_can_mute_push(service, gateway, push_tokens):
    service.register_token(4, "t1", "android")
    push_tokens.preferences[4] = NotificationPreference(user_id=4, task_notifications=False)

    service.notify_user(4, "Task", "Do it", type=NotificationType.TASK)
    service.notify_user(4, "Info", "fyi")

    assert [title for _, title, _, _ in gateway.sent] == ["Info"]
    assert service.unread_count(4) == 2


def test_reregistering_token_moves_it_to_new_user(service, push_tokens):
    service.register_token(4, "shared", "android")
    service.register_token(5, "shared", "android")

    assert push_tokens.list_active_for_user(4) == []
    assert [t.token for t in push_tokens.list_active_for_user(5)] == ["shared"]


def test_overseers_are_swamijis(service):
    reports = service.notify_overseers("Check-in", "Ravi started the day")
    assert [r.user_id for r in reports] == [3]
    assert [r.user_id for r in service.notify_role(Role.WORKER, "All", "Hands")] == [4, 5]


def test_inbox_read_flags(service):
    service.notify_user(4, "One", "1")
    service.notify_user(4, "Two", "2")
    newest = service.list_for_user(4)[0]
    assert newest.title == "Two"

    service.mark_read(4, newest.notification_id)
    assert service.unread_count(4) == 1
    assert [n.title for n in service.list_for_user(4, unread_only=True)] == ["One"]

    with pytest.raises(NotFoundError):
        service.mark_read(5, newest.notification_id)

    assert service.mark_all_read(4) == 1
    assert service.unread_count(4) == 0


def test_blank_message_rejected(service):
    with pytest.raises(ValidationError):
        service.notify_user(4, "", "body")
