"""Fake notifier: records notifications in memory for test assertions."""

from uuid import uuid4

from storefront.notifications.port import NotificationKind, NotifierPort


class FakeNotifier(NotifierPort):
    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def notify(self, kind: NotificationKind, recipient: str, context: dict) -> dict:
        if not self.should_succeed:
            raise ConnectionError(self.failure_reason)

        message_id = f"note-{uuid4().hex[:12]}"
        self.sent.append({"message_id": message_id, "kind": kind, "recipient": recipient, "context": context})
        return {"message_id": message_id, "status": "sent"}

    def sent_of(self, kind: NotificationKind) -> list[dict]:
        return [record for record in self.sent if record["kind"] == kind]
