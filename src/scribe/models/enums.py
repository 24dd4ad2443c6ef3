"""String enums for the event taxonomy and delivery bookkeeping."""

from enum import StrEnum


class EventType(StrEnum):
    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"
    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELLED = "subscription.cancelled"
    PAYMENT_SUCCESS = "payment.success"
    PAYMENT_FAILED = "payment.failed"
    SUMMARY_CREATED = "summary.created"
    SUMMARY_COMPLETED = "summary.completed"
    SUMMARY_FAILED = "summary.failed"
    SLACK_CONNECTED = "slack.connected"
    SLACK_DISCONNECTED = "slack.disconnected"
    FILE_UPLOADED = "file.uploaded"
    FILE_PROCESSED = "file.processed"
    EXPORT_COMPLETED = "export.completed"


class DeliveryStatus(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    RETRYING = "retrying"
    ABANDONED = "abandoned"


class FailureKind(StrEnum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


class NotificationChannelType(StrEnum):
    IN_APP = "in_app"
    PUSH = "push"
    SLACK = "slack"


class ChannelStatus(StrEnum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"
    FAILED = "failed"


class DeploymentStatus(StrEnum):
    STARTED = "started"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
