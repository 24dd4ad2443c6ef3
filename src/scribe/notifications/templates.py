"""Notification templates for the events users care about."""

from scribe.models.enums import EventType
from scribe.models.envelope import EventEnvelope
from scribe.models.notification import NotificationContent, PushContent


def upload_complete(file_name: str) -> NotificationContent:
    return NotificationContent(
        kind="upload_complete",
        title="Upload Complete",
        message=f'Your file "{file_name}" has been uploaded successfully and is being processed.',
        push=PushContent(
            title="Upload Complete",
            body=f"{file_name} uploaded successfully",
            data={"type": "upload_complete"},
        ),
        slack_message=f"\U0001f4c1 File uploaded: *{file_name}* is now being processed for summarization.",
        template_data={"file_name": file_name},
    )


def summary_ready(title: str, summary_id: str) -> NotificationContent:
    return NotificationContent(
        kind="summary_ready",
        title="Summary Ready",
        message=f'Your summary for "{title}" is ready to view!',
        push=PushContent(
            title="Summary Ready",
            body=f"Summary for {title} is complete",
            data={"type": "summary_ready", "summary_id": summary_id},
        ),
        slack_message=(
            f"✅ Summary complete: Your summary for *{title}* is ready! "
            "View it in your dashboard."
        ),
        template_data={"title": title, "summary_id": summary_id},
    )


def export_complete(export_type: str, file_name: str) -> NotificationContent:
    label = export_type.upper()
    return NotificationContent(
        kind="export_complete",
        title="Export Complete",
        message=f'Your {label} export for "{file_name}" is ready for download!',
        push=PushContent(
            title="Export Complete",
            body=f"{label} export ready for {file_name}",
            data={"type": "export_complete", "export_type": export_type},
        ),
        slack_message=f"\U0001f4c4 Export ready: Your *{label}* export for *{file_name}* is available for download.",
        template_data={"export_type": export_type, "file_name": file_name},
    )


def processing_failed(file_name: str, error: str) -> NotificationContent:
    return NotificationContent(
        kind="processing_failed",
        title="Processing Failed",
        message=f'Failed to process "{file_name}": {error}',
        push=PushContent(
            title="Processing Failed",
            body=f"Failed to process {file_name}",
            data={"type": "processing_failed"},
        ),
        slack_message=f"❌ Processing failed: Unable to process *{file_name}*. Please try uploading again.",
        template_data={"file_name": file_name, "error": error},
    )


def content_for_event(envelope: EventEnvelope) -> NotificationContent | None:
    """Pick the user-facing template for an envelope, or None if users are not notified."""
    data = envelope.data
    event_type = envelope.event_type

    if event_type == EventType.FILE_UPLOADED:
        return upload_complete(data.get("file_name", "your file"))
    if event_type == EventType.SUMMARY_COMPLETED:
        return summary_ready(data.get("title", "your conversation"), data.get("summary_id", ""))
    if event_type == EventType.EXPORT_COMPLETED:
        return export_complete(
            data.get("format", "export"),
            data.get("file_name") or data.get("summary_id", "your summary"),
        )
    if event_type == EventType.FILE_PROCESSED and data.get("status") == "failed":
        return processing_failed(data.get("file_name", "your file"), data.get("error") or "unknown error")
    if event_type == EventType.SUMMARY_FAILED:
        return processing_failed(
            data.get("title") or data.get("summary_id", "your summary"),
            data.get("error") or "unknown error",
        )
    return None
