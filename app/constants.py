"""Shared constants used across the application."""

# Audit action tags written by this service
ACTION_BACKUP_CREATED = "BACKUP_CREATED"
ACTION_BACKUP_DELETED = "BACKUP_DELETED"
ACTION_UPDATE_SETTINGS = "UPDATE_SETTINGS"
ACTION_CREATE_SPRINT = "CREATE_SPRINT"
ACTION_UPDATE_SPRINT_STATUS = "UPDATE_SPRINT_STATUS"
ACTION_DELETE_PROJECT = "DELETE_PROJECT"
ACTION_DELETE_TASK = "DELETE_TASK"
ACTION_VERIFY_TASK = "VERIFY_TASK"

# Actions surfaced by the admin alerts feed (some are written by other services)
CRITICAL_AUDIT_ACTIONS: tuple[str, ...] = (
    ACTION_DELETE_PROJECT,
    "DELETE_USER",
    "ROLE_CHANGE",
    ACTION_DELETE_TASK,
    "FAILED_LOGIN",
    "PERMISSION_DENIED",
    "SYSTEM_ERROR",
    "MILESTONE_REJECTED",
    "SUSPENSION",
)

ALERT_WINDOW_HOURS = 24
ALERT_FEED_LIMIT = 10
AUDIT_LIST_LIMIT = 100

# Memory usage (percent) above which the admin health check degrades
MEMORY_WARNING_PERCENT = 80.0
MEMORY_CRITICAL_PERCENT = 95.0
