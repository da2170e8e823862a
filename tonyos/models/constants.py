"""Constants for TonyOS.

This module centralizes all magic numbers and default values used throughout the application.
"""

from tonyos.models.task import TaskBucket, TaskStatus


# Task defaults
DEFAULT_PRIORITY = 3
MIN_PRIORITY = 1
MAX_PRIORITY = 5
DEFAULT_AREA = "General"

# Bucket fallbacks are per entry point; there is no global default bucket.
CREATE_DEFAULT_BUCKET = TaskBucket.LATER
BRAIN_DUMP_DEFAULT_BUCKET = TaskBucket.TODAY

# Legacy stored values -> canonical values
LEGACY_STATUS_VALUES = {
    "todo": TaskStatus.OPEN,
    "in_progress": TaskStatus.DOING,
    "in-progress": TaskStatus.DOING,
    "completed": TaskStatus.DONE,
}

# Request limits
BRAIN_DUMP_MAX_CHARS = 4000
CHAT_CONTEXT_TASK_LIMIT = 40
