"""Shared constants for featureflow."""

import re

# Slug normalisation
SLUG_STRIP_RE = re.compile(r'[^a-z0-9]+')
MAX_SLUG_LEN = 60

# Artifact naming: <slug><suffix>.v<N>.md plus <slug><suffix>.json index
PRD_SUFFIX = "-prd"
TASKS_SUFFIX = "-tasks"
VERSION_FILE_RE = re.compile(r'^(?P<stem>.+)\.v(?P<version>\d+)\.md$')

# Artifact statuses
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"

# Task statuses
TASK_PENDING = "pending"
TASK_IN_PROGRESS = "in_progress"
TASK_DONE = "done"

# Hierarchical task id, e.g. "1.0", "2.3"
TASK_ID_PATTERN = re.compile(r'^\d+(\.\d+)*$')

# CLI exit codes
EXIT_NOT_FOUND = 1
EXIT_ERROR = 2
EXIT_RESIDUE = 3
