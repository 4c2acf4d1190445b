from __future__ import annotations
import os

SSH_PORT = int(os.environ.get("WORKFLOWO_SSH_PORT", "22"))
CONNECT_TIMEOUT = float(os.environ.get("WORKFLOWO_CONNECT_TIMEOUT", "30"))

# top-level key that only holds YAML anchors, never run as a job
IGNORE_KEY = "IGNORE"

REDACTION_MARKER = "***Not displayed for security reasons***"

SCP_FILE_MODE = "0644"
SFTP_DIR_MODE = 0o774

YAML_SUFFIXES = (".yml", ".yaml")

# characters of stderr kept on a failed shell command
STDERR_TAIL = int(os.environ.get("WORKFLOWO_STDERR_TAIL", "4000"))
