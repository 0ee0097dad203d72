"""Transition audit logging.

Appends structured JSON entries to <home>/logs.jsonl.
Each entry records one state transition (add, remove, activate, ...) with
timestamp, profile, path, result and the paths that failed, if any.
"""

import json
from datetime import datetime

from dotswap.config import dotswap_home


def logs_file():
    return dotswap_home() / "logs.jsonl"


def write_log(entry):
    """Append a transition log entry."""
    path = logs_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    entry["timestamp"] = datetime.now().isoformat()
    with open(path, "a") as f:
        f.write(json.dumps(entry) + "\n")


def read_logs():
    """Return all parseable entries, oldest first. Malformed lines are skipped."""
    path = logs_file()
    if not path.exists():
        return []
    entries = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return entries
