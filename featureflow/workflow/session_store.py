"""Session file persistence.

The engine itself never persists sessions; the CLI stores the current one
in <state_dir>/session.json between invocations.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from featureflow.lib.errors import PersistenceFailure
from featureflow.lib.validate import validate_before_write, validate_file
from featureflow.workflow.session import WorkflowSession

logger = logging.getLogger(__name__)


def load_session(session_file: Path) -> WorkflowSession:
    """Load the stored session, or a fresh idle one if none exists.

    Raises:
        PersistenceFailure: if the file exists but cannot be read
        ValidationError: if the file exists but is malformed
    """
    if not session_file.exists():
        return WorkflowSession()
    return WorkflowSession.from_dict(validate_file(session_file, "session"))


def save_session(session_file: Path, session: WorkflowSession) -> None:
    """Write the session atomically.

    Raises:
        PersistenceFailure: if the state directory is not writable
    """
    data = session.to_dict()
    validate_before_write(data, "session", session_file)

    try:
        session_file.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=session_file.parent, prefix=".session_", suffix=".json.tmp"
        )
    except OSError as e:
        raise PersistenceFailure(session_file, str(e)) from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(temp_path, session_file)
    except OSError as e:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise PersistenceFailure(session_file, str(e)) from e

    logger.debug(f"Saved session ({session.phase.value}) to {session_file}")
