"""Per-command workflow context.

Bundles what a CLI command needs to drive the workflow: the project
config, an engine bound to the project's document store, and the stored
session, all under the project's session lock.
"""

from contextlib import contextmanager
from dataclasses import dataclass

from featureflow.docs.store import DocumentStore
from featureflow.lib.config import ProjectConfig
from featureflow.workflow.engine import WorkflowEngine
from featureflow.workflow.locking import session_lock
from featureflow.workflow.session import WorkflowSession
from featureflow.workflow.session_store import load_session, save_session


@dataclass
class SessionContext:
    config: ProjectConfig
    store: DocumentStore
    engine: WorkflowEngine
    session: WorkflowSession

    def commit(self, session: WorkflowSession) -> WorkflowSession:
        """Persist a new session and make it current."""
        save_session(self.config.session_file, session)
        self.session = session
        return session


@contextmanager
def project_session(config: ProjectConfig, engine: WorkflowEngine | None = None):
    """Lock the project, load its session, yield a SessionContext.

    Raises:
        SessionAlreadyActive: if another process is driving this project
    """
    with session_lock(config.lock_file, config.project_dir):
        store = engine.store if engine else DocumentStore(config.artifacts_dir)
        yield SessionContext(
            config=config,
            store=store,
            engine=engine or WorkflowEngine(store),
            session=load_session(config.session_file),
        )
