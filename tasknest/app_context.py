# tasknest application context
# Rev 0.3.0

from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

from .repositories.db import Database
from .utils.config import load_settings

if TYPE_CHECKING:
    from .viewmodels.task_board_viewmodel import TaskBoardViewModel


@dataclass
class AppContext:
    """Central container for shared app resources."""
    settings: Dict[str, Any]
    db_path: Path
    db: Database

    @classmethod
    def create(cls, settings: Optional[Dict[str, Any]] = None, *, db_path: Optional[Path | str] = None) -> "AppContext":
        """Load settings, open the pooled DB and apply pending migrations."""
        log = logging.getLogger(__name__)
        settings = settings if settings is not None else load_settings()
        path = Path(db_path or settings["database"]["path"])
        db = Database(path, pool_size=int(settings["database"].get("pool_size", 10)))
        applied = db.run_migrations()
        if applied:
            log.info("Applied migrations: %s", ", ".join(applied))
        log.info("AppContext initialized with DB=%s", path)
        return cls(settings=settings, db_path=path, db=db)

    def create_board(self, session: Any = None) -> "TaskBoardViewModel":
        """Board view-model talking to the API named in settings["client"]."""
        from .clients.api_client import TaskApiClient
        from .viewmodels.task_board_viewmodel import TaskBoardViewModel

        client = self.settings["client"]
        api = TaskApiClient(client["base_url"], session=session, timeout=float(client.get("timeout", 10)))
        return TaskBoardViewModel(
            api,
            users=self.settings.get("users", []),
            user_id=int(client.get("user_id", 1)),
            ws_id=int(client.get("ws_id", 1)),
        )

    def close(self) -> None:
        self.db.close()
