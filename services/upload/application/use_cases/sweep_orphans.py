from __future__ import annotations

import logging
import time
from typing import Callable, List

from services.upload.application.interfaces import (
    ChunkStaging,
    UploadEventReporter,
    UploadSessionStore,
)

LOGGER = logging.getLogger(__name__)


class SweepOrphanedUploadsUseCase:
    """Removes staging directories whose session record no longer exists.

    Session records expire in the store on their own; their staged chunks do
    not. Directories younger than the grace period are left alone so an
    upload being initialised concurrently is never swept.
    """

    def __init__(
        self,
        *,
        store: UploadSessionStore,
        staging: ChunkStaging,
        reporter: UploadEventReporter,
        grace_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._staging = staging
        self._reporter = reporter
        self._grace_seconds = grace_seconds
        self._clock = clock

    def execute(self) -> List[str]:
        now = self._clock()
        swept: List[str] = []
        for upload_id in list(self._staging.session_ids()):
            if self._store.exists(upload_id):
                continue
            modified = self._staging.last_modified(upload_id)
            if modified is None or now - modified < self._grace_seconds:
                continue
            self._staging.remove_session(upload_id)
            self._reporter.report("staging_swept", upload_id)
            swept.append(upload_id)
        if swept:
            LOGGER.info("Swept %s orphaned upload(s)", len(swept))
        return swept
