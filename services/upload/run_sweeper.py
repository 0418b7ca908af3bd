"""One sweep of orphaned staging directories, meant to be run from cron."""

import logging

from services.upload.config import load_config
from services.upload.worker import build_runtime

LOGGER = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    runtime = build_runtime(load_config())
    try:
        swept = runtime.sweep.execute()
    finally:
        runtime.close()
    LOGGER.info("Removed %s orphaned staging directories", len(swept))


if __name__ == "__main__":
    main()
