# ==============================================================================
# Base Runner
# ==============================================================================
"""
Lifecycle shared by pipeline runners.

SIGINT and SIGTERM set a shutdown flag instead of raising, so a run can stop
between summary batches and leave its watermark at the last persisted key.
Logging is configured with basicConfig before _run(), and _cleanup() always
runs, even when _run() raises.
"""

import logging
import signal
from abc import ABC, abstractmethod
from typing import final

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class BaseRunner(ABC):
    """
    One pipeline pass with signal-driven early stop.

    Args:
        log_level: Level name for the root logger
    """

    def __init__(self, log_level: str = "INFO"):
        self._shutdown_requested = False
        self._log_level = log_level

    @final
    def run(self):
        """Run _run() once and return its result, or None on KeyboardInterrupt."""
        self._setup_signal_handlers()
        self._setup_logging()

        try:
            return self._run()
        except KeyboardInterrupt:
            logger.info("Run interrupted from the keyboard")
            return None
        finally:
            self._cleanup()

    @abstractmethod
    def _run(self):
        """Do the work of one pass; poll shutdown_requested between units."""
        ...

    def _setup_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_signal)
        signal.signal(signal.SIGINT, self._handle_signal)

    def _handle_signal(self, signum, frame) -> None:
        logger.info("Received signal %d; stop requested", signum)
        self._shutdown_requested = True
        self._on_shutdown_requested()

    def _setup_logging(self) -> None:
        logging.basicConfig(level=self._log_level.upper(), format=LOG_FORMAT)

    def _on_shutdown_requested(self) -> None:
        """Called once a stop signal has set the flag."""
        pass

    def _cleanup(self) -> None:
        """Release connections opened by _run()."""
        pass

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested
