"""Main polling loop with signal handling and exponential backoff."""

from __future__ import annotations

import logging
import random
import signal
import time
from types import FrameType

from .cloud import LoadBalancerService
from .config import AppConfig
from .inventory import InventoryResolver, build_inventory
from .reconcile import Orchestrator

logger = logging.getLogger(__name__)


class Daemon:
    """Polling daemon: reconcile membership -> reconcile zones -> sleep."""

    def __init__(self, config: AppConfig, dry_run: bool = False):
        self._config = config
        self._inventory: InventoryResolver = build_inventory(config)
        self._orchestrator = Orchestrator(
            client_factory=self._build_client,
            inventory=self._inventory,
            elbs=config.elbs,
            ready_state=config.reconcile.ready_state,
            dry_run=dry_run or config.reconcile.dry_run,
        )
        self._shutdown = False
        self._wakeup = False
        self._consecutive_failures = 0

    def _build_client(self) -> LoadBalancerService | None:
        """Instantiate the AWS client for the configured region."""
        if self._config.aws is None or not self._config.aws.region:
            return None
        from .cloud.aws_client import AWSClient  # lazy import keeps boto3 out of --validate
        return AWSClient(self._config.aws)

    def run_once(self) -> bool:
        """Execute a single reconciliation pass."""
        return self._orchestrator.reconcile()

    def run(self) -> None:
        """Run the polling loop until shutdown signal."""
        self._install_signal_handlers()
        logger.info("Daemon started, reconciling every %ds", self._config.polling.interval_seconds)

        while not self._shutdown:
            cycle_start = time.monotonic()

            try:
                self._orchestrator.reconcile()
                self._consecutive_failures = 0
            except Exception:
                self._consecutive_failures += 1
                logger.exception(
                    "Reconciliation pass failed (consecutive failures: %d)",
                    self._consecutive_failures,
                )

            elapsed = time.monotonic() - cycle_start
            sleep_time = self._calculate_sleep(elapsed)
            logger.debug("Sleeping %.1fs before next pass", sleep_time)
            self._interruptible_sleep(sleep_time)

        logger.info("Daemon stopped")

    def _calculate_sleep(self, elapsed: float) -> float:
        """Determine how long to sleep, applying backoff and jitter."""
        base = self._config.polling.interval_seconds

        if self._consecutive_failures > 0:
            backoff = min(
                self._config.polling.backoff_base_seconds * (2 ** (self._consecutive_failures - 1)),
                self._config.polling.max_backoff_seconds,
            )
            base = backoff

        # Jitter
        jitter = random.uniform(0, self._config.polling.jitter_seconds)

        # Subtract elapsed time from interval
        sleep = max(0.0, base - elapsed + jitter)
        return sleep

    def _interruptible_sleep(self, seconds: float) -> None:
        """Sleep in short increments so we can respond to shutdown and wakeup signals."""
        end = time.monotonic() + seconds
        while not self._shutdown and not self._wakeup and time.monotonic() < end:
            remaining = end - time.monotonic()
            time.sleep(min(remaining, 1.0))
        self._wakeup = False

    def _install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)
        signal.signal(signal.SIGHUP, self._handle_wakeup)

    def _handle_shutdown(self, signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down", sig_name)
        self._shutdown = True

    def _handle_wakeup(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received SIGHUP, starting the next pass now")
        self._wakeup = True
