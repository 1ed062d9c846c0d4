"""
CheckUp monitor process.

Runs the monitoring core: health monitor, update checker, retention
sweeps and alert fan-out. The CRUD/API layer runs separately and shares
the same PostgreSQL database.

Usage:
    checkup                         # run until SIGTERM/SIGINT
    checkup --once                  # one health + update pass, then exit
    python -m checkup.main --log-level DEBUG

Environment (or .env):
    CHECKUP_DATABASE_URL                     PostgreSQL connection string
    CHECKUP_MONITOR_INTERVAL_SECONDS         Health check cadence (default: 120)
    CHECKUP_PROBE_TIMEOUT_SECONDS            Per-probe timeout (default: 10)
    CHECKUP_UPDATE_CHECK_INTERVAL_HOURS      Update check cadence (default: 6)
    CHECKUP_MEASUREMENT_RETENTION_DAYS       Metrics kept for (default: 7)
    CHECKUP_HISTORY_RETENTION_DAYS           Version history kept for (default: 30)
    CHECKUP_GITHUB_TOKEN                     Optional GitHub API token
    CHECKUP_PID_FILE                         Singleton lock file
    LOG_LEVEL / CHECKUP_LOG_LEVEL            DEBUG, INFO, WARNING or ERROR

    Legacy CHECK_INTERVAL_HOURS and DEFAULT_TIMEOUT (ms) are also read.
"""

from __future__ import annotations

import argparse
import asyncio
import atexit
import fcntl
import logging
import os
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

# Must run before the checkup imports so their module loggers inherit it
logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

from checkup.config import Settings  # noqa: E402
from checkup.core import MonitoringService  # noqa: E402
from checkup.storage import Database  # noqa: E402

DEFAULT_PID_FILE = "/tmp/checkup-monitor.pid"


class SingletonError(Exception):
    """Another monitor process holds the PID file lock."""
    pass


@contextmanager
def singleton_lock(pid_file: str = DEFAULT_PID_FILE) -> Generator[None, None, None]:
    """
    Hold an exclusive flock on pid_file for the life of the process.

    Two monitors against one database would probe everything twice and
    race each other on alert creation.

    Raises:
        SingletonError: If the lock is already held
    """
    path = Path(pid_file)
    handle = open(path, "a+")

    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        handle.seek(0)
        holder = handle.read().strip() or "unknown"
        handle.close()
        raise SingletonError(
            f"Another monitor is already running (PID {holder}, lock file {path})"
        )

    handle.seek(0)
    handle.truncate()
    handle.write(str(os.getpid()))
    handle.flush()

    def release() -> None:
        if handle.closed:
            return
        path.unlink(missing_ok=True)
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        handle.close()

    # Also released if the interpreter exits without unwinding the with-block
    atexit.register(release)
    logger.info(f"Holding monitor lock {path} (PID {os.getpid()})")
    try:
        yield
    finally:
        release()
        atexit.unregister(release)


class CheckupApp:
    """
    Process lifecycle.

    Owns the Database and the MonitoringService built on it; start()
    returns once a shutdown signal arrives (or after one pass with
    once=True) and always tears both down.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._running = False
        self._shutdown_event = asyncio.Event()

        self._db: Optional[Database] = None
        self._service: Optional[MonitoringService] = None

    async def start(self, once: bool = False) -> None:
        logger.info("Starting CheckUp monitor")

        self._running = True
        self._shutdown_event.clear()
        self._install_signal_handlers()

        try:
            await self._open_database()
            if self._shutdown_event.is_set():
                logger.info("Shutdown requested before the monitor started")
                return

            self._service = MonitoringService.from_database(self._db, self.settings)

            if once:
                await self._single_pass()
                return

            await self._service.start()
            logger.info("Monitor running; send SIGTERM or press Ctrl+C to stop")
            await self._shutdown_event.wait()

        except Exception as e:
            logger.exception(f"Monitor failed: {e}")
            raise
        finally:
            await self.stop()

    async def _single_pass(self) -> None:
        services = await self._service.health_monitor.run_once() or []
        applications = await self._service.update_checker.run_once() or []
        logger.info(
            f"Single pass done: {len(services)} services, {len(applications)} applications"
        )

    async def stop(self) -> None:
        """Stop the service, then close the pool. Safe to call twice."""
        if not self._running:
            return

        self._running = False
        self._shutdown_event.set()
        logger.info("Stopping CheckUp monitor")

        if self._service is not None:
            try:
                await self._service.stop()
            except Exception as e:
                logger.warning(f"Monitoring service did not stop cleanly: {e}")

        if self._db is not None:
            try:
                await self._db.close()
            except Exception as e:
                logger.warning(f"Database pool did not close cleanly: {e}")

        logger.info("CheckUp monitor stopped")

    async def _open_database(self) -> None:
        self._db = Database(self.settings.database_config())
        await self._db.initialize()
        await self._db.apply_schema()

        if not await self._db.health_check():
            raise RuntimeError("Database health check failed after connecting")
        logger.info("Database ready")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()

        def request_shutdown(signum: int) -> None:
            logger.info(f"Got {signal.Signals(signum).name}, shutting down")
            self._shutdown_event.set()

        for signum in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(signum, request_shutdown, signum)
            except NotImplementedError:
                # No loop signal handlers on Windows; Ctrl+C raises KeyboardInterrupt
                return


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="CheckUp monitoring core",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one health check and one update check, then exit",
    )
    parser.add_argument(
        "--pid-file",
        default=os.environ.get("CHECKUP_PID_FILE", DEFAULT_PID_FILE),
        help=f"Singleton lock file (default: {DEFAULT_PID_FILE})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Takes precedence over LOG_LEVEL",
    )
    return parser.parse_args(argv)


async def main_async(args: argparse.Namespace) -> int:
    settings = Settings()
    logging.getLogger().setLevel((args.log_level or settings.log_level).upper())

    try:
        await CheckupApp(settings).start(once=args.once)
    except Exception as e:
        logger.error(f"Monitor exited with error: {e}")
        return 1
    return 0


def main() -> int:
    args = parse_args()

    try:
        with singleton_lock(args.pid_file):
            try:
                return asyncio.run(main_async(args))
            except KeyboardInterrupt:
                return 0
    except SingletonError as e:
        logger.error(str(e))
        print(f"\n{e}\n", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
