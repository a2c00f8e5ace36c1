"""
Persistence Gateway - best-effort transcript forwarding.

Sends PersistedRecord payloads to the ``/api/sheets`` endpoint. Nothing
here raises to the caller or retries: a failed save is printed and
dropped. Several rows per session are expected (auto-saves, the final
save, an abrupt-exit beacon) and are told apart by timestamp and exit
mode.
"""

import threading
import time
from enum import Enum
from typing import List, Optional

import requests

from ..errors import PersistenceError


class ExitMode(str, Enum):
    """Why a persistence call happened."""
    NORMAL = "normal"
    AUTO_SAVE = "auto_save"
    ABRUPT = "abrupt"


def build_record(
    conversation: List[dict],
    session_id: str,
    session_duration: int,
    exit_mode: ExitMode = ExitMode.NORMAL
) -> dict:
    """Serialize a transcript into the persistence endpoint's body."""
    latest = conversation[-1]["content"] if conversation else ""
    return {
        "conversation": conversation,
        "latestResponse": latest,
        "sessionDuration": session_duration,
        "sessionId": session_id,
        "isAbruptExit": exit_mode == ExitMode.ABRUPT,
        "isAutoSave": exit_mode == ExitMode.AUTO_SAVE,
    }


class PersistenceGateway:
    """Fire-and-forget client for ``POST {server_url}/api/sheets``."""

    BEACON_TIMEOUT = 5.0

    def __init__(
        self,
        server_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0
    ):
        self.url = f"{server_url.rstrip('/')}/api/sheets"
        self._session = session or requests.Session()
        self.timeout = timeout
        self._beacons: List[threading.Thread] = []
        self._beacons_lock = threading.Lock()

    def save(self, record: dict, timeout: Optional[float] = None) -> bool:
        """
        Post one record and wait for the answer.

        Returns:
            True if the backend acknowledged the row, False otherwise
        """
        return self._post(self._session.post, record, timeout or self.timeout)

    def _post(self, post, record: dict, timeout: float) -> bool:
        try:
            response = post(self.url, json=record, timeout=timeout)
            if response.status_code != 200:
                raise PersistenceError(
                    "Failed to save to Google Sheets",
                    details=f"HTTP {response.status_code}"
                )
            return True
        except (requests.RequestException, PersistenceError) as e:
            print(f"Warning: could not save conversation: {e}")
            return False

    def _deliver_beacon(self, record: dict) -> bool:
        # requests.Session is not shared across threads; beacons post on their own
        return self._post(requests.post, record, self.BEACON_TIMEOUT)

    def send_beacon(self, record: dict) -> threading.Thread:
        """
        Queue a save without waiting for it.

        Used where nothing can await the response. Call ``flush`` before
        the process exits or the beacon dies with it.
        """
        thread = threading.Thread(
            target=self._deliver_beacon,
            args=(record,),
            daemon=True
        )
        with self._beacons_lock:
            self._beacons = [t for t in self._beacons if t.is_alive()]
            self._beacons.append(thread)
        thread.start()
        return thread

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for queued beacons to finish, at most ``timeout`` seconds in total.

        Returns:
            True if no beacon is still in flight
        """
        deadline = time.monotonic() + (self.BEACON_TIMEOUT if timeout is None else timeout)
        with self._beacons_lock:
            pending, self._beacons = self._beacons, []

        for thread in pending:
            thread.join(max(deadline - time.monotonic(), 0))

        still_running = [t for t in pending if t.is_alive()]
        if still_running:
            print(f"Warning: {len(still_running)} save(s) still in flight at exit")
            with self._beacons_lock:
                self._beacons.extend(still_running)
        return not still_running
