"""
Error taxonomy for data collection, persistence and scheduled jobs
"""
from typing import List, Optional


class NHLShotsError(Exception):
    """Base class for service errors"""


class TransportError(NHLShotsError):
    """Upstream HTTP or network failure (including timeouts and non-2xx responses)"""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class DecodeError(NHLShotsError):
    """Upstream payload could not be decoded into domain structures"""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class PlayerFetchError(NHLShotsError):
    """One or more roster/player fetches failed during a fan-out"""

    def __init__(self, game_id: int, errors: List[Exception]):
        self.game_id = game_id
        self.errors = list(errors)
        summary = "; ".join(str(e) for e in self.errors[:3])
        if len(self.errors) > 3:
            summary += f" (+{len(self.errors) - 3} more)"
        super().__init__(f"{len(self.errors)} fetch error(s) for game {game_id}: {summary}")


class PersistenceError(NHLShotsError):
    """A prediction batch could not be written and was rolled back"""


class JobFailure(NHLShotsError):
    """A scheduled job run failed and should be retried"""
