"""
Reference Number Generator

Issues human-traceable transaction references of the form
``TXN`` + ``YYYYMMDD`` + 6-digit daily sequence, e.g. ``TXN20260115000001``.

One counter row per calendar date holds the last issued sequence. The
read-increment-write on that row is serialized per date and runs inside a
storage atomic unit, so a reference allocated inside a posting is rolled
back together with the posting.
"""

from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo
import re

from .storage import StorageInterface
from .locks import KeyedLock, sequence_key
from .exceptions import BankingError, ReferenceGenerationFailed
from .logging_config import get_logger

MAX_DAILY_SEQUENCE = 999_999

REFERENCE_PATTERN = re.compile(r"^(?P<prefix>[A-Z]+)(?P<date>\d{8})(?P<sequence>\d{6})$")


def parse_reference(reference_number: str) -> Optional[dict]:
    """Split a reference into prefix, date and integer sequence"""
    match = REFERENCE_PATTERN.match(reference_number or "")
    if not match:
        return None
    return {
        "prefix": match.group("prefix"),
        "date": match.group("date"),
        "sequence": int(match.group("sequence")),
    }


class ReferenceNumberGenerator:
    """Per-day monotonically increasing reference numbers"""

    def __init__(
        self,
        storage: StorageInterface,
        locks: Optional[KeyedLock] = None,
        prefix: str = "TXN",
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.storage = storage
        self.locks = locks or KeyedLock()
        self.prefix = prefix
        self.tz = tz or timezone.utc
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.table_name = "daily_sequence_counters"
        self.logger = get_logger("secbank.references")

    @classmethod
    def for_timezone(cls, storage: StorageInterface, locks: KeyedLock,
                     prefix: str, tz_name: str) -> 'ReferenceNumberGenerator':
        """Build a generator whose dates follow the named IANA timezone"""
        tz = timezone.utc if tz_name.upper() == "UTC" else ZoneInfo(tz_name)
        return cls(storage, locks=locks, prefix=prefix, tz=tz)

    def today(self) -> str:
        """Current business date as YYYYMMDD"""
        return self._clock().astimezone(self.tz).strftime("%Y%m%d")

    def next_reference(self) -> str:
        """
        Allocate the next reference number for today

        Raises:
            ReferenceGenerationFailed: If the daily sequence is exhausted or
                the counter row cannot be updated
        """
        date_str = self.today()

        # Lock order is storage unit first, then the date key
        try:
            with self.storage.atomic(), self.locks.hold(sequence_key(date_str)):
                counter = self.storage.load(self.table_name, date_str)
                sequence = counter['last_sequence'] + 1 if counter else 1

                if sequence > MAX_DAILY_SEQUENCE:
                    raise ReferenceGenerationFailed(
                        f"Daily reference sequence exhausted for {date_str}"
                    )

                self.storage.save(self.table_name, date_str, {
                    "id": date_str,
                    "date": date_str,
                    "last_sequence": sequence,
                })
        except BankingError:
            raise
        except Exception as e:
            self.logger.error(f"Reference counter update failed for {date_str}: {e}")
            raise ReferenceGenerationFailed(f"Could not allocate reference number: {e}") from e

        reference = f"{self.prefix}{date_str}{sequence:06d}"
        self.logger.debug(f"Allocated reference {reference}")
        return reference

    def peek(self, date_str: Optional[str] = None) -> int:
        """Last issued sequence for a date (0 if none issued)"""
        counter = self.storage.load(self.table_name, date_str or self.today())
        return counter['last_sequence'] if counter else 0
