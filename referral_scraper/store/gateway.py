"""Deduplicating persistence gateway for extracted records."""
import logging
from datetime import datetime
from typing import Callable, Optional

from referral_scraper.errors import DuplicateConflict, ValidationFailure
from referral_scraper.models import ExtractedRecord, as_utc, utcnow
from referral_scraper.store.referrals import ReferralStore

logger = logging.getLogger(__name__)


def validate_record(record: Optional[ExtractedRecord]) -> None:
    """Raise ValidationFailure unless the record can be persisted."""
    if record is None:
        raise ValidationFailure("No record")
    if not record.brand:
        raise ValidationFailure("Brand name is required")
    if not record.code and not record.link:
        raise ValidationFailure("Either code or link must be provided")
    if record.expiration_date is None:
        raise ValidationFailure("Valid expiration date is required")


class PersistenceGateway:
    """Saves extracted records, skipping duplicates of (brand, code or link).

    The duplicate lookup before insert is best effort; the store's unique
    index on (brand, code, link) is what actually prevents duplicates when
    another writer inserts between the check and the insert.
    """

    def __init__(self, store: ReferralStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self._clock = clock
        self.duplicates = 0
        self.rejected = 0

    async def save(self, record: Optional[ExtractedRecord]) -> bool:
        """Insert the record. Returns True only when a new row was written."""
        try:
            validate_record(record)
        except ValidationFailure as e:
            self.rejected += 1
            logger.debug(f"Rejected record {getattr(record, 'source_id', None)}: {e}")
            return False

        try:
            existing = await self.store.find_duplicate(record.brand, record.code, record.link)
            if existing:
                self.duplicates += 1
                logger.info(f"Skipping duplicate referral for {record.brand}")
                return False

            await self.store.insert(
                brand=record.brand,
                code=record.code,
                link=record.link,
                tags=record.tags,
                post_date=record.post_date,
                expiration_date=as_utc(record.expiration_date),
                is_valid=True,
                last_validated=self._clock(),
            )
        except DuplicateConflict:
            self.duplicates += 1
            logger.info(f"Skipping duplicate referral for {record.brand} (constraint)")
            return False
        except ValidationFailure as e:
            self.rejected += 1
            logger.warning(f"Store rejected referral for {record.brand}: {e}")
            return False
        except Exception as e:
            logger.error(f"Error saving referral to database: {e}")
            return False

        logger.info(f"Saved referral for {record.brand}")
        return True
