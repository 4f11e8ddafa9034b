import logging
from datetime import date, datetime
from typing import Callable, Optional

from flowstate.budget import default_service, derive_budget, period_summary
from flowstate.config import Settings, configure_logging, load_settings
from flowstate.domain import BudgetView, MonthlyRecord
from flowstate.events import STORE_CHANGED, invalidate_handler
from flowstate.memo import budget_for_day, cached_budget
from flowstate.services import EntryService
from flowstate.storage import JsonFileStorage, SnapshotStorage
from flowstate.store import RecordStore

logger = logging.getLogger(__name__)


class FlowStateApp:
    """Wires the store, its input boundary and the memoised budget view."""

    def __init__(self, store: RecordStore, settings: Optional[Settings] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.settings = settings
        self._clock = clock
        self.entries = EntryService(store, clock)
        store.bus.subscribe(STORE_CHANGED, invalidate_handler(budget_for_day.cache_clear))

    def budget(self, now: Optional[date | datetime] = None) -> BudgetView:
        return cached_budget(self.store.snapshot, now or self._clock())

    def budget_report(self, now: Optional[datetime] = None) -> dict:
        """Uncached derivation with every intermediate step, for inspection."""
        return default_service().run(self.store.snapshot, now or self._clock())

    def close_period(self, now: Optional[datetime] = None) -> MonthlyRecord:
        now = now or self._clock()
        view = derive_budget(self.store.snapshot, now)
        record = self.store.add_monthly_record(**period_summary(view, now))
        logger.info("closed period %s, saved %.2f", record.month, record.saved_amount)
        return record


def build_app(settings: Optional[Settings] = None, storage: Optional[SnapshotStorage] = None,
              clock: Callable[[], datetime] = datetime.now) -> FlowStateApp:
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    if storage is None:
        storage = JsonFileStorage(settings.storage_path, settings.storage_key)
    store = RecordStore(storage=storage)
    return FlowStateApp(store, settings, clock)
