"""
Product catalog with time-based revalidation.

Products are fetched from the billing provider and reused until the
revalidation interval elapses. A failed refresh serves the previous
snapshot when one exists and is retried after RETRY_AFTER_FAILURE_SECONDS.
"""
import logging
import threading
import time
from typing import Callable, List, Optional

from saaskit.core.errors import UpstreamError
from saaskit.features.billing.provider import BillingProvider
from saaskit.models.catalog import Product

logger = logging.getLogger("saaskit")

# After a failed refresh, wait this long before asking the billing provider again
RETRY_AFTER_FAILURE_SECONDS = 60


class CatalogService:
    def __init__(
        self,
        billing: BillingProvider,
        revalidate_seconds: int = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.billing = billing
        self.revalidate_seconds = revalidate_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._products: Optional[List[Product]] = None
        self._fetched_at: Optional[float] = None

    def _is_fresh(self) -> bool:
        if self._products is None or self._fetched_at is None:
            return False
        return (self._clock() - self._fetched_at) < self.revalidate_seconds

    def get_products(self) -> List[Product]:
        with self._lock:
            if self._is_fresh():
                return self._products
            try:
                products = self.billing.list_active_products()
            except UpstreamError as e:
                if self._products is not None:
                    self._back_off()
                    logger.warning(f"[catalog] refresh failed, serving stale catalog: {e.message}")
                    return self._products
                raise
            self._products = products
            self._fetched_at = self._clock()
            logger.info(f"[catalog] refreshed {len(products)} products")
            return products

    def _back_off(self) -> None:
        retry_in = min(RETRY_AFTER_FAILURE_SECONDS, self.revalidate_seconds)
        self._fetched_at = self._clock() - self.revalidate_seconds + retry_in

    def invalidate(self) -> None:
        with self._lock:
            self._products = None
            self._fetched_at = None
