"""
External Sales Feed Adapter

Fetches the spreadsheet-backed sales feed and turns it into a mapping of
unit number -> SoldUnitInfo. The feed is read-only and only ever used to
mark units sold.

Rows arrive as a bare array or wrapped in {"rows": [...]} / {"data": [...]},
with Arabic or English column names. Each logical field has an ordered
list of candidate keys; the first key holding a non-empty value wins.
"""
import asyncio
import logging
import math
import re
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from inventory_api.lib.clock import utcnow
from inventory_api.lib.config import settings
from inventory_api.lib.errors import FeedUnavailableError
from inventory_api.schemas.sales_feed import FeedSnapshot, SoldUnitInfo

logger = logging.getLogger(__name__)

# Spellings as they appear in the sheet headers, including its typos
# ("لمساحة", "الفىة").
FIELD_KEYS: Dict[str, List[str]] = {
    "unit_number": ["رقم الوحدة", "unitNumber", "unitNo", "unit_number", "unit"],
    "buyer_name": ["اسم المشتري", "buyerName", "buyer_name", "buyer"],
    "buyer_phone": ["رقم الهاتف", "هاتف المشتري", "buyerPhone", "buyer_phone", "phone"],
    "sales_person": ["موظف المبيعات", "salesPerson", "sales_person", "salesEmployee", "sales_employee"],
    "sale_date": ["تاريخ الاستلام", "تاريخ البيع", "saleDate", "sale_date", "deliveryDate"],
    "accountant_name": ["اسم المحاسب", "accountantName", "accountant_name"],
    "area": ["لمساحة", "المساحة", "area", "area_m2"],
    "sale_price": ["سعر البيع", "salePrice", "sale_price"],
    "category": ["الفىة", "الفئة", "category"],
}

NUMERIC_FIELDS = {"area", "sale_price"}

RETRY_STATUS_CODES = {429, 500, 502, 503, 504}

# Arabic-Indic and Persian digits plus Arabic decimal/thousands separators
_DIGIT_TRANSLATION = str.maketrans(
    "٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹٫٬",
    "01234567890123456789.,",
)
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def parse_number(value: Any) -> float:
    """
    Parse a money/number cell.

    Drops thousands separators and reads the first number in the cell,
    ignoring currency and unit markers around it. Returns 0 when there is
    no number; never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).translate(_DIGIT_TRANSLATION).replace(",", "")
        match = _NUMBER.search(text)
        if match is None:
            return 0.0
        number = float(match.group())

    return number if math.isfinite(number) else 0.0


def normalize_unit_number(value: Any) -> str:
    """Unit number as the string key used for matching ("12.0" and 12 both become "12")."""
    if value is None or isinstance(value, bool):
        return ""

    if isinstance(value, float) and value.is_integer():
        return str(int(value))

    text = str(value).translate(_DIGIT_TRANSLATION).strip()
    if re.fullmatch(r"\d+\.0+", text):
        text = text.split(".", 1)[0]
    return text


def pick(row: Dict[str, Any], field: str) -> Any:
    """First non-empty value among the candidate keys for a field."""
    for key in FIELD_KEYS[field]:
        value = row.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def extract_rows(payload: Any) -> List[Dict[str, Any]]:
    """Accept a bare array, {"rows": [...]} or {"data": [...]}."""
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict):
        rows = payload.get("rows") or payload.get("data") or []
    else:
        raise FeedUnavailableError(f"Unexpected feed payload type: {type(payload).__name__}")

    if not isinstance(rows, list):
        raise FeedUnavailableError("Feed rows are not a list")

    return [row for row in rows if isinstance(row, dict)]


def parse_sold_units(payload: Any) -> Dict[str, SoldUnitInfo]:
    """Build the unit number -> SoldUnitInfo map. Later rows win on duplicate unit numbers."""
    sold_units: Dict[str, SoldUnitInfo] = {}

    for row in extract_rows(payload):
        unit_number = normalize_unit_number(pick(row, "unit_number"))
        if not unit_number:
            continue

        values: Dict[str, Any] = {"unit_number": unit_number}
        for field in FIELD_KEYS:
            if field == "unit_number":
                continue
            raw = pick(row, field)
            if field in NUMERIC_FIELDS:
                values[field] = parse_number(raw)
            else:
                values[field] = "" if raw is None else str(raw).strip()

        sold_units[unit_number] = SoldUnitInfo(**values)

    return sold_units


class SalesFeedClient:
    """HTTP client for the sales feed endpoint with bounded retries."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        retry_count: int = 3,
        backoff_seconds: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.retry_count = max(1, retry_count)
        self.backoff_seconds = backoff_seconds
        self.transport = transport
        self._sleep = sleep

    async def _get_json(self) -> Any:
        """
        GET the feed and decode JSON.

        Network errors, timeouts and 429/5xx responses are retried with
        exponential backoff; other HTTP errors and bad JSON fail at once.
        """
        last_error = "Sales feed unavailable"

        for attempt in range(1, self.retry_count + 1):
            start_time = time.time()
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout_seconds,
                    transport=self.transport,
                    follow_redirects=True,
                ) as client:
                    response = await client.get(self.url)

                elapsed_ms = int((time.time() - start_time) * 1000)

                if response.status_code == 200:
                    logger.debug(f"Sales feed responded in {elapsed_ms}ms")
                    try:
                        return response.json()
                    except ValueError as e:
                        raise FeedUnavailableError(f"Sales feed returned invalid JSON: {e}")

                last_error = f"HTTP {response.status_code}: {response.text[:200]}"
                if response.status_code not in RETRY_STATUS_CODES:
                    raise FeedUnavailableError(last_error, status_code=response.status_code)

            except httpx.TimeoutException:
                last_error = "Connection timeout"
            except httpx.TransportError as e:
                last_error = f"Connection error: {e}"

            if attempt < self.retry_count:
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    f"Sales feed attempt {attempt}/{self.retry_count} failed ({last_error}); "
                    f"retrying in {delay:.1f}s"
                )
                await self._sleep(delay)

        raise FeedUnavailableError(f"{last_error} after {self.retry_count} attempt(s)")

    async def fetch_sold_units(self) -> Dict[str, SoldUnitInfo]:
        """Fetch and parse the whole feed. Raises FeedUnavailableError on failure."""
        logger.info("Fetching sold units from sales feed")
        payload = await self._get_json()
        sold_units = parse_sold_units(payload)
        logger.info(f"Sales feed returned {len(sold_units)} sold unit(s)")
        return sold_units


class SalesFeedService:
    """
    Holds the latest feed snapshot.

    Each fetch attempt, successful or not, is reused for cache_seconds. A
    failed fetch never downgrades known sales: the previous good snapshot
    is returned marked stale, or an empty unavailable snapshot when nothing
    ever loaded.

    Reads never sit through a refetch once a snapshot exists. An expired
    snapshot is served as is while one background task refetches it.
    Before the first snapshot, a read waits at most wait_seconds.
    """

    def __init__(
        self,
        client: Optional[SalesFeedClient],
        cache_seconds: float = 60,
        wait_seconds: float = 2.0,
    ):
        self.client = client
        self.cache_seconds = cache_seconds
        self.wait_seconds = wait_seconds
        self._snapshot: Optional[FeedSnapshot] = None
        # Set after every fetch attempt, successful or not
        self._attempted_at: Optional[float] = None
        self._last_error: Optional[str] = None
        self._lock = asyncio.Lock()
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self.client is not None

    @property
    def refresh_task(self) -> Optional[asyncio.Task]:
        """Background refetch still in flight, if any."""
        if self._refresh_task is None or self._refresh_task.done():
            return None
        return self._refresh_task

    def _is_fresh(self) -> bool:
        return (
            self._attempted_at is not None
            and time.monotonic() - self._attempted_at < self.cache_seconds
        )

    def current(self) -> FeedSnapshot:
        """Latest known snapshot without fetching."""
        if not self.enabled:
            return FeedSnapshot(enabled=False, error="Sales feed not configured")

        if self._snapshot is None:
            error = self._last_error
            if error is None and self.refresh_task is not None:
                error = "Sales feed still loading"
            return FeedSnapshot(error=error)

        if self._last_error:
            return self._snapshot.model_copy(update={"stale": True, "error": self._last_error})

        return self._snapshot

    async def _refresh(self, force: bool = False) -> FeedSnapshot:
        async with self._lock:
            # Another caller may have refreshed while we waited
            if not force and self._is_fresh():
                return self.current()

            try:
                sold_units = await self.client.fetch_sold_units()
            except FeedUnavailableError as e:
                self._attempted_at = time.monotonic()
                self._last_error = e.message
                logger.error(f"Sales feed fetch failed: {e.message}")
                if self._snapshot is not None:
                    logger.warning(
                        f"Serving last good sales feed snapshot from "
                        f"{self._snapshot.fetched_at.isoformat()}"
                    )
                return self.current()

            self._snapshot = FeedSnapshot(sold_units=sold_units, fetched_at=utcnow())
            self._attempted_at = time.monotonic()
            self._last_error = None
            return self._snapshot

    def _start_refresh(self) -> asyncio.Task:
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._refresh())
            self._refresh_task.add_done_callback(self._log_refresh_failure)
        return self._refresh_task

    @staticmethod
    def _log_refresh_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background sales feed refresh crashed: {error!r}")

    async def get_snapshot(self, force: bool = False) -> FeedSnapshot:
        """
        Return the cached snapshot.

        force waits for a refetch. Otherwise an expired snapshot is served
        immediately and refetched in the background.
        """
        if not self.enabled:
            return self.current()

        if force:
            return await self._refresh(force=True)

        if self._is_fresh():
            return self.current()

        task = self._start_refresh()
        if self._snapshot is not None:
            return self.current()

        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=self.wait_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Sales feed gave no answer within {self.wait_seconds}s; "
                f"continuing without it"
            )
            return self.current()

    async def fetch_sold_units(self) -> Dict[str, SoldUnitInfo]:
        """Sold units from the latest snapshot; empty when the feed is unavailable."""
        return (await self.get_snapshot()).sold_units

    async def aclose(self) -> None:
        """Cancel a background refetch still in flight."""
        task = self.refresh_task
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)


def build_sales_feed_service() -> SalesFeedService:
    client = None
    if settings.sales_feed_enabled:
        client = SalesFeedClient(
            url=settings.sales_feed_url,
            timeout_seconds=settings.sales_feed_timeout_seconds,
            retry_count=settings.sales_feed_retry_count,
            backoff_seconds=settings.sales_feed_retry_backoff_seconds,
        )
    return SalesFeedService(
        client,
        cache_seconds=settings.sales_feed_cache_seconds,
        wait_seconds=settings.sales_feed_wait_seconds,
    )
