# cryptoledger/utils/price_history.py
import bisect
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from cryptoledger import config
from cryptoledger.domain.errors import EmptyError, NotFoundError, OutOfRangeError
from cryptoledger.domain.pair_price import PairPrice
from cryptoledger.utils.type_utils import average_dates, format_day, format_utc, parse_utc

logger = logging.getLogger(__name__)

RawPrice = Union[str, Dict[str, Any], PairPrice]


class PriceProvider:
    """
    Abstract base class for price sources.
    Defines the interface the lot and gains calculations consume.
    """
    def find_price(self, utc: Any, base: str, quote: str,
                   trans_currencies: Optional[Sequence[str]] = None,
                   within: Optional[float] = None) -> PairPrice:
        """
        Gets the rate of one `base` in `quote` units nearest to `utc`.
        Raises NotFoundError when no price can be found or derived and
        OutOfRangeError when the nearest price is farther than `within` seconds.
        """
        raise NotImplementedError("Subclasses must implement find_price")


class CurrencyPrices:
    """Date-sorted price series for a single pair."""
    def __init__(self, pair: str, prices: Iterable[PairPrice] = ()):
        self.pair = pair
        self.prices: List[PairPrice] = []
        for price in prices:
            self.insert(price)

    def __len__(self) -> int:
        return len(self.prices)

    def __iter__(self):
        return iter(self.prices)

    def insert(self, price: PairPrice) -> None:
        if price.pair != self.pair:
            raise ValueError(f"Cannot add {price.pair} price to {self.pair} series")
        bisect.insort_right(self.prices, price, key=lambda p: p.sort_key())

    def find_nearest(self, utc: Any, within: Optional[float] = None) -> PairPrice:
        """
        Binary search for the price closest to `utc`. The minimum distance is
        tracked over every probed element, since the closest price is not
        necessarily the last midpoint. `within` is in seconds.
        """
        if not self.prices:
            raise EmptyError(f"No prices for {self.pair}")
        target = parse_utc(utc)
        lo, hi = 0, len(self.prices) - 1
        best: Optional[PairPrice] = None
        best_diff: Optional[float] = None
        while lo <= hi:
            mid = (lo + hi) // 2
            price = self.prices[mid]
            diff = abs((price.utc - target).total_seconds())
            if best_diff is None or diff < best_diff:
                best, best_diff = price, diff
            if price.utc < target:
                lo = mid + 1
            elif price.utc > target:
                hi = mid - 1
            else:
                break

        if within is not None and best_diff > within:
            raise OutOfRangeError(
                f"Nearest {self.pair} price to {format_utc(target)} is {best_diff:.0f}s away, limit {within}s",
                detail=best)
        return best

    def search(self, utc: Any) -> PairPrice:
        """Exact-instant lookup."""
        target = parse_utc(utc)
        keys = [price.utc for price in self.prices]
        ix = bisect.bisect_left(keys, target)
        if ix < len(keys) and keys[ix] == target:
            return self.prices[ix]
        raise NotFoundError(f"No {self.pair} price at {format_utc(target)}")

    def on_day(self, utc: Any) -> List[PairPrice]:
        day = format_day(parse_utc(utc))
        return [price for price in self.prices if format_day(price.utc) == day]

    def to_object(self) -> List[Dict[str, Any]]:
        return [price.to_object() for price in self.prices]


class PriceHistory(PriceProvider):
    """
    Per-pair price series with nearest-date lookup, inversion and
    translation through intermediate currencies.
    """
    def __init__(self, prices: Union[Iterable[RawPrice], Dict[str, RawPrice], None] = None):
        self.pairs: Dict[str, CurrencyPrices] = {}
        if prices:
            self.add_prices(prices)

    @staticmethod
    def find_gaps(collection: Sequence[Any]) -> List[datetime]:
        """
        Missing calendar days between consecutive items of a date-sorted
        collection of prices (anything with a `utc`).
        """
        gaps: List[datetime] = []
        if not collection:
            return gaps
        current = parse_utc(format_day(collection[0].utc))
        for record in collection[1:]:
            record_day = format_day(record.utc)
            current += timedelta(days=1)
            while format_day(current) < record_day:
                gaps.append(current)
                current += timedelta(days=1)
            current = parse_utc(record_day)
        return gaps

    def add_price(self, raw: RawPrice) -> PairPrice:
        price = PairPrice.make(raw)
        series = self.pairs.get(price.pair)
        if series is None:
            series = self.pairs[price.pair] = CurrencyPrices(price.pair)
        series.insert(price)
        return price

    def add_prices(self, prices: Union[Iterable[RawPrice], Dict[str, RawPrice]]) -> None:
        values = prices.values() if isinstance(prices, dict) else prices
        count = 0
        for raw in values:
            self.add_price(raw)
            count += 1
        logger.debug(f"Added {count} prices, {len(self.pairs)} pairs known")

    def get_pair(self, base: str, quote: str) -> CurrencyPrices:
        series = self.pairs.get(f"{base}/{quote}")
        if series is None:
            raise NotFoundError(f"{base}/{quote}")
        return series

    def has_pair(self, base: str, quote: str) -> int:
        """1 if present, -1 if only the inverse is present, 0 otherwise."""
        if base == quote:
            return 0
        if self.pairs.get(f"{base}/{quote}"):
            return 1
        if self.pairs.get(f"{quote}/{base}"):
            return -1
        return 0

    def has_day_price(self, base: str, quote: str, utc: Any) -> int:
        """Same convention as has_pair, restricted to the UTC day of `utc`."""
        status = self.has_pair(base, quote)
        if status == 1 and self.get_pair(base, quote).on_day(utc):
            return 1
        if status != 0 and self.pairs.get(f"{quote}/{base}") and self.get_pair(quote, base).on_day(utc):
            return -1
        return 0

    def has_translated_day_price(self, base: str, quote: str, utc: Any, translations: Iterable[str]) -> Optional[str]:
        """The first translation currency with same-day prices for both hops, or None."""
        for xlate in translations:
            if self.has_day_price(base, xlate, utc) and self.has_day_price(xlate, quote, utc):
                return xlate
        return None

    def find_price(self, utc: Any, base: str, quote: str,
                   trans_currencies: Optional[Sequence[str]] = None,
                   within: Optional[float] = None) -> PairPrice:
        target = parse_utc(utc)
        if base == quote:
            return PairPrice(utc=target, base=base, quote=quote, rate=Decimal(1))
        if trans_currencies is None:
            trans_currencies = config.DEFAULT_TRANSLATION_CURRENCIES

        status = self.has_pair(base, quote)
        if status == 0:
            return self.derive_price(target, base, quote, trans_currencies, within)

        series = self.get_pair(base, quote) if status == 1 else self.get_pair(quote, base)
        try:
            best = series.find_nearest(target, within)
        except OutOfRangeError as distance_error:
            logger.debug(f"{distance_error}, attempting to derive {base}/{quote}")
            try:
                return self.derive_price(target, base, quote, trans_currencies, within)
            except NotFoundError:
                raise distance_error

        return best if status == 1 else best.invert()

    def derive_price(self, utc: Any, base: str, quote: str,
                     trans_currencies: Optional[Sequence[str]] = None,
                     within: Optional[float] = None) -> PairPrice:
        """
        Two-hop price base/X * X/quote through the first translation
        currency X that has both hops in range. The result records the hops
        in `translation_chain`.
        """
        target = parse_utc(utc)
        for xlate in trans_currencies or ():
            if xlate in (base, quote):
                continue
            if self.has_pair(base, xlate) == 0 or self.has_pair(xlate, quote) == 0:
                continue
            try:
                first = self.find_price(target, base, xlate, (), within)
                second = self.find_price(target, xlate, quote, (), within)
            except (NotFoundError, OutOfRangeError, EmptyError) as e:
                logger.debug(f"Cannot translate {base}/{quote} via {xlate}: {e}")
                continue
            price = PairPrice(
                utc=average_dates(first.utc, second.utc),
                base=base,
                quote=quote,
                rate=first.rate * second.rate,
            )
            return price.with_chain((first, second))

        logger.debug(f"Cannot find price for {base}/{quote} on {format_utc(target)}")
        raise NotFoundError(f"{base}/{quote}", detail={"utc": format_utc(target), "translations": list(trans_currencies or ())})

    def find_missing_dates_in_journal(self, journal: Any, fiat_currency: Optional[str] = None) -> Dict[str, Any]:
        """
        Every (currency/fiat, day) a journal's transactions need a price for
        that neither a direct nor a translated same-day price covers.
        """
        need, translate = 1, 2
        fiat = fiat_currency or journal.get_fiat_default().id
        translations = [currency.id for currency in journal.get_translation_currencies()]

        dates_needed: Dict[str, int] = {}
        for transaction in journal.transactions:
            day = format_day(transaction.utc)
            for entry in transaction:
                if entry.currency != fiat:
                    status = need if entry.currency in translations else translate
                    dates_needed[f"{entry.currency}/{fiat}@{day}"] = status

        missing_keys = []
        for key, status in dates_needed.items():
            symbol, day = key.split("@")
            base, quote = symbol.split("/")
            if self.has_day_price(base, quote, day):
                continue
            if status == translate and self.has_translated_day_price(base, quote, day, translations):
                continue
            missing_keys.append(key)

        missing_keys.sort()
        return {
            "fiat": fiat,
            "translations": translations,
            "is_empty": not missing_keys,
            "missing": [{"pair": key.split("@")[0], "utc": parse_utc(key.split("@")[1])} for key in missing_keys],
        }

    def to_object(self) -> Dict[str, List[Dict[str, Any]]]:
        return {pair: series.to_object() for pair, series in self.pairs.items()}
