# cryptoledger/domain/results.py
from dataclasses import dataclass, field, KW_ONLY
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import logging

from cryptoledger import config
from cryptoledger.utils.type_utils import format_quantity, format_utc

logger = logging.getLogger(__name__)


@dataclass
class CapitalGainDetail:
    """One credit application against one lot, valued in fiat."""
    currency: str
    account: str
    acquisition_utc: datetime
    realization_utc: datetime
    quantity: Decimal

    purchase_price_each: Decimal
    sale_price_each: Decimal

    total_cost: Decimal
    total_proceeds: Decimal

    profit: Decimal

    _: KW_ONLY
    fiat: str = config.DEFAULT_FIAT_CURRENCY
    fees: Decimal = Decimal(0) # fiat value of sale-side fees, reported but not deducted
    transaction_id: str = ""
    holding_period_days: Optional[int] = None
    is_long_term: bool = False

    def __post_init__(self):
        if not isinstance(self.quantity, Decimal) or self.quantity < Decimal(0):
            raise ValueError(f"CapitalGainDetail.quantity must be a non-negative Decimal, got {self.quantity}")
        for name in ("purchase_price_each", "sale_price_each", "total_cost", "total_proceeds", "profit", "fees"):
            if not isinstance(getattr(self, name), Decimal):
                raise TypeError(f"CapitalGainDetail.{name} must be a Decimal, got {type(getattr(self, name))}")
        if self.realization_utc < self.acquisition_utc:
            logger.warning(f"CapitalGainDetail for {self.currency}: realized {self.realization_utc} before acquired {self.acquisition_utc}")

        if self.holding_period_days is None:
            self.holding_period_days = (self.realization_utc - self.acquisition_utc).days
        self.is_long_term = self.holding_period_days > config.LONG_TERM_HOLDING_DAYS

    def to_object(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "account": self.account,
            "acquired": format_utc(self.acquisition_utc),
            "realized": format_utc(self.realization_utc),
            "quantity": format_quantity(self.quantity),
            "purchasePriceEach": format_quantity(self.purchase_price_each),
            "salePriceEach": format_quantity(self.sale_price_each),
            "cost": format_quantity(self.total_cost),
            "proceeds": format_quantity(self.total_proceeds),
            "profit": format_quantity(self.profit),
            "fees": format_quantity(self.fees),
            "fiat": self.fiat,
            "holdingPeriodDays": self.holding_period_days,
            "longTerm": self.is_long_term,
            "transaction": self.transaction_id,
        }


@dataclass
class CurrencyGainsSubtotal:
    quantity: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    total_proceeds: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")


@dataclass
class CapitalGainsReport:
    fiat: str
    details: List[CapitalGainDetail] = field(default_factory=list)
    total_cost: Decimal = Decimal("0")
    total_proceeds: Decimal = Decimal("0")
    total_profit: Decimal = Decimal("0")
    short_term_profit: Decimal = Decimal("0")
    long_term_profit: Decimal = Decimal("0")
    by_currency: Dict[str, CurrencyGainsSubtotal] = field(default_factory=dict)

    def add(self, detail: CapitalGainDetail) -> None:
        self.details.append(detail)
        self.total_cost += detail.total_cost
        self.total_proceeds += detail.total_proceeds
        self.total_profit += detail.profit
        if detail.is_long_term:
            self.long_term_profit += detail.profit
        else:
            self.short_term_profit += detail.profit
        subtotal = self.by_currency.setdefault(detail.currency, CurrencyGainsSubtotal())
        subtotal.quantity += detail.quantity
        subtotal.total_cost += detail.total_cost
        subtotal.total_proceeds += detail.total_proceeds
        subtotal.profit += detail.profit

    def to_object(self) -> Dict[str, Any]:
        return {
            "fiat": self.fiat,
            "cost": format_quantity(self.total_cost),
            "proceeds": format_quantity(self.total_proceeds),
            "profit": format_quantity(self.total_profit),
            "shortTerm": format_quantity(self.short_term_profit),
            "longTerm": format_quantity(self.long_term_profit),
            "currencies": {
                currency: {
                    "quantity": format_quantity(sub.quantity),
                    "cost": format_quantity(sub.total_cost),
                    "proceeds": format_quantity(sub.total_proceeds),
                    "profit": format_quantity(sub.profit),
                }
                for currency, sub in self.by_currency.items()
            },
            "details": [detail.to_object() for detail in self.details],
        }
