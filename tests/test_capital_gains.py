"""
Test Group: Capital Gains over whole journals

This module runs the YAML journal fixtures end to end against their own
price history:
- gains1: two ETH lots, three partial sales, FIFO and LIFO
- gains2: BTC -> GIN -> BTC with GIN valued through BTC
- gains_fees: acquisition fee amortization and a fee paid in the traded coin
- Reports: totals, per-currency subtotals, date windows
"""

from decimal import Decimal

from cryptoledger.domain.enums import EntryType
from cryptoledger.engine.capital_gains import calculate_capital_gains, make_capital_gains_entries
from tests.support.mock_providers import create_pair_price_provider


def signed(entries):
    return [entry.signed_quantity for entry in entries]


# =============================================================================
# gains1: FIFO vs LIFO
# =============================================================================

class TestGainsFifoLifo:
    """ETH bought at 500 and 550, sold 5 @ 400, 8 @ 600, 2 @ 600."""

    def test_fifo_gain_entries(self, gains1_journal):
        entries = gains1_journal.get_capital_gains()
        assert signed(entries) == [Decimal("-500"), Decimal("500"), Decimal("150"), Decimal("100")]
        assert sum(signed(entries)) == Decimal("250")
        assert all(entry.virtual and entry.currency == "USD" for entry in entries)
        assert all(entry.account == "income:capitalgains" for entry in entries)

    def test_fifo_per_lot(self, gains1_journal):
        lots = gains1_journal.get_lots()
        prices = gains1_journal.pricehistory
        assert signed(lots[0].get_capital_gains(prices)) == [Decimal("-500"), Decimal("500")]
        assert signed(lots[1].get_capital_gains(prices)) == [Decimal("150"), Decimal("100")]

    def test_lifo_gain_entries(self, gains1_journal):
        entries = gains1_journal.get_capital_gains(force=True, lifo=True)
        assert sum(signed(entries)) == Decimal("0")

    def test_loss_entry_is_credit(self, gains1_journal):
        first = gains1_journal.get_capital_gains()[0]
        assert first.type == EntryType.CREDIT
        assert first.quantity == Decimal("500")
        assert first.get_utc() == gains1_journal.transactions[2].utc

    def test_custom_account(self, gains1_journal):
        entries = gains1_journal.get_capital_gains(account="income:trading")
        assert {entry.account for entry in entries} == {"income:trading"}

    def test_unrealized_fifo(self, gains1_journal):
        entries = gains1_journal.get_unrealized_gains("2018-03-01")
        assert len(entries) == 1
        assert entries[0].signed_quantity == Decimal("500")
        assert entries[0].account == "income:unrealized"

    def test_unrealized_lifo(self, gains1_journal):
        entries = gains1_journal.get_unrealized_gains("2018-03-01", force=True, lifo=True)
        assert signed(entries) == [Decimal("750")]

    def test_report(self, gains1_journal):
        report = gains1_journal.get_capital_gains_details()
        assert report.fiat == "USD"
        assert len(report.details) == 4
        assert report.total_profit == Decimal("250")
        assert report.total_cost == Decimal("7750")
        assert report.total_proceeds == Decimal("8000")
        assert report.short_term_profit == Decimal("250")
        assert report.long_term_profit == Decimal("0")
        assert report.by_currency["ETH"].quantity == Decimal("15")

    def test_report_window(self, gains1_journal):
        report = gains1_journal.get_capital_gains_details(start_date="2018-02-05")
        assert report.total_profit == Decimal("750")
        report = gains1_journal.get_capital_gains_details(end_date="2018-02-01")
        assert report.total_profit == Decimal("-500")

    def test_report_to_object(self, gains1_journal):
        work = gains1_journal.get_capital_gains_details().to_object()
        assert work["profit"] == "250.00000000"
        assert work["currencies"]["ETH"]["quantity"] == "15.00000000"
        assert work["details"][0]["salePriceEach"] == "400.00000000"


# =============================================================================
# gains2: translated prices
# =============================================================================

class TestGainsTranslated:
    """GIN is only quoted in BTC; fiat values go through BTC/USD."""

    def test_lot_count(self, gains2_journal):
        lots = gains2_journal.get_lots()
        assert [lot.currency for lot in lots] == ["BTC", "GIN", "BTC"]

    def test_btc_spent_on_gin(self, gains2_journal):
        lot = gains2_journal.get_lots()[0]
        details = lot.get_capital_gains_details(gains2_journal.pricehistory, "USD", ["BTC"])
        assert len(details) == 1
        assert details[0].quantity == Decimal("0.1")
        assert details[0].purchase_price_each == Decimal("10000")
        assert details[0].sale_price_each == Decimal("12000")
        assert details[0].profit == Decimal("200")

    def test_gin_sale(self, gains2_journal):
        lot = gains2_journal.get_lots()[1]
        prices = gains2_journal.pricehistory
        assert lot.get_purchase_price_each(prices, "USD", ["BTC"]) == Decimal("1.2")
        detail = lot.get_capital_gains_details(prices, "USD", ["BTC"])[0]
        assert detail.sale_price_each == Decimal("3.0")
        assert detail.profit == Decimal("900")
        assert lot.get_remaining() == Decimal("500")

    def test_btc_received_for_gin(self, gains2_journal):
        lot = gains2_journal.get_lots()[2]
        assert lot.get_purchase_price_each(gains2_journal.pricehistory, "USD", ["BTC"]) == Decimal("15000")

    def test_journal_gain_entries(self, gains2_journal):
        assert signed(gains2_journal.get_capital_gains()) == [Decimal("200"), Decimal("900")]

    def test_unrealized(self, gains2_journal):
        entries = gains2_journal.get_unrealized_gains("2018-02-01")
        assert signed(entries)[0] == Decimal("9500")
        assert len(entries) == 3


# =============================================================================
# gains_fees: fees in the lot and in the sale
# =============================================================================

class TestGainsWithFees:
    """10 ETH @ 100 + 25 USD fee, then 4 ETH sold @ 150 with a 0.1 ETH fee."""

    def test_purchase_price_includes_fee(self, fees_journal):
        lot = fees_journal.get_lots()[0]
        assert lot.get_purchase_price_each(fees_journal.pricehistory) == Decimal("102.5")

    def test_gains(self, fees_journal):
        assert signed(fees_journal.get_capital_gains()) == [Decimal("190"), Decimal("4.75")]

    def test_remaining_after_fee(self, fees_journal):
        assert fees_journal.get_lots()[0].get_remaining() == Decimal("5.9")

    def test_sale_fee_reported(self, fees_journal):
        details = fees_journal.get_capital_gains_details().details
        assert details[0].fees == Decimal("15")
        assert details[1].fees == Decimal("0")

    def test_unrealized(self, fees_journal):
        assert signed(fees_journal.get_unrealized_gains("2018-03-01")) == [Decimal("575.25")]

    def test_report_amounts_keep_eight_places(self, fees_journal):
        work = fees_journal.get_capital_gains_details().to_object()
        assert work["profit"] == "194.75000000"
        assert work["details"][0]["fees"] == "15.00000000"
        assert work["details"][1]["profit"] == "4.75000000"
        for key in ("cost", "proceeds", "profit", "shortTerm", "longTerm"):
            assert len(work[key].split(".")[1]) == 8
        for key in ("cost", "proceeds", "profit"):
            assert len(work["currencies"]["ETH"][key].split(".")[1]) == 8


# =============================================================================
# Engine functions with an injected provider
# =============================================================================

class TestGainsWithMockProvider:
    """The engine only needs a PriceProvider, not a PriceHistory."""

    def test_calculate_with_schedule(self, staking_journal):
        provider = create_pair_price_provider({
            "ETH/USD": [(staking_journal.transactions[0].utc.date(), Decimal("250"))],
        })
        lots = staking_journal.get_lots()
        report = calculate_capital_gains(lots, provider, "USD")
        # income lot valued at 250 by the provider, sold at 300 by the trade
        assert report.total_profit == Decimal("50")
        assert ("ETH", "USD") in {(base, quote) for _, base, quote in provider.calls}

    def test_entries_with_provider(self, staking_journal):
        provider = create_pair_price_provider({
            "ETH/USD": [(staking_journal.transactions[0].utc.date(), Decimal("350"))],
        })
        entries = make_capital_gains_entries(staking_journal.get_lots(), provider, fiat="USD")
        assert signed(entries) == [Decimal("-50")]
