from datetime import UTC, datetime
from decimal import Decimal

import pytest

from application.services.conversion_service import ConversionEngine
from domain.exceptions.currency import InvalidAmountError, InvalidCurrencyError, RateStateError
from domain.models.currency import ConversionState, Rate, RateSnapshot

USD = Rate("USD", Decimal("1.0"))
EGP = Rate("EGP", Decimal("16.0"))
JPY = Rate("JPY", Decimal("115.7"))
KWD = Rate("KWD", Decimal("0.3"))


@pytest.fixture
def engine():
    return ConversionEngine()


@pytest.fixture
def state(engine, usd_snapshot):
    return engine.update_with_snapshot(ConversionState(), usd_snapshot)


class TestRebuild:

    def test_basis_first_then_alphabetical_with_prefix_stripped(self, engine, usd_snapshot):
        rates = engine.rebuild(usd_snapshot)

        assert rates == [USD, EGP, JPY, KWD]

    def test_basis_rate_is_one(self, engine, usd_snapshot):
        basis = engine.rebuild(usd_snapshot)[0]

        assert basis.currency_code == "USD"
        assert basis.rate_relative_to_basis == Decimal("1")

    def test_non_prefixed_codes_are_kept(self, engine):
        snapshot = RateSnapshot(
            observed_at=datetime(2026, 1, 1, tzinfo=UTC),
            basis_currency="USD",
            quotes={"JPY": Decimal("115.7")},
        )

        assert engine.rebuild(snapshot) == [USD, JPY]

    def test_sort_is_case_sensitive(self, engine):
        snapshot = RateSnapshot(
            observed_at=datetime(2026, 1, 1, tzinfo=UTC),
            basis_currency="EUR",
            quotes={"EURjpy": Decimal("130"), "EURUSD": Decimal("1.1"), "EURAUD": Decimal("1.6")},
        )

        codes = [r.currency_code for r in engine.rebuild(snapshot)]

        assert codes == ["EUR", "AUD", "USD", "jpy"]

    def test_empty_quotes_yield_only_basis(self, engine):
        snapshot = RateSnapshot(observed_at=datetime(2026, 1, 1, tzinfo=UTC), basis_currency="USD", quotes={})

        assert engine.rebuild(snapshot) == [USD]

    def test_update_keeps_amount(self, engine, usd_snapshot):
        state = ConversionState(amount_to_convert=Decimal("5"))

        updated = engine.update_with_snapshot(state, usd_snapshot)

        assert updated.amount_to_convert == Decimal("5")
        assert updated.basis == USD


class TestChangeBasis:

    def test_same_basis_is_noop(self, engine, state):
        assert engine.change_basis(state, "USD") is state

    def test_move_to_front_is_stable(self, engine, state):
        state = engine.change_basis(state, "KWD")
        assert state.basis == KWD
        assert state.rates_to_convert == (USD, EGP, JPY)

        state = engine.change_basis(state, "JPY")
        assert state.basis == JPY
        assert state.rates_to_convert == (KWD, USD, EGP)

        state = engine.change_basis(state, "EGP")
        assert state.basis == EGP
        assert state.rates_to_convert == (JPY, KWD, USD)

        state = engine.change_basis(state, "USD")
        assert state.basis == USD
        assert state.rates_to_convert == (EGP, JPY, KWD)

    def test_rate_values_are_never_recomputed(self, engine, state):
        changed = engine.change_basis(state, "JPY")

        assert sorted(changed.ordered_rates, key=lambda r: r.currency_code) == \
            sorted(state.ordered_rates, key=lambda r: r.currency_code)

    def test_unknown_currency_is_rejected(self, engine, state):
        with pytest.raises(InvalidCurrencyError):
            engine.change_basis(state, "GBP")


class TestConvertedAmount:

    def test_from_original_basis(self, engine, state):
        amount = Decimal("1.0")

        assert engine.converted_amount(state, amount, "EGP") == amount * EGP.rate_relative_to_basis / USD.rate_relative_to_basis
        assert engine.converted_amount(state, amount, "JPY") == Decimal("115.7")
        assert engine.converted_amount(state, amount, "KWD") == Decimal("0.3")

    def test_after_basis_change(self, engine, state):
        state = engine.change_basis(state, "KWD")
        amount = Decimal("1.0")

        assert engine.converted_amount(state, amount, "USD") == amount * USD.rate_relative_to_basis / KWD.rate_relative_to_basis
        assert engine.converted_amount(state, amount, "EGP") == amount * EGP.rate_relative_to_basis / KWD.rate_relative_to_basis
        assert engine.converted_amount(state, amount, "JPY") == amount * JPY.rate_relative_to_basis / KWD.rate_relative_to_basis

    @pytest.mark.parametrize("first,second", [
        ("USD", "JPY"),
        ("EGP", "KWD"),
        ("JPY", "EGP"),
        ("KWD", "USD"),
    ])
    def test_round_trip_is_basis_invariant(self, engine, state, first, second):
        amount = Decimal("1")

        forward = engine.converted_amount(engine.change_basis(state, first), amount, second)
        backward = engine.converted_amount(engine.change_basis(state, second), amount, first)

        assert float(forward * backward) == pytest.approx(1.0)

    def test_empty_rates_violate_invariant(self, engine):
        with pytest.raises(RateStateError):
            engine.converted_amount(ConversionState(), Decimal("1"), "JPY")

    def test_unknown_target(self, engine, state):
        with pytest.raises(InvalidCurrencyError):
            engine.converted_amount(state, Decimal("1"), "GBP")

    def test_converted_amounts_skips_basis(self, engine, state):
        state = engine.apply_amount(state, "2")

        results = engine.converted_amounts(state)

        assert [rate for rate, _ in results] == [EGP, JPY, KWD]
        assert [amount for _, amount in results] == [Decimal("32.0"), Decimal("231.4"), Decimal("0.6")]


class TestSetAmount:

    @pytest.mark.parametrize("raw,expected", [
        ("", Decimal("0")),
        ("1.0", Decimal("1.0")),
        ("1.", Decimal("1")),
        (".5", Decimal("0.5")),
        ("250", Decimal("250")),
    ])
    def test_valid_input(self, engine, raw, expected):
        assert engine.set_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["0..0", "1.2.3", "abc", "-1", "1e5", "NaN", "Infinity", " 1", "1,5", "1\n"])
    def test_malformed_input_is_rejected(self, engine, raw):
        with pytest.raises(InvalidAmountError):
            engine.set_amount(raw)

    def test_apply_amount_keeps_prior_value_on_bad_input(self, engine):
        state = engine.apply_amount(ConversionState(), "1.0")
        assert state.amount_to_convert == Decimal("1.0")

        state = engine.apply_amount(state, "0..0")
        assert state.amount_to_convert == Decimal("1.0")
        assert state.input_error

        state = engine.apply_amount(state, "")
        assert state.amount_to_convert == Decimal("0")
        assert state.input_error == ""


class TestMoveAndSearch:

    def test_move_to_front_changes_basis(self, engine, state):
        moved = engine.move(state, 3, 0)

        assert moved.ordered_rates == (KWD, USD, EGP, JPY)

    def test_move_within_list(self, engine, state):
        moved = engine.move(state, 1, 3)

        assert moved.ordered_rates == (USD, JPY, KWD, EGP)

    def test_out_of_range_move_is_ignored(self, engine, state):
        assert engine.move(state, 7, 0) is state

    def test_search_is_case_insensitive_and_excludes_basis(self, engine, state):
        assert engine.search(state, "p") == [EGP, JPY]
        assert engine.search(state, "usd") == []
        assert engine.search(state, "") == [EGP, JPY, KWD]
