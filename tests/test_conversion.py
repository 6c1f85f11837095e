import pytest

from conftest import FrozenClock, utc
from toolrouter.core.errors import CurrencyNotFoundError, RatesUnavailableError
from toolrouter.services.rates.conversion import CurrencyConverter
from toolrouter.services.rates.sync import ForexSyncService


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(utc(2026, 3, 10, 22, 6))


@pytest.fixture
def converter(provider, store, telemetry, clock) -> CurrencyConverter:
    ForexSyncService(provider, store, telemetry, clock=clock).sync()
    telemetry.events.clear()
    return CurrencyConverter(store, telemetry, clock=clock)


@pytest.mark.parametrize(
    "amount, src, dst, rate, converted",
    [
        (100, "USD", "EUR", 0.92, 92.00),
        (100, "EUR", "JPY", 150.0 / 0.92, 16304.35),
        (50, "JPY", "USD", 1 / 150.0, 0.33),
    ],
)
def test_conversion_scenarios(converter, amount, src, dst, rate, converted) -> None:
    result = converter.convert(amount, src, dst)

    assert result.rate == pytest.approx(rate)
    assert result.converted_amount == converted
    assert result.source == "cache"
    assert result.is_expired is False
    assert result.last_updated == "2026-03-10T22:06:00.000Z"


def test_lowercase_codes_are_accepted(converter) -> None:
    assert converter.convert(1, "usd", "eur").rate == 0.92


def test_empty_store_is_unavailable(store, telemetry) -> None:
    with pytest.raises(RatesUnavailableError):
        CurrencyConverter(store, telemetry).convert(100, "USD", "EUR")

    assert telemetry.events == []


def test_unknown_currency_is_rejected(converter, telemetry) -> None:
    with pytest.raises(CurrencyNotFoundError) as exc:
        converter.convert(100, "XYZ", "EUR")

    assert exc.value.currency == "XYZ"
    assert telemetry.events == []


def test_expired_cache_still_converts(converter, clock) -> None:
    clock.now = utc(2026, 3, 12, 23)

    result = converter.convert(100, "USD", "EUR")

    assert result.source == "expired-cache"
    assert result.is_expired is True
    assert result.converted_amount == 92.00


def test_stored_expiry_flag_is_ignored(store, telemetry, clock, converter) -> None:
    snapshot = store.read()
    store.write(snapshot.rates, snapshot.metadata.model_copy(update={"is_expired": True}))

    assert converter.convert(1, "USD", "EUR").is_expired is False


def test_conversion_emits_event_with_cache_age(converter, telemetry, clock) -> None:
    clock.now = utc(2026, 3, 11, 8, 6)

    converter.convert(100, "EUR", "JPY")

    [event] = telemetry.of_type("currency_conversion")
    assert event.metadata == {
        "from_currency": "EUR",
        "to_currency": "JPY",
        "exchange_rate": pytest.approx(150.0 / 0.92),
        "source": "cache",
        "is_expired": False,
        "cache_age_hours": 10,
    }


def test_metadata_recomputes_expiry_and_next_update(converter, clock) -> None:
    clock.now = utc(2026, 3, 12, 23)

    meta = converter.metadata()

    assert meta.is_expired is True
    assert meta.source == "api"
    assert meta.next_update == "2026-03-13T22:05:00.000Z"
    assert meta.rates_count == 2


def test_metadata_on_empty_store_is_unavailable(store, telemetry) -> None:
    with pytest.raises(RatesUnavailableError):
        CurrencyConverter(store, telemetry).metadata()
