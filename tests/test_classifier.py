from datetime import datetime, timezone

from announcement_monitor.core.classifier import ListingClassifier, classify
from announcement_monitor.core.models import Announcement, Confidence, Exchange


def _ann(title, body="", categories=()):
    return Announcement(
        source=Exchange.BINANCE,
        id=None,
        title=title,
        body=body,
        published_at=datetime(2024, 1, 5, 10, tzinfo=timezone.utc),
        categories=tuple(categories),
    )


def test_strong_match_with_symbol():
    event = classify(_ann("Binance Will List ABC (ABC)"))
    assert event.is_new_listing
    assert event.confidence == Confidence.HIGH
    assert event.symbols == {"ABC"}


def test_weak_match_without_symbol():
    event = classify(_ann("New listing announcement"))
    assert event.is_new_listing
    assert event.confidence == Confidence.LOW
    assert event.symbols == frozenset()


def test_non_listing():
    event = classify(_ann("Scheduled maintenance notice"))
    assert not event.is_new_listing
    assert event.confidence is None
    assert event.symbols == frozenset()


def test_classification_is_deterministic():
    classifier = ListingClassifier()
    ann = _ann("OKX to list XYZ (XYZ) and $QQQ for spot trading", body="Deposits open now.")
    first, second = classifier.classify(ann), classifier.classify(ann)
    assert first == second
    assert first.symbols == {"XYZ", "QQQ"}


def test_strong_wins_over_weak_keywords_in_same_title():
    event = classify(_ann("New listing: Bybit Lists FOO/USDT"))
    assert event.confidence == Confidence.HIGH
    assert event.symbols == {"FOO"}


def test_keyword_with_marked_symbol_before_it_is_strong():
    event = classify(_ann("Pyth Network (PYTH) will be listed on Gate.io"))
    assert event.confidence == Confidence.HIGH
    assert event.symbols == {"PYTH"}


def test_body_supplies_symbols_when_title_has_none():
    event = classify(_ann("Notice on new trading pairs", body="Binance will add (AAA) and (BBB). Trading starts at 10:00 UTC."))
    assert event.confidence == Confidence.HIGH
    assert event.symbols == {"AAA", "BBB"}


def test_title_symbols_take_precedence_over_body():
    event = classify(_ann("Binance Will List ABC (ABC)", body="Binance will also list (ZZZ) later."))
    assert event.symbols == {"ABC"}


def test_verb_and_symbol_in_different_sentences_is_not_strong():
    event = classify(_ann("Update", body="Binance will list a new token. Maintenance for ETH network."))
    assert event.confidence == Confidence.LOW
    assert event.symbols == frozenset()


def test_delisting_is_not_a_listing():
    assert not classify(_ann("Binance Will Delist ABC, DEF (DEF) on 2024-01-10")).is_new_listing
    assert not classify(_ann("Notice of Removal of Trading Pairs - 2024-01-10")).is_new_listing


def test_delisting_with_marked_symbols_is_not_a_listing():
    event = classify(_ann(
        "Binance Will Delist ANT, MULTI, VAI, XMR on 2024-02-20",
        body="Binance will delist and cease trading on all spot trading pairs for the following "
             "tokens: Aragon (ANT), Multichain (MULTI).",
    ))
    assert not event.is_new_listing
    assert event.confidence is None
    assert event.symbols == frozenset()

    event = classify(_ann("OKX to delist XYZ (XYZ) spot trading pairs"))
    assert not event.is_new_listing
    assert event.symbols == frozenset()


def test_removal_sentences_in_body_supply_no_symbols():
    event = classify(_ann(
        "Notice on spot trading",
        body="Trading pairs for Aragon (ANT) will be removed. Deposits remain open.",
    ))
    assert not event.is_new_listing

    event = classify(_ann(
        "Notice on spot trading",
        body="Binance will add (AAA). Trading pairs for (BBB) will be removed.",
    ))
    assert event.confidence == Confidence.HIGH
    assert event.symbols == {"AAA"}


def test_listing_category_is_a_weak_match():
    event = classify(_ann("Coinbase Blog Post", categories=["New Asset"]))
    assert event.is_new_listing
    assert event.confidence == Confidence.LOW
    assert not classify(_ann("Coinbase Blog Post", categories=["Delisting"])).is_new_listing


def test_chinese_keyword_is_a_weak_match():
    event = classify(_ann("币安上线新币"))
    assert event.confidence == Confidence.LOW


def test_detected_at_does_not_affect_equality():
    ann = _ann("Binance Will List ABC (ABC)")
    early = ListingClassifier().classify(ann, detected_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    late = ListingClassifier().classify(ann, detected_at=datetime(2024, 2, 1, tzinfo=timezone.utc))
    assert early == late
