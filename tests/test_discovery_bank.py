from datetime import datetime, timedelta, timezone

from daily_alchemy.domain.models import BankOrder, DiscoveryBank, Element


class Ticker:
    def __init__(self):
        self.moment = datetime(2025, 8, 20, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.moment += timedelta(seconds=1)
        return self.moment


def make_bank():
    return DiscoveryBank.with_starters(now_provider=Ticker())


def test_starts_with_the_base_elements():
    bank = make_bank()
    assert bank.names == ["Earth", "Water", "Fire", "Air"]
    assert "fire" in bank
    assert bank.contains("WATER")


def test_wind_finds_air_only_through_the_base_element():
    bank = make_bank()
    assert bank.get("Wind").name == "Air"
    assert DiscoveryBank().get("Wind") is None


def test_add_stamps_and_notifies_once():
    bank = make_bank()
    events = []
    bank.subscribe(events.append)

    event = bank.add(Element(name="Steam", glyph="♨️"), is_first_discovery=True)
    assert event is not None
    assert event.name == "Steam"
    assert event.was_first_global
    assert bank.get("steam").discovered_at is not None
    assert bank.get("steam").is_first_discovery

    assert bank.add(Element(name="STEAM", glyph="♨️")) is None
    assert len(events) == 1
    assert len(bank) == 5


def test_size_never_decreases():
    bank = make_bank()
    sizes = [len(bank)]
    for name in ["Steam", "Rain", "steam", "Mud", "rain"]:
        bank.add(Element(name=name))
        sizes.append(len(bank))
    assert sizes == sorted(sizes)
    assert len(bank) == 7


def test_sorted_views_are_cached_until_the_next_insertion():
    bank = make_bank()
    bank.add(Element(name="Steam"))
    bank.add(Element(name="Mud"))

    newest = bank.sorted(BankOrder.NEWEST)
    assert [e.name for e in newest][:2] == ["Mud", "Steam"]
    assert bank.sorted(BankOrder.NEWEST) is newest

    alphabetical = bank.sorted(BankOrder.ALPHABETICAL)
    assert [e.name for e in alphabetical] == ["Air", "Earth", "Fire", "Mud", "Steam", "Water"]

    bank.add(Element(name="Rain"))
    assert bank.sorted(BankOrder.NEWEST) is not newest


def test_first_discoveries_order():
    bank = make_bank()
    bank.add(Element(name="Steam"), is_first_discovery=True)
    bank.add(Element(name="Mud"))
    view = bank.sorted(BankOrder.FIRST_DISCOVERIES)
    assert view[0].name == "Steam"
    assert view[1].name == "Mud"
    assert [e.name for e in bank.first_discoveries()] == ["Steam"]


def test_search_and_recent():
    bank = make_bank()
    for name in ["Steam", "Stone", "Mud", "Rain", "Plant", "Swamp", "Storm"]:
        bank.add(Element(name=name))

    assert [e.name for e in bank.search("st", BankOrder.ALPHABETICAL)] == ["Steam", "Stone", "Storm"]
    assert [e.name for e in bank.recent(5)] == ["Storm", "Swamp", "Plant", "Rain", "Mud"]
    assert bank.is_new("storm")
    assert not bank.is_new("Steam")
    assert bank.recent(0) == []


def test_records_round_trip_keeps_order_and_starters():
    bank = make_bank()
    bank.add(Element(name="Steam", glyph="♨️"), is_first_discovery=True)
    restored = DiscoveryBank.from_records(bank.to_records())
    assert restored.names == bank.names
    assert restored.get("steam").is_first_discovery

    partial = DiscoveryBank.from_records([{"name": "Mud", "glyph": "🟤"}])
    assert partial.names == ["Earth", "Water", "Fire", "Air", "Mud"]
