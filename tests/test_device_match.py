from xcdeploy.core.device_match import find_device, same_device
from xcdeploy.core.model import DeviceRecord

UUID = "AAAAAAAA-BBBB-CCCC-DDDD-EEEEEEEEEEEE"


def test_same_device_exact_and_containment() -> None:
    assert same_device("Jane's iPhone", "Jane's iPhone")
    assert same_device("Jane", "Jane's iPhone")
    assert same_device("Jane's iPhone", "Jane")
    assert not same_device("Jane", "John's iPad")


def test_same_device_is_case_sensitive() -> None:
    assert not same_device("jane", "Jane's iPhone")


def test_empty_names_never_match() -> None:
    assert not same_device("", "Jane's iPhone")


def test_primary_identifier_wins_over_name_containment() -> None:
    decoy = DeviceRecord(name=f"Lab rig {UUID}", primary_id="11111111-2222-3333-4444-555555555555")
    target = DeviceRecord(name="Jane's iPhone", primary_id=UUID)

    assert find_device([decoy, target], UUID) is target


def test_secondary_identifier_lookup() -> None:
    device = DeviceRecord(name="Jane's iPhone", secondary_id="00008110-001234567890ABCD")
    assert find_device([device], "00008110-001234567890ABCD") is device


def test_exact_name_beats_earlier_partial_match() -> None:
    partial = DeviceRecord(name="iPhone 15 Pro Max")
    exact = DeviceRecord(name="iPhone 15")

    assert find_device([partial, exact], "iPhone 15") is exact


def test_partial_match_takes_first_in_list_order() -> None:
    first = DeviceRecord(name="Jane's iPhone")
    second = DeviceRecord(name="Jane's iPad")

    assert find_device([first, second], "Jane") is first


def test_non_ascii_names() -> None:
    device = DeviceRecord(name="지수의 iPhone", primary_id=UUID)
    assert find_device([device], "지수") is device


def test_no_match_returns_none() -> None:
    assert find_device([DeviceRecord(name="Jane's iPhone")], "John") is None
