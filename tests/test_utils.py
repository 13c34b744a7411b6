import pytest
from hexbytes import HexBytes

from core.domain.entities.factory_entities import DeploymentKey
from core.services.utils import ZERO_ADDRESS, is_null_address, normalize_address, to_json_safe


@pytest.mark.parametrize("value", [None, "", "   ", ZERO_ADDRESS, ZERO_ADDRESS.upper().replace("0X", "0x")])
def test_null_addresses(value):
    assert is_null_address(value)
    assert normalize_address(value) == ZERO_ADDRESS


def test_normalize_checksums():
    raw = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
    assert normalize_address(raw) == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


def test_normalize_rejects_garbage():
    with pytest.raises(ValueError):
        normalize_address("0x1234")


def test_deployment_key_is_ordered_and_case_insensitive():
    a = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
    c = "0xfb6916095ca1df60bb79ce92ce3ea74c37c5d359"

    assert DeploymentKey.of(a, c) == DeploymentKey.of(a.upper().replace("0X", "0x"), c)
    assert DeploymentKey.of(a, c) != DeploymentKey.of(c, a)


def test_to_json_safe():
    out = to_json_safe({"h": HexBytes(b"\x01\x02"), "n": [1, (2, 3)], "b": b"\xff"})
    assert out == {"h": "0x0102", "n": [1, [2, 3]], "b": "0xff"}
