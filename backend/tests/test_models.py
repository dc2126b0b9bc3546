from vetcare.models import ConfirmationToken


def test_tokens_carry_a_ttl_index_on_expiry():
    [ttl] = [
        index for index in ConfirmationToken.Settings.indexes
        if "expireAfterSeconds" in index.document
    ]

    assert list(ttl.document["key"].keys()) == ["expires_at"]
    assert ttl.document["expireAfterSeconds"] == 0
