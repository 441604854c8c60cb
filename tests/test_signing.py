from __future__ import annotations

from dealrelay.providers.signing import (
    credential_authorization_header,
    sign_credential_payload,
    sign_sorted_params,
)

ALIEXPRESS_PARAMS = {
    "tracking_id": "mytracking",
    "app_key": "12345",
    "timestamp": "1700000000000",
    "source_values": "https://pt.aliexpress.com/item/1005001.html",
}


def test_sorted_params_signature_matches_golden_vector():
    assert sign_sorted_params(ALIEXPRESS_PARAMS, "s3cr3t") == "D6CF7D51059A41E06F844073650AD93E"


def test_sorted_params_signature_ignores_insertion_order():
    reordered = dict(reversed(list(ALIEXPRESS_PARAMS.items())))
    assert sign_sorted_params(reordered, "s3cr3t") == sign_sorted_params(ALIEXPRESS_PARAMS, "s3cr3t")


def test_sorted_params_signature_depends_on_secret():
    assert sign_sorted_params(ALIEXPRESS_PARAMS, "other") != sign_sorted_params(ALIEXPRESS_PARAMS, "s3cr3t")


def test_credential_payload_signature_matches_golden_vector():
    signature = sign_credential_payload("98765", 1700000000, '{"query": "mutation"}', "shhh")
    assert signature == "65c7499abb59053f45f9c327db7e7effc632afff28dec6b90c0daf3e63f630c3"


def test_authorization_header_format():
    header = credential_authorization_header("98765", 1700000000, '{"query": "mutation"}', "shhh")
    assert header == (
        "SHA256 Credential=98765, Timestamp=1700000000, "
        "Signature=65c7499abb59053f45f9c327db7e7effc632afff28dec6b90c0daf3e63f630c3"
    )
