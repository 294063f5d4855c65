import pytest
from werkzeug.datastructures import Headers

from utils.credentials import ApiKey, BearerToken, extract_credential
from utils.errors import ErrorKind, MalformedCredential, MissingCredential


def test_bearer_token():
    assert extract_credential({"Authorization": "Bearer abc.def.ghi"}) == BearerToken("abc.def.ghi")


def test_api_key():
    assert extract_credential({"Authorization": "ApiKey f271c81f"}) == ApiKey("f271c81f")


def test_scheme_is_case_insensitive_and_value_trimmed():
    assert extract_credential({"Authorization": "bearer   tok  "}) == BearerToken("tok")
    assert extract_credential({"Authorization": "APIKEY k"}) == ApiKey("k")


def test_works_with_case_insensitive_request_headers():
    headers = Headers([("authorization", "Bearer tok")])
    assert extract_credential(headers) == BearerToken("tok")


@pytest.mark.parametrize("headers", [{}, {"Authorization": ""}, {"Authorization": "   "}])
def test_missing_credential(headers):
    with pytest.raises(MissingCredential) as exc:
        extract_credential(headers)
    assert exc.value.kind is ErrorKind.MISSING_CREDENTIAL


@pytest.mark.parametrize(
    "value",
    ["Bearer ", "Bearer", "ApiKey   ", "Basic dXNlcjpwYXNz", "Token abc", "abc"],
)
def test_malformed_credential(value):
    with pytest.raises(MalformedCredential) as exc:
        extract_credential({"Authorization": value})
    assert exc.value.kind is ErrorKind.MALFORMED_CREDENTIAL
