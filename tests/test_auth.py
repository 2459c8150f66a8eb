import pytest

from conftest import JWT_SECRET, OWNER, make_token
from storyframe.auth import extract_bearer_token, mask_token, verify_token
from storyframe.errors import AuthenticationError


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Bearer abc.def", "abc.def"),
        ("bearer abc.def", "abc.def"),
        ("eyJhbGciOi.x.y", "eyJhbGciOi.x.y"),
        ("Basic dXNlcg==", None),
        ("Bearer ", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_bearer_token(value, expected):
    assert extract_bearer_token(value) == expected


def test_mask_token_hides_the_middle():
    assert mask_token("short") == "***"
    assert mask_token("abcdef0123456789wxyz") == "abcdef...wxyz"


def test_verify_token_returns_claims(settings):
    claims = verify_token(make_token("user-42"), settings)
    assert claims["sub"] == "user-42"


@pytest.mark.parametrize(
    "token_kwargs, reason",
    [
        ({"expires_in": -60}, "Token expired"),
        ({"secret": "wrong-secret"}, "Invalid token"),
        ({"role": "anon"}, "Anonymous tokens are not allowed"),
        ({"role": "service_role"}, "Anonymous tokens are not allowed"),
        ({"sub": ""}, "Anonymous tokens are not allowed"),
    ],
)
def test_verify_token_rejections(settings, token_kwargs, reason):
    with pytest.raises(AuthenticationError) as exc:
        verify_token(make_token(**token_kwargs), settings)
    assert exc.value.reason == reason


def test_issuer_and_audience_are_enforced_when_configured(settings):
    strict = settings.model_copy(update={"AUTH_JWT_ISSUER": "https://auth.example", "AUTH_JWT_AUDIENCE": "storyframe"})
    good = make_token(iss="https://auth.example", aud="storyframe")
    assert verify_token(good, strict)["sub"] == OWNER

    with pytest.raises(AuthenticationError) as exc:
        verify_token(make_token(iss="https://evil.example", aud="storyframe"), strict)
    assert exc.value.reason == "Token issuer mismatch"

    with pytest.raises(AuthenticationError) as exc:
        verify_token(make_token(iss="https://auth.example", aud="other"), strict)
    assert exc.value.reason == "Token audience mismatch"


def test_unconfigured_secret_rejects_everything(settings):
    unconfigured = settings.model_copy(update={"AUTH_JWT_SECRET": ""})
    with pytest.raises(AuthenticationError) as exc:
        verify_token(make_token(), unconfigured)
    assert exc.value.reason == "Authentication is not configured"


async def test_missing_token_is_401(client):
    resp = await client.post("/api/scenes", json={"title": "x"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized", "code": "UNAUTHORIZED", "reason": "Missing bearer token"}


async def test_expired_token_is_401(client):
    resp = await client.post(
        "/api/scenes", json={"title": "x"},
        headers={"Authorization": f"Bearer {make_token(expires_in=-10)}"},
    )
    assert resp.status_code == 401
    assert resp.json()["reason"] == "Token expired"


async def test_client_auth_header_takes_precedence(client):
    resp = await client.post(
        "/api/scenes",
        json={"title": "gateway"},
        headers={
            "Authorization": "Bearer gateway-owned-token",
            "X-Client-Auth": f"Bearer {make_token('user-from-client')}",
        },
    )
    assert resp.status_code == 201

    other = await client.get(
        f"/api/scenes/{resp.json()['id']}",
        headers={"Authorization": f"Bearer {make_token('user-from-client', secret=JWT_SECRET)}"},
    )
    assert other.status_code == 200
