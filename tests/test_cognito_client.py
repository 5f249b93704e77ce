"""CognitoAuthClient with a mocked cognito-idp client."""

import base64
import hashlib
import hmac
from unittest.mock import MagicMock

import pytest

from conftest import client_error
from EAP.core.exceptions import AuthError, ConfigError
from EAP.core.settings import settings
from EAP.services.auth.cognito_client import AuthSession, CognitoAuthClient


@pytest.fixture
def idp():
    idp = MagicMock()
    idp.get_user.return_value = {
        "Username": "ann",
        "UserAttributes": [
            {"Name": "sub", "Value": "u-1"},
            {"Name": "email", "Value": "ann@example.com"},
            {"Name": "name", "Value": "Ann"},
        ],
    }
    return idp


@pytest.fixture
def auth(idp):
    return CognitoAuthClient(client_id="client-1", client=idp)


def test_missing_client_id_is_a_config_error(monkeypatch):
    monkeypatch.setattr(settings, "cognito_client_id", "")
    with pytest.raises(ConfigError):
        CognitoAuthClient(client=MagicMock())


def test_sign_up_sends_display_name(auth, idp):
    idp.sign_up.return_value = {"UserConfirmed": False}

    assert auth.sign_up("ann@example.com", "Secret123!", "Ann") is False

    kwargs = idp.sign_up.call_args.kwargs
    assert {"Name": "name", "Value": "Ann"} in kwargs["UserAttributes"]
    assert "SecretHash" not in kwargs


def test_secret_hash_is_sent_when_client_has_secret(idp):
    auth = CognitoAuthClient(client_id="client-1", client_secret="s3cret", client=idp)
    idp.sign_up.return_value = {"UserConfirmed": True}

    auth.sign_up("ann@example.com", "Secret123!")

    expected = base64.b64encode(
        hmac.new(b"s3cret", b"ann@example.comclient-1", hashlib.sha256).digest()
    ).decode()
    assert idp.sign_up.call_args.kwargs["SecretHash"] == expected


def test_sign_in_builds_session(auth, idp):
    idp.initiate_auth.return_value = {
        "AuthenticationResult": {"AccessToken": "at", "IdToken": "it", "RefreshToken": "rt"}
    }

    session = auth.sign_in("ann@example.com", "Secret123!")

    assert session.user_id == "u-1"
    assert session.display_name == "Ann"
    assert (session.access_token, session.id_token, session.refresh_token) == ("at", "it", "rt")
    assert idp.initiate_auth.call_args.kwargs["AuthFlow"] == "USER_PASSWORD_AUTH"


def test_sign_in_maps_cognito_errors(auth, idp):
    idp.initiate_auth.side_effect = client_error("NotAuthorizedException", "Incorrect username or password.")

    with pytest.raises(AuthError) as exc:
        auth.sign_in("ann@example.com", "wrong")

    assert exc.value.message == "Invalid email or password"
    assert exc.value.details["code"] == "NotAuthorizedException"


def test_sign_in_challenge_is_an_error(auth, idp):
    idp.initiate_auth.return_value = {"ChallengeName": "NEW_PASSWORD_REQUIRED", "Session": "x"}
    with pytest.raises(AuthError, match="Additional verification"):
        auth.sign_in("ann@example.com", "Secret123!")


def test_unmapped_error_keeps_cognito_message(auth, idp):
    idp.confirm_sign_up.side_effect = client_error("LimitExceededException", "Attempt limit exceeded")
    with pytest.raises(AuthError, match="Attempt limit exceeded"):
        auth.confirm_sign_up("ann@example.com", "123456")


def test_sign_out_revokes_tokens(auth, idp):
    auth.sign_out(AuthSession(user_id="u-1", email="ann@example.com", access_token="at"))
    idp.global_sign_out.assert_called_once_with(AccessToken="at")


def test_session_uses_configured_access_keys(monkeypatch):
    monkeypatch.setattr(settings, "aws_profile", None)
    monkeypatch.setattr(settings, "aws_access_key_id", "AKIAEXAMPLE")
    monkeypatch.setattr(settings, "aws_secret_access_key", "secret")
    boto_session = MagicMock()
    monkeypatch.setattr("EAP.services.auth.cognito_client.boto3.Session", boto_session)

    CognitoAuthClient(client_id="client-1")

    kwargs = boto_session.call_args.kwargs
    assert kwargs["aws_access_key_id"] == "AKIAEXAMPLE"
    assert kwargs["aws_secret_access_key"] == "secret"
    boto_session.return_value.client.assert_called_once_with("cognito-idp")
